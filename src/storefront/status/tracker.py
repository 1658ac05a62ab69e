import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from storefront.bridge.base import StoreBridge
from storefront.config.settings import StoreConfig
from storefront.status.models import InstallStatus, StatusEvent

logger = logging.getLogger(__name__)

Evaluator = Callable[[str], Awaitable[InstallStatus]]

# Events kept per subscriber; older ones are dropped when a reader falls behind.
SUBSCRIBER_BACKLOG = 16


class Subscription:
    """One observer's view of a ``StatusSignal``.

    Iterate it (``async for event in subscription``) or call ``get``; close it
    to detach. Iteration ends when the signal is closed.
    """

    def __init__(self, signal: "StatusSignal", queue: asyncio.Queue):
        self._signal = signal
        self._queue = queue
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> StatusEvent:
        event = await self._queue.get()
        if event is None:
            self.closed = True
            raise StopAsyncIteration
        return event

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def get(self) -> StatusEvent:
        return await self.__anext__()

    def close(self):
        if not self.closed:
            self.closed = True
            self._signal._detach(self._queue)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()


class StatusSignal:
    """A poll loop for one entry, shared by all of its subscribers.

    The loop starts with the first subscriber and is cancelled when the last
    one leaves. Each tick re-derives the status from scratch; a failing tick
    is published as an error event and the next tick still runs. Subscribers
    that join after a tick receive the latest event first. A subscriber that
    stops reading only keeps the newest ``backlog`` events.
    """

    def __init__(
        self,
        name: str,
        evaluate: Evaluator,
        interval: float,
        on_idle: Optional[Callable[[str], None]] = None,
        backlog: int = SUBSCRIBER_BACKLOG,
    ):
        self.name = name
        self.interval = interval
        self.backlog = backlog
        self._evaluate = evaluate
        self._on_idle = on_idle
        self._subscribers: List[asyncio.Queue] = []
        self._latest: Optional[StatusEvent] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def latest(self) -> Optional[StatusEvent]:
        return self._latest

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.backlog)
        if self._latest is not None:
            queue.put_nowait(self._latest)
        self._subscribers.append(queue)
        if not self.running:
            self._task = asyncio.create_task(self._poll())
        return Subscription(self, queue)

    async def tick(self) -> StatusEvent:
        try:
            status = await self._evaluate(self.name)
        except Exception as exc:
            logger.warning("Status check for %s failed: %s", self.name, exc, exc_info=True)
            return StatusEvent(name=self.name, error=str(exc))
        return StatusEvent(name=self.name, status=status)

    async def _poll(self):
        while True:
            self._publish(await self.tick())
            await asyncio.sleep(self.interval)

    def _publish(self, event: StatusEvent):
        self._latest = event
        for queue in list(self._subscribers):
            self._offer(queue, event)

    @staticmethod
    def _offer(queue: asyncio.Queue, event: Optional[StatusEvent]):
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(event)

    def _detach(self, queue: asyncio.Queue):
        if queue not in self._subscribers:
            return
        self._subscribers.remove(queue)
        if not self._subscribers:
            self._stop()
            if self._on_idle:
                self._on_idle(self.name)

    def _stop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._latest = None

    async def close(self):
        task = self._task
        self._stop()
        for queue in self._subscribers:
            self._offer(queue, None)
        self._subscribers.clear()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass


class InstallStatusTracker:
    """Live install status per entry name, polled from the store bridge."""

    def __init__(self, bridge: StoreBridge, interval: float = 1.0):
        self.bridge = bridge
        self.interval = interval
        self._signals: Dict[str, StatusSignal] = {}

    @classmethod
    def from_config(cls, config: StoreConfig, bridge: StoreBridge) -> "InstallStatusTracker":
        return cls(bridge, interval=config.status_poll_interval_seconds)

    async def evaluate(self, name: str) -> InstallStatus:
        if await self.bridge.is_installed(name):
            return InstallStatus.FINISH
        job = await self.bridge.get_job_by_name(name)
        return InstallStatus.RUNNING if job else InstallStatus.READY

    def signal(self, name: str) -> StatusSignal:
        signal = self._signals.get(name)
        if signal is None:
            signal = StatusSignal(name, self.evaluate, self.interval, on_idle=self._forget)
            self._signals[name] = signal
        return signal

    def subscribe(self, name: str) -> Subscription:
        return self.signal(name).subscribe()

    def _forget(self, name: str):
        signal = self._signals.get(name)
        if signal is not None and signal.subscriber_count == 0:
            del self._signals[name]

    async def close(self):
        signals = list(self._signals.values())
        self._signals.clear()
        for signal in signals:
            await signal.close()
