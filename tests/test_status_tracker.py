import asyncio

import pytest

from storefront.status.models import InstallStatus
from storefront.status.tracker import InstallStatusTracker, StatusSignal

INTERVAL = 0.01


async def _take(subscription, count):
    return [await asyncio.wait_for(subscription.get(), timeout=1) for _ in range(count)]


@pytest.mark.asyncio
async def test_idle_entry_reports_ready_every_tick(bridge):
    tracker = InstallStatusTracker(bridge, interval=INTERVAL)
    async with tracker.subscribe("foo") as subscription:
        events = await _take(subscription, 3)

    assert [event.status for event in events] == [InstallStatus.READY] * 3
    assert all(event.name == "foo" and event.ok for event in events)
    await tracker.close()


@pytest.mark.asyncio
async def test_active_job_reports_running(bridge):
    bridge.start_job("foo")
    tracker = InstallStatusTracker(bridge, interval=INTERVAL)
    async with tracker.subscribe("foo") as subscription:
        (event,) = await _take(subscription, 1)

    assert event.status == InstallStatus.RUNNING
    await tracker.close()


@pytest.mark.asyncio
async def test_installed_wins_over_active_job(bridge):
    bridge.start_job("foo")
    tracker = InstallStatusTracker(bridge, interval=INTERVAL)
    async with tracker.subscribe("foo") as subscription:
        first = await _take(subscription, 2)
        bridge.installed.add("foo")
        # Ticks already queued before the install may still say running.
        while (await _take(subscription, 1))[0].status != InstallStatus.FINISH:
            pass
        later = await _take(subscription, 3)

    assert [event.status for event in first] == [InstallStatus.RUNNING] * 2
    assert [event.status for event in later] == [InstallStatus.FINISH] * 3
    await tracker.close()


@pytest.mark.asyncio
async def test_first_tick_is_immediate(bridge):
    tracker = InstallStatusTracker(bridge, interval=60)
    async with tracker.subscribe("foo") as subscription:
        (event,) = await _take(subscription, 1)
    assert event.status == InstallStatus.READY
    await tracker.close()


@pytest.mark.asyncio
async def test_subscribers_share_one_poll_loop(bridge):
    calls = []
    original = bridge.is_installed

    async def counting_is_installed(name):
        calls.append(name)
        return await original(name)

    bridge.is_installed = counting_is_installed
    tracker = InstallStatusTracker(bridge, interval=60)

    first = tracker.subscribe("foo")
    second = tracker.subscribe("foo")
    await _take(first, 1)
    await _take(second, 1)

    assert calls == ["foo"]
    assert tracker.signal("foo").subscriber_count == 2
    first.close()
    second.close()
    await tracker.close()


@pytest.mark.asyncio
async def test_late_subscriber_receives_latest_event(bridge):
    tracker = InstallStatusTracker(bridge, interval=60)
    first = tracker.subscribe("foo")
    (original,) = await _take(first, 1)

    late = tracker.subscribe("foo")
    (replayed,) = await _take(late, 1)

    assert replayed == original
    first.close()
    late.close()
    await tracker.close()


@pytest.mark.asyncio
async def test_last_subscriber_leaving_stops_polling(bridge):
    tracker = InstallStatusTracker(bridge, interval=INTERVAL)
    signal = tracker.signal("foo")
    subscription = tracker.subscribe("foo")
    await _take(subscription, 1)
    assert signal.running

    subscription.close()
    await asyncio.sleep(0)

    assert not signal.running
    assert signal.latest is None
    assert tracker.signal("foo") is not signal
    await tracker.close()


@pytest.mark.asyncio
async def test_failed_tick_is_reported_and_polling_continues(bridge):
    bridge.failures = 1
    tracker = InstallStatusTracker(bridge, interval=INTERVAL)
    async with tracker.subscribe("foo") as subscription:
        failed, recovered = await _take(subscription, 2)

    assert not failed.ok
    assert failed.status is None
    assert "bridge unavailable" in failed.error
    assert recovered.status == InstallStatus.READY
    await tracker.close()


@pytest.mark.asyncio
async def test_close_ends_open_subscriptions(bridge):
    tracker = InstallStatusTracker(bridge, interval=60)
    subscription = tracker.subscribe("foo")
    await _take(subscription, 1)

    await tracker.close()

    remaining = [event async for event in subscription]
    assert remaining == []
    assert subscription.closed


@pytest.mark.asyncio
async def test_evaluate_is_a_single_check(bridge):
    tracker = InstallStatusTracker(bridge)
    assert await tracker.evaluate("foo") == InstallStatus.READY
    bridge.start_job("foo")
    assert await tracker.evaluate("foo") == InstallStatus.RUNNING
    bridge.installed.add("foo")
    assert await tracker.evaluate("foo") == InstallStatus.FINISH


@pytest.mark.asyncio
async def test_stalled_subscriber_keeps_only_newest_events(bridge):
    tracker = InstallStatusTracker(bridge)
    signal = StatusSignal("foo", tracker.evaluate, INTERVAL, backlog=2)
    subscription = signal.subscribe()

    await asyncio.sleep(INTERVAL * 10)

    assert subscription.pending == 2
    await subscription.get()
    newest = await subscription.get()
    assert newest is signal.latest
    await signal.close()
