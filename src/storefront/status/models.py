from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class InstallStatus(str, Enum):
    READY = "ready"
    RUNNING = "running"
    FINISH = "finish"


class StatusEvent(BaseModel):
    """Outcome of one poll tick: a status, or the error that tick hit."""

    name: str
    status: Optional[InstallStatus] = None
    error: Optional[str] = None
    at: datetime = Field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return self.error is None
