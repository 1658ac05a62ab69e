from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobKind(str, Enum):
    INSTALL = "install"
    REMOVE = "remove"


class JobLog(BaseModel):
    timestamp: datetime
    output: str
    error: bool = False


class Job(BaseModel):
    id: str
    kind: JobKind
    names: List[str]
    command: List[str]
    status: JobStatus = JobStatus.PENDING
    logs: List[JobLog] = []
    created_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    exit_code: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.status in (JobStatus.PENDING, JobStatus.RUNNING)
