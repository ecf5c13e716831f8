from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid
from opsdesk.utils.clock import utcnow

class JobStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"

TERMINAL_STATUSES = frozenset({JobStatus.SUCCESS, JobStatus.FAILED, JobStatus.TIMEOUT})

class CommandJob(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    command: str
    output: Optional[str] = None
    status: JobStatus = Field(default=JobStatus.RUNNING, index=True)
    start_time: datetime = Field(default_factory=utcnow, index=True)
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # milliseconds
    exit_code: Optional[int] = None
    host_id: str = Field(foreign_key="host.id", index=True)
    executed_by: Optional[str] = Field(default=None, foreign_key="user.id")
