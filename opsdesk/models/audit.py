from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid
from opsdesk.utils.clock import utcnow

class AuditAction(str, Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    CREATE_HOST = "CREATE_HOST"
    UPDATE_HOST = "UPDATE_HOST"
    DELETE_HOST = "DELETE_HOST"
    TEST_CONNECTION = "TEST_CONNECTION"
    EXECUTE_COMMAND = "EXECUTE_COMMAND"
    RECOVER_JOB = "RECOVER_JOB"

class AuditEvent(SQLModel, table=True):
    """Append-only; rows are never updated or deleted."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    action: AuditAction = Field(index=True)
    details: Optional[str] = None
    identity: Optional[str] = Field(default=None, foreign_key="user.id")
    source_address: Optional[str] = None
    agent_string: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow, index=True)
