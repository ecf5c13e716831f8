from datetime import datetime
from enum import Enum
from typing import Optional
import uuid
from opsdesk.utils.clock import utcnow
from sqlmodel import Field, SQLModel

class HostStatus(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    ERROR = "ERROR"

class Host(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    name: str = Field(index=True)  # Friendly name
    hostname: str = Field(index=True)  # IP or FQDN
    port: int = Field(default=22)
    username: str = Field(default="root")
    description: Optional[str] = Field(default=None)
    status: HostStatus = Field(default=HostStatus.OFFLINE)
    ssh_key_path: Optional[str] = Field(default=None)
    last_checked: Optional[datetime] = Field(default=None)
    added_by: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)
