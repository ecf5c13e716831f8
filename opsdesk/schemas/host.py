from typing import Optional
from pydantic import BaseModel, ConfigDict
from opsdesk.models import HostStatus

class HostTarget(BaseModel):
    """Read-only view of a registered host, as seen by the execution pipeline."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    hostname: str
    port: int = 22
    username: str = "root"
    ssh_key_path: Optional[str] = None
    status: HostStatus

class HostSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    hostname: str
