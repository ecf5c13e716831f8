from datetime import datetime
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from opsdesk.models import JobStatus
from opsdesk.schemas.host import HostSummary
from opsdesk.schemas.user import UserSummary
from opsdesk.utils.clock import as_utc

class CommandRequest(BaseModel):
    # Both keys are optional here so that missing values reach the service
    # and are reported as a validation error with a single message.
    host_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("hostId", "serverId", "host_id"))
    command: Optional[str] = None

class JobRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    command: str
    output: Optional[str] = None
    status: JobStatus
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    exit_code: Optional[int] = None
    host_id: str
    executed_by: Optional[str] = None
    host: Optional[HostSummary] = None
    user: Optional[UserSummary] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)
