from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from opsdesk.models import AuditAction
from opsdesk.schemas.user import UserSummary
from opsdesk.utils.clock import as_utc

class AuditEventRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    action: AuditAction
    details: Optional[str] = None
    identity: Optional[str] = None
    source_address: Optional[str] = None
    agent_string: Optional[str] = None
    timestamp: datetime
    user: Optional[UserSummary] = None

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return as_utc(value)
