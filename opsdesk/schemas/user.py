from typing import Optional
from pydantic import BaseModel, ConfigDict

class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
