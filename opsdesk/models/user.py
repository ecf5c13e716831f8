from sqlmodel import SQLModel, Field
from typing import Optional
from enum import Enum
import uuid

class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"

class User(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    username: str = Field(index=True, unique=True)
    name: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None, index=True)
    role: UserRole = Field(default=UserRole.USER)
    is_active: bool = Field(default=True)
