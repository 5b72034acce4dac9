from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime

from evcharge.auth.permissions import Role
from evcharge.schemas import CamelModel

class UserBase(CamelModel):
    username: str = Field(..., min_length=3, max_length=100)
    role: Role
    is_active: bool = True

    @field_validator("role")
    @classmethod
    def console_roles_only(cls, value: Role) -> Role:
        if value == Role.OWNER:
            raise ValueError("EV owners are managed under /evowners")
        return value

class UserCreate(UserBase):
    password: str = Field(..., min_length=6)

class UserUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("role")
    @classmethod
    def console_roles_only(cls, value: Optional[Role]) -> Optional[Role]:
        if value == Role.OWNER:
            raise ValueError("EV owners are managed under /evowners")
        return value

class User(UserBase):
    id: str
    created_utc: datetime
    updated_utc: datetime
