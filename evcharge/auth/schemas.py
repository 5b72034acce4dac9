from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from evcharge.auth.permissions import Role
from evcharge.schemas import CamelModel

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class AuthResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    role: Role
    username: str
    user_id: str

class RequestContext(BaseModel):
    """The authenticated caller, resolved from the bearer credential of one request"""
    user_id: str
    username: str
    role: Role

class Me(CamelModel):
    id: str
    username: str
    role: Role
    is_active: bool
    created_utc: Optional[datetime] = None
