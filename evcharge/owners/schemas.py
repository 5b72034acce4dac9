from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime

from evcharge.schemas import CamelModel

class EVOwnerBase(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    is_active: bool = True

class EVOwnerCreate(EVOwnerBase):
    nic: str = Field(..., min_length=1, max_length=20)

class EVOwnerUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

class EVOwner(EVOwnerBase):
    nic: str
    created_utc: datetime
    updated_utc: datetime
