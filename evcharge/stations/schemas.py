from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime
from enum import Enum

from evcharge.schemas import CamelModel

class StationType(str, Enum):
    AC = "AC"
    DC = "DC"

class StationBase(CamelModel):
    name: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    type: StationType
    available_slots: int = Field(0, ge=0)
    is_active: bool = True

class StationCreate(StationBase):
    station_id: str = Field(..., min_length=1, max_length=64)
    operator_user_ids: List[str] = []

    @field_validator("station_id")
    @classmethod
    def strip_station_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Station ID is required")
        return value

class StationUpdate(CamelModel):
    # station_id is immutable and therefore not part of the update payload
    name: Optional[str] = Field(None, min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = None
    type: Optional[StationType] = None
    available_slots: Optional[int] = Field(None, ge=0)
    operator_user_ids: Optional[List[str]] = None

class OperatorAssignment(CamelModel):
    operator_user_ids: List[str]

class Station(StationBase):
    station_id: str
    operator_user_ids: List[str] = []
    created_utc: datetime
    updated_utc: datetime

class StationSearch(CamelModel):
    query: Optional[str] = None
    type: Optional[StationType] = None
    is_active: Optional[bool] = None
