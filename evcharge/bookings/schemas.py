from pydantic import Field, model_validator
from typing import Optional
from datetime import datetime, date

from evcharge.bookings.state_machine import BookingStatus
from evcharge.schemas import CamelModel
from evcharge.utils import as_utc

class BookingCreate(CamelModel):
    owner_nic: str = Field(..., min_length=1)
    station_id: str = Field(..., min_length=1)
    start_time_utc: datetime
    end_time_utc: datetime

    @model_validator(mode="after")
    def check_time_range(self):
        self.start_time_utc = as_utc(self.start_time_utc)
        self.end_time_utc = as_utc(self.end_time_utc)
        if self.start_time_utc >= self.end_time_utc:
            raise ValueError("startTimeUtc must be before endTimeUtc")
        return self

class Booking(CamelModel):
    id: str
    owner_nic: str
    station_id: str
    start_time_utc: datetime
    end_time_utc: datetime
    status: BookingStatus
    qr_code: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_utc: datetime
    updated_utc: datetime

class DecisionRequest(CamelModel):
    approve: bool
    reason: Optional[str] = ""

class StartSessionRequest(CamelModel):
    qr_code: str = Field(..., min_length=1)

class BookingSearchFilters(CamelModel):
    status: Optional[BookingStatus] = None
    station_id: Optional[str] = None
    owner_nic: Optional[str] = None
    day: Optional[date] = None
    query: Optional[str] = None
