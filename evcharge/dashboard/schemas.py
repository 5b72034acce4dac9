from typing import Dict

from evcharge.schemas import CamelModel

class BackofficeSummary(CamelModel):
    total_users: int
    active_operators: int
    total_owners: int
    active_owners: int
    total_stations: int
    active_stations: int
    total_available_slots: int
    total_bookings: int
    pending_bookings: int
    bookings_by_status: Dict[str, int]

class OperatorSummary(CamelModel):
    total_stations: int
    todays_bookings: int
    in_progress: int
    pending: int
    approved: int
