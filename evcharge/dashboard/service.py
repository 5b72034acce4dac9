from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime, time, timedelta, timezone
from typing import Dict, Optional

from evcharge.models import User, EVOwner, Station, Booking, station_operators
from evcharge.auth.permissions import Role
from evcharge.bookings.state_machine import BookingStatus
from evcharge.dashboard.schemas import BackofficeSummary, OperatorSummary
from evcharge.utils import utcnow

class DashboardService:
    """KPI counts for the console landing pages"""

    @staticmethod
    def _status_counts(db: Session, station_ids=None, day_start: Optional[datetime] = None) -> Dict[str, int]:
        query = db.query(Booking.status, func.count(Booking.id))
        if station_ids is not None:
            query = query.filter(Booking.station_id.in_(station_ids))
        if day_start is not None:
            day_end = day_start + timedelta(days=1)
            query = query.filter(Booking.start_time_utc < day_end, Booking.end_time_utc > day_start)
        counts = {status.value: 0 for status in BookingStatus}
        for status, count in query.group_by(Booking.status).all():
            counts[status] = count
        return counts

    @staticmethod
    def backoffice_summary(db: Session) -> BackofficeSummary:
        counts = DashboardService._status_counts(db)
        return BackofficeSummary(
            total_users=db.query(func.count(User.id)).scalar(),
            active_operators=db.query(func.count(User.id)).filter(
                User.role == Role.OPERATOR.value, User.is_active.is_(True)
            ).scalar(),
            total_owners=db.query(func.count(EVOwner.nic)).scalar(),
            active_owners=db.query(func.count(EVOwner.nic)).filter(EVOwner.is_active.is_(True)).scalar(),
            total_stations=db.query(func.count(Station.station_id)).scalar(),
            active_stations=db.query(func.count(Station.station_id)).filter(Station.is_active.is_(True)).scalar(),
            total_available_slots=db.query(func.coalesce(func.sum(Station.available_slots), 0)).scalar(),
            total_bookings=sum(counts.values()),
            pending_bookings=counts[BookingStatus.PENDING.value],
            bookings_by_status=counts
        )

    @staticmethod
    def operator_summary(db: Session, user_id: str) -> OperatorSummary:
        """Counts over the operator's assigned stations, for bookings overlapping today (UTC)"""
        station_ids = [
            row.station_id for row in db.query(station_operators.c.station_id).filter(
                station_operators.c.user_id == user_id
            ).all()
        ]
        day_start = datetime.combine(utcnow().date(), time.min, tzinfo=timezone.utc)
        counts = DashboardService._status_counts(db, station_ids=station_ids, day_start=day_start)
        return OperatorSummary(
            total_stations=len(station_ids),
            todays_bookings=sum(counts.values()),
            in_progress=counts[BookingStatus.IN_PROGRESS.value],
            pending=counts[BookingStatus.PENDING.value],
            approved=counts[BookingStatus.APPROVED.value]
        )
