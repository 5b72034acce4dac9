from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from typing import List, Optional
import logging

from evcharge.models import Station, Booking, User
from evcharge.stations.schemas import StationCreate, StationUpdate, StationSearch
from evcharge.bookings.state_machine import ACTIVE_STATUSES
from evcharge.exceptions import ValidationError, ConflictError, NotFound, from_integrity_error
from evcharge.utils import utcnow

logger = logging.getLogger(__name__)

class StationService:
    """Station directory: identity, declared slot capacity and operator assignments"""

    @staticmethod
    def get_station(db: Session, station_id: str) -> Optional[Station]:
        """Get station by ID with its operators"""
        return db.query(Station).options(
            selectinload(Station.operators)
        ).filter(Station.station_id == station_id).first()

    @staticmethod
    def get_station_or_404(db: Session, station_id: str) -> Station:
        station = StationService.get_station(db, station_id)
        if station is None:
            raise NotFound("Station not found")
        return station

    @staticmethod
    def list_stations(db: Session, search: Optional[StationSearch] = None) -> List[Station]:
        """Get stations with optional search filters"""
        query = db.query(Station).options(selectinload(Station.operators))

        if search:
            if search.query:
                pattern = f"%{search.query}%"
                query = query.filter(or_(
                    Station.station_id.ilike(pattern),
                    Station.name.ilike(pattern),
                    Station.address.ilike(pattern)
                ))

            if search.type is not None:
                query = query.filter(Station.type == search.type.value)

            if search.is_active is not None:
                query = query.filter(Station.is_active == search.is_active)

        return query.order_by(Station.station_id).all()

    @staticmethod
    def is_operator_assigned(db: Session, station_id: str, user_id: str) -> bool:
        """Whether the user is listed among the station's operators"""
        station = StationService.get_station(db, station_id)
        if station is None:
            return False
        return any(user.id == user_id for user in station.operators)

    @staticmethod
    def has_active_bookings(db: Session, station_id: str) -> bool:
        return db.query(Booking.id).filter(
            Booking.station_id == station_id,
            Booking.status.in_([status.value for status in ACTIVE_STATUSES])
        ).first() is not None

    @staticmethod
    def create_station(db: Session, data: StationCreate, operators: List[User]) -> Station:
        """Create a station; the operator list must already be filtered to eligible users"""
        if StationService.get_station(db, data.station_id) is not None:
            raise ConflictError(f"Station {data.station_id} already exists")

        station = Station(
            station_id=data.station_id,
            name=data.name,
            latitude=data.latitude,
            longitude=data.longitude,
            address=data.address,
            type=data.type.value,
            available_slots=data.available_slots,
            is_active=data.is_active,
            operators=list(operators)
        )
        try:
            db.add(station)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise from_integrity_error(e)
        db.refresh(station)
        logger.info(f"Station {station.station_id} created")
        return station

    @staticmethod
    def update_station(
        db: Session,
        station_id: str,
        data: StationUpdate,
        operators: Optional[List[User]] = None
    ) -> Station:
        """Edit station attributes; the station ID never changes"""
        station = StationService.get_station_or_404(db, station_id)

        update_data = data.model_dump(exclude_unset=True, exclude={"operator_user_ids"})
        # Fields sent as null are left unchanged
        update_data = {field: value for field, value in update_data.items() if value is not None}
        if "type" in update_data:
            update_data["type"] = update_data["type"].value

        for field, value in update_data.items():
            setattr(station, field, value)

        if operators is not None:
            station.operators = list(operators)

        station.updated_utc = utcnow()
        db.commit()
        db.refresh(station)
        logger.info(f"Station {station_id} updated")
        return station

    @staticmethod
    def set_slots(db: Session, station_id: str, available_slots: int) -> Station:
        """Set the operator-declared slot count; it is not derived from bookings"""
        if available_slots is None or available_slots < 0:
            raise ValidationError("Available slots cannot be negative")

        station = StationService.get_station_or_404(db, station_id)
        previous = station.available_slots
        station.available_slots = available_slots
        station.updated_utc = utcnow()
        db.commit()
        db.refresh(station)
        logger.info(f"Station {station_id} slots {previous} -> {available_slots}")
        return station

    @staticmethod
    def set_active(db: Session, station_id: str, is_active: bool) -> Station:
        """Activate or deactivate a station; deactivation is refused while bookings are live"""
        station = StationService.get_station_or_404(db, station_id)

        if not is_active and StationService.has_active_bookings(db, station_id):
            logger.warning(f"Refused to deactivate station {station_id}: active bookings exist")
            raise ConflictError("Station has active bookings and cannot be deactivated")

        station.is_active = is_active
        station.updated_utc = utcnow()
        db.commit()
        db.refresh(station)
        logger.info(f"Station {station_id} is_active={is_active}")
        return station

    @staticmethod
    def assign_operators(db: Session, station_id: str, operators: List[User]) -> Station:
        """Replace the station's operator set"""
        station = StationService.get_station_or_404(db, station_id)
        station.operators = list(operators)
        station.updated_utc = utcnow()
        db.commit()
        db.refresh(station)
        logger.info(f"Station {station_id} operators -> {station.operator_user_ids}")
        return station

    @staticmethod
    def delete_station(db: Session, station_id: str) -> None:
        """Delete a station that has no active bookings"""
        station = StationService.get_station_or_404(db, station_id)

        if StationService.has_active_bookings(db, station_id):
            raise ConflictError("Station has active bookings and cannot be deleted")

        if db.query(Booking.id).filter(Booking.station_id == station_id).first() is not None:
            raise ConflictError("Station has booking history; deactivate it instead")

        db.delete(station)
        db.commit()
        logger.info(f"Station {station_id} deleted")
