from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import List, Optional
import logging

from evcharge.models import EVOwner, Booking
from evcharge.owners.schemas import EVOwnerCreate, EVOwnerUpdate
from evcharge.bookings.state_machine import ACTIVE_STATUSES
from evcharge.exceptions import ConflictError, NotFound
from evcharge.utils import utcnow

logger = logging.getLogger(__name__)

class OwnerService:
    @staticmethod
    def list_owners(db: Session, query: Optional[str] = None, is_active: Optional[bool] = None) -> List[EVOwner]:
        owners = db.query(EVOwner)
        if query:
            pattern = f"%{query}%"
            owners = owners.filter(or_(
                EVOwner.nic.ilike(pattern),
                EVOwner.first_name.ilike(pattern),
                EVOwner.last_name.ilike(pattern),
                EVOwner.email.ilike(pattern)
            ))
        if is_active is not None:
            owners = owners.filter(EVOwner.is_active == is_active)
        return owners.order_by(EVOwner.nic).all()

    @staticmethod
    def get_owner_or_404(db: Session, nic: str) -> EVOwner:
        owner = db.query(EVOwner).filter(EVOwner.nic == nic).first()
        if owner is None:
            raise NotFound("EV owner not found")
        return owner

    @staticmethod
    def create_owner(db: Session, data: EVOwnerCreate) -> EVOwner:
        if db.query(EVOwner).filter(EVOwner.nic == data.nic).first() is not None:
            raise ConflictError(f"EV owner {data.nic} already exists")
        owner = EVOwner(**data.model_dump())
        db.add(owner)
        db.commit()
        db.refresh(owner)
        logger.info(f"EV owner {owner.nic} created")
        return owner

    @staticmethod
    def update_owner(db: Session, nic: str, data: EVOwnerUpdate) -> EVOwner:
        owner = OwnerService.get_owner_or_404(db, nic)
        update_data = data.model_dump(exclude_unset=True)
        update_data = {field: value for field, value in update_data.items() if value is not None}
        for field, value in update_data.items():
            setattr(owner, field, value)
        owner.updated_utc = utcnow()
        db.commit()
        db.refresh(owner)
        return owner

    @staticmethod
    def set_active(db: Session, nic: str, is_active: bool) -> EVOwner:
        owner = OwnerService.get_owner_or_404(db, nic)
        owner.is_active = is_active
        owner.updated_utc = utcnow()
        db.commit()
        db.refresh(owner)
        logger.info(f"EV owner {nic} is_active={is_active}")
        return owner

    @staticmethod
    def delete_owner(db: Session, nic: str) -> None:
        """Delete an owner without bookings; owners with history can only be deactivated"""
        owner = OwnerService.get_owner_or_404(db, nic)
        has_active = db.query(Booking.id).filter(
            Booking.owner_nic == nic,
            Booking.status.in_([status.value for status in ACTIVE_STATUSES])
        ).first() is not None
        if has_active:
            raise ConflictError("EV owner has active bookings")
        if db.query(Booking.id).filter(Booking.owner_nic == nic).first() is not None:
            raise ConflictError("EV owner has booking history; deactivate the account instead")
        db.delete(owner)
        db.commit()
        logger.info(f"EV owner {nic} deleted")
