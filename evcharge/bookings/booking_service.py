from typing import List, Optional
from datetime import datetime, timedelta, time, timezone
from sqlalchemy.orm import Session
from sqlalchemy import or_
import logging

from evcharge.models import Booking, EVOwner, Station
from evcharge.auth.permissions import Action, Scope, authorize, scope_for
from evcharge.auth.schemas import RequestContext
from evcharge.bookings.schemas import BookingCreate, BookingSearchFilters
from evcharge.bookings.state_machine import BookingStatus, BookingAction, next_status, describe_rejection
from evcharge.bookings.qr_service import QRService
from evcharge.stations.service import StationService
from evcharge.config import settings
from evcharge.exceptions import (
    ConflictError, InvalidStateTransition, InvalidToken, NotAuthorized, NotFound
)
from evcharge.utils import utcnow, as_utc

logger = logging.getLogger(__name__)

class BookingService:
    """Booking store: every status change goes through the transition table and a conditional update"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Creation and reads
    # ------------------------------------------------------------------
    def create_booking(self, ctx: RequestContext, request: BookingCreate) -> Booking:
        """Create a Pending booking with a freshly issued session token"""
        authorize(ctx.role, Action.CREATE_BOOKING)

        owner = self.db.query(EVOwner).filter(EVOwner.nic == request.owner_nic).first()
        if owner is None:
            raise NotFound("EV owner not found")
        if not owner.is_active:
            raise ConflictError("EV owner account is deactivated")

        station = StationService.get_station(self.db, request.station_id)
        if station is None:
            raise NotFound("Station not found")
        if not station.is_active:
            raise ConflictError("Station is not active")

        now = utcnow()
        booking = Booking(
            owner_nic=owner.nic,
            station_id=station.station_id,
            start_time_utc=request.start_time_utc,
            end_time_utc=request.end_time_utc,
            status=BookingStatus.PENDING.value,
            qr_code=QRService.issue_token(),
            created_utc=now,
            updated_utc=now
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"Booking {booking.id} created for {owner.nic} at {station.station_id}")
        return booking

    def get_booking(self, ctx: RequestContext, booking_id: str) -> Booking:
        """Get one booking, readable by Backoffice and by operators of its station"""
        return self._load_authorized(ctx, booking_id, Action.READ_STATION_BOOKINGS)

    def list_bookings(
        self,
        ctx: RequestContext,
        filters: Optional[BookingSearchFilters] = None
    ) -> List[Booking]:
        """All bookings, newest first"""
        authorize(ctx.role, Action.READ_ALL_BOOKINGS)
        return self._search(filters)

    def list_station_bookings(
        self,
        ctx: RequestContext,
        station_id: str,
        filters: Optional[BookingSearchFilters] = None
    ) -> List[Booking]:
        """Bookings of one station, newest first"""
        scope = scope_for(ctx.role, Action.READ_STATION_BOOKINGS)
        if scope == Scope.NONE:
            raise NotAuthorized()
        if scope == Scope.ASSIGNED:
            authorize(
                ctx.role,
                Action.READ_STATION_BOOKINGS,
                assigned=StationService.is_operator_assigned(self.db, station_id, ctx.user_id)
            )
        elif StationService.get_station(self.db, station_id) is None:
            raise NotFound("Station not found")

        filters = (filters or BookingSearchFilters()).model_copy(update={"station_id": station_id})
        return self._search(filters)

    # ------------------------------------------------------------------
    # Approval workflow
    # ------------------------------------------------------------------
    def decide(self, ctx: RequestContext, booking_id: str, approve: bool, reason: Optional[str] = "") -> Booking:
        """Approve, or reject with a reason stored verbatim"""
        booking = self._load_authorized(ctx, booking_id, Action.DECIDE_BOOKING)

        if approve:
            values = {}
            if not booking.qr_code:
                values["qr_code"] = QRService.issue_token()
            return self._transition(ctx, booking, BookingAction.APPROVE, values)

        return self._transition(
            ctx,
            booking,
            BookingAction.REJECT,
            {"rejection_reason": reason if reason is not None else ""}
        )

    def approve(self, ctx: RequestContext, booking_id: str) -> Booking:
        return self.decide(ctx, booking_id, approve=True)

    def reject(self, ctx: RequestContext, booking_id: str, reason: Optional[str] = "") -> Booking:
        return self.decide(ctx, booking_id, approve=False, reason=reason)

    def cancel(self, ctx: RequestContext, booking_id: str) -> Booking:
        """Cancel a Pending or Approved booking; the record is kept"""
        booking = self._load_authorized(ctx, booking_id, Action.CANCEL_BOOKING)
        return self._transition(ctx, booking, BookingAction.CANCEL)

    def delete(self, ctx: RequestContext, booking_id: str) -> None:
        """Administrative override: physically remove a booking in any status"""
        booking = self._load_authorized(ctx, booking_id, Action.DELETE_BOOKING)
        self.db.delete(booking)
        self.db.commit()
        logger.warning(f"Booking {booking_id} deleted by {ctx.username}")

    # ------------------------------------------------------------------
    # Session protocol
    # ------------------------------------------------------------------
    def start_session(self, ctx: RequestContext, booking_id: str, token: str) -> Booking:
        """Start charging on presentation of the booking's QR token"""
        booking = self._load_authorized(ctx, booking_id, Action.RUN_SESSION)

        if not QRService.token_matches(booking.qr_code, token):
            logger.warning(f"Booking {booking_id}: QR token mismatch from {ctx.username}")
            raise InvalidToken()

        # A retried start after a lost response is not a second transition
        if booking.status == BookingStatus.IN_PROGRESS.value:
            logger.info(f"Booking {booking_id}: start retried, already InProgress")
            return booking

        target = self._check(ctx, booking, BookingAction.START)
        self._check_session_window(booking)
        return self._persist(ctx, booking, BookingAction.START, target, {})

    def complete_session(self, ctx: RequestContext, booking_id: str) -> Booking:
        """Finish an in-progress charging session"""
        booking = self._load_authorized(ctx, booking_id, Action.RUN_SESSION)
        return self._transition(ctx, booking, BookingAction.COMPLETE)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _load_authorized(self, ctx: RequestContext, booking_id: str, action: Action) -> Booking:
        """
        Check the capability table before touching the booking.

        For station-scoped callers a missing booking and a booking at a station
        they do not serve both surface as NotAuthorized, so existence is not leaked.
        """
        scope = scope_for(ctx.role, action)
        if scope == Scope.NONE:
            raise NotAuthorized()

        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()

        if scope == Scope.ASSIGNED:
            assigned = booking is not None and StationService.is_operator_assigned(
                self.db, booking.station_id, ctx.user_id
            )
            authorize(ctx.role, action, assigned=assigned)
        elif booking is None:
            raise NotFound("Booking not found")

        return booking

    def _check(self, ctx: RequestContext, booking: Booking, action: BookingAction) -> BookingStatus:
        try:
            return next_status(booking.status, action)
        except InvalidStateTransition:
            logger.warning(
                f"Booking {booking.id}: {action.value} rejected in status {booking.status} ({ctx.username})"
            )
            raise

    def _transition(self, ctx: RequestContext, booking: Booking, action: BookingAction, values: dict = None) -> Booking:
        target = self._check(ctx, booking, action)
        return self._persist(ctx, booking, action, target, values or {})

    def _persist(
        self,
        ctx: RequestContext,
        booking: Booking,
        action: BookingAction,
        target: BookingStatus,
        values: dict
    ) -> Booking:
        """
        Compare-and-swap on status: the update only applies if the row still
        has the status this request saw. A concurrent winner leaves zero
        matched rows and the loser gets InvalidStateTransition.
        """
        expected = booking.status
        changes = dict(values)
        changes.update({"status": target.value, "updated_utc": utcnow()})

        matched = self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == expected
        ).update(changes, synchronize_session=False)
        self.db.commit()

        if matched != 1:
            self.db.refresh(booking)
            # An overlapping identical start already moved the row; the token was checked
            if action == BookingAction.START and booking.status == BookingStatus.IN_PROGRESS.value:
                logger.info(f"Booking {booking.id}: concurrent start retry, already InProgress")
                return booking
            logger.warning(
                f"Booking {booking.id}: {action.value} lost a race, status is now {booking.status}"
            )
            raise InvalidStateTransition(describe_rejection(BookingStatus(booking.status), action))

        self.db.refresh(booking)
        logger.info(f"Booking {booking.id}: {expected} -> {target.value} ({action.value} by {ctx.username})")
        return booking

    def _check_session_window(self, booking: Booking) -> None:
        if not settings.ENFORCE_SESSION_WINDOW:
            return
        now = utcnow()
        opens_at = as_utc(booking.start_time_utc) - timedelta(minutes=settings.SESSION_EARLY_START_MINUTES)
        closes_at = as_utc(booking.end_time_utc)
        if now < opens_at or now >= closes_at:
            raise InvalidStateTransition(
                f"Booking can only be started between {opens_at.isoformat()} and {closes_at.isoformat()}"
            )

    def _search(self, filters: Optional[BookingSearchFilters]) -> List[Booking]:
        query = self.db.query(Booking)

        if filters:
            if filters.status is not None:
                query = query.filter(Booking.status == filters.status.value)

            if filters.station_id:
                query = query.filter(Booking.station_id == filters.station_id)

            if filters.owner_nic:
                query = query.filter(Booking.owner_nic == filters.owner_nic)

            if filters.day:
                day_start = datetime.combine(filters.day, time.min, tzinfo=timezone.utc)
                day_end = day_start + timedelta(days=1)
                # Bookings overlapping the day
                query = query.filter(Booking.start_time_utc < day_end, Booking.end_time_utc > day_start)

            if filters.query:
                pattern = f"%{filters.query}%"
                query = query.outerjoin(Station, Station.station_id == Booking.station_id).filter(or_(
                    Booking.id.ilike(pattern),
                    Booking.owner_nic.ilike(pattern),
                    Booking.station_id.ilike(pattern),
                    Station.name.ilike(pattern)
                ))

        return query.order_by(Booking.created_utc.desc()).all()
