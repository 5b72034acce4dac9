from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from evcharge.database import get_db
from evcharge.auth.dependencies import get_request_context
from evcharge.auth.permissions import Action, authorize, is_permitted
from evcharge.auth.schemas import RequestContext
from evcharge.bookings.schemas import (
    Booking, BookingCreate, BookingSearchFilters, DecisionRequest, StartSessionRequest
)
from evcharge.bookings.state_machine import BookingStatus
from evcharge.bookings.booking_service import BookingService
from evcharge.bookings.qr_service import QRService
from evcharge.exceptions import NotFound

router = APIRouter()

def present(booking, ctx: RequestContext) -> Booking:
    """Response view of a booking; only Backoffice sees the session token"""
    view = Booking.model_validate(booking)
    if not is_permitted(ctx.role, Action.READ_BOOKING_TOKEN):
        view = view.model_copy(update={"qr_code": None})
    return view

def search_filters(
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by status"),
    owner_nic: Optional[str] = Query(None, alias="ownerNic", description="Filter by EV owner NIC"),
    day: Optional[date] = Query(None, description="Bookings overlapping this UTC day"),
    q: Optional[str] = Query(None, description="Search booking ID, NIC, station ID or name"),
) -> BookingSearchFilters:
    return BookingSearchFilters(status=booking_status, owner_nic=owner_nic, day=day, query=q)

@router.get("", response_model=List[Booking])
def list_bookings(
    station_id: Optional[str] = Query(None, alias="stationId", description="Filter by station"),
    filters: BookingSearchFilters = Depends(search_filters),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Get all bookings"""
    if station_id:
        filters = filters.model_copy(update={"station_id": station_id})
    bookings = BookingService(db).list_bookings(ctx, filters)
    return [present(b, ctx) for b in bookings]

@router.get("/station/{station_id}", response_model=List[Booking])
def list_station_bookings(
    station_id: str,
    filters: BookingSearchFilters = Depends(search_filters),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Get the bookings of one station"""
    bookings = BookingService(db).list_station_bookings(ctx, station_id, filters)
    return [present(b, ctx) for b in bookings]

@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Create a Pending booking"""
    booking = BookingService(db).create_booking(ctx, payload)
    return present(booking, ctx)

@router.get("/{booking_id}", response_model=Booking)
def get_booking(
    booking_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Get booking details by ID"""
    return present(BookingService(db).get_booking(ctx, booking_id), ctx)

@router.get(
    "/{booking_id}/qr",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}}
)
def get_booking_qr(
    booking_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """The booking's session token as a PNG QR code, for handing to the EV owner"""
    authorize(ctx.role, Action.READ_BOOKING_TOKEN)
    booking = BookingService(db).get_booking(ctx, booking_id)
    if not booking.qr_code:
        raise NotFound("Booking has no session token")
    return Response(content=QRService.render_png(booking.qr_code), media_type="image/png")

@router.patch("/{booking_id}/approve", response_model=Booking)
def decide_booking(
    booking_id: str,
    decision: DecisionRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Approve or reject a booking"""
    booking = BookingService(db).decide(ctx, booking_id, decision.approve, decision.reason)
    return present(booking, ctx)

@router.patch("/{booking_id}/start", response_model=Booking)
def start_session(
    booking_id: str,
    request: StartSessionRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Start a charging session with the owner's QR code"""
    booking = BookingService(db).start_session(ctx, booking_id, request.qr_code)
    return present(booking, ctx)

@router.patch("/{booking_id}/complete", response_model=Booking)
def complete_session(
    booking_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Complete a charging session"""
    booking = BookingService(db).complete_session(ctx, booking_id)
    return present(booking, ctx)

@router.patch("/{booking_id}/cancel", response_model=Booking)
def cancel_booking(
    booking_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Cancel a Pending or Approved booking"""
    booking = BookingService(db).cancel(ctx, booking_id)
    return present(booking, ctx)

@router.delete("/{booking_id}")
def delete_booking(
    booking_id: str,
    hard: bool = Query(False, description="Physically delete instead of cancelling"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Cancel a booking, or with hard=true remove it entirely"""
    service = BookingService(db)
    if hard:
        service.delete(ctx, booking_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return present(service.cancel(ctx, booking_id), ctx)
