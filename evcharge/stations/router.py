from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from evcharge.database import get_db
from evcharge.auth.dependencies import get_request_context, require
from evcharge.auth.permissions import Action, authorize, requires_assignment
from evcharge.auth.schemas import RequestContext
from evcharge.auth.service import AuthService
from evcharge.stations.schemas import (
    Station, StationCreate, StationUpdate, StationSearch, StationType, OperatorAssignment
)
from evcharge.stations.service import StationService
from evcharge.exceptions import ValidationError

router = APIRouter()

manage_stations = require(Action.MANAGE_STATIONS)

def resolve_operators(db: Session, user_ids: List[str]):
    """Eligible operators for the given ids; any unknown, inactive or non-Operator id is rejected"""
    unique_ids = list(dict.fromkeys(user_ids))
    operators = AuthService.get_assignable_operators(db, unique_ids)
    found = {user.id for user in operators}
    missing = [user_id for user_id in unique_ids if user_id not in found]
    if missing:
        raise ValidationError(f"Only active operators can be assigned: {', '.join(missing)}")
    return operators

@router.get("", response_model=List[Station])
def list_stations(
    query: Optional[str] = Query(None, description="Search by station ID, name or address"),
    type: Optional[StationType] = Query(None, description="Filter by charger type"),
    is_active: Optional[bool] = Query(None, alias="isActive", description="Filter by activation"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Get stations with optional filters"""
    authorize(ctx.role, Action.LIST_STATIONS)
    search = StationSearch(query=query, type=type, is_active=is_active)
    return StationService.list_stations(db, search=search)

@router.get("/{station_id}", response_model=Station)
def get_station(
    station_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Get station details by ID"""
    authorize(ctx.role, Action.LIST_STATIONS)
    return StationService.get_station_or_404(db, station_id)

@router.post("", response_model=Station, status_code=status.HTTP_201_CREATED)
def create_station(
    payload: StationCreate,
    ctx: RequestContext = Depends(manage_stations),
    db: Session = Depends(get_db)
):
    """Create a station"""
    operators = resolve_operators(db, payload.operator_user_ids)
    return StationService.create_station(db, payload, operators)

@router.put("/{station_id}", response_model=Station)
def update_station(
    station_id: str,
    payload: StationUpdate,
    ctx: RequestContext = Depends(manage_stations),
    db: Session = Depends(get_db)
):
    """Edit a station"""
    operators = None
    if payload.operator_user_ids is not None:
        operators = resolve_operators(db, payload.operator_user_ids)
    return StationService.update_station(db, station_id, payload, operators)

@router.delete("/{station_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_station(
    station_id: str,
    ctx: RequestContext = Depends(manage_stations),
    db: Session = Depends(get_db)
):
    """Delete a station without booking history"""
    StationService.delete_station(db, station_id)

@router.patch("/{station_id}/slots", response_model=Station)
def set_station_slots(
    station_id: str,
    available_slots: int = Query(..., alias="availableSlots", description="New available slot count"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Set available slots (Backoffice, or an operator assigned to the station)"""
    assigned = False
    if requires_assignment(ctx.role, Action.EDIT_STATION_CAPACITY):
        assigned = StationService.is_operator_assigned(db, station_id, ctx.user_id)
    authorize(ctx.role, Action.EDIT_STATION_CAPACITY, assigned=assigned)
    return StationService.set_slots(db, station_id, available_slots)

@router.patch("/{station_id}/status", response_model=Station)
def set_station_status(
    station_id: str,
    is_active: bool = Query(..., alias="isActive", description="Activate or deactivate"),
    ctx: RequestContext = Depends(manage_stations),
    db: Session = Depends(get_db)
):
    """Activate or deactivate a station"""
    return StationService.set_active(db, station_id, is_active)

@router.put("/{station_id}/operators", response_model=Station)
def assign_station_operators(
    station_id: str,
    payload: OperatorAssignment,
    ctx: RequestContext = Depends(manage_stations),
    db: Session = Depends(get_db)
):
    """Replace the operators assigned to a station"""
    StationService.get_station_or_404(db, station_id)
    operators = resolve_operators(db, payload.operator_user_ids)
    return StationService.assign_operators(db, station_id, operators)
