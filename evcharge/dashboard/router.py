from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from evcharge.database import get_db
from evcharge.auth.dependencies import get_request_context, require
from evcharge.auth.permissions import Action, Role
from evcharge.auth.schemas import RequestContext
from evcharge.dashboard.schemas import BackofficeSummary, OperatorSummary
from evcharge.dashboard.service import DashboardService
from evcharge.exceptions import NotAuthorized

router = APIRouter()

@router.get("/summary", response_model=BackofficeSummary)
def backoffice_summary(
    ctx: RequestContext = Depends(require(Action.READ_ALL_BOOKINGS)),
    db: Session = Depends(get_db)
):
    """Network-wide counts for the Backoffice dashboard"""
    return DashboardService.backoffice_summary(db)

@router.get("/operator", response_model=OperatorSummary)
def operator_summary(ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    """Today's counts for the stations the calling operator serves"""
    if ctx.role != Role.OPERATOR:
        raise NotAuthorized()
    return DashboardService.operator_summary(db, ctx.user_id)
