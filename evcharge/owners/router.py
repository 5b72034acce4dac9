from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from evcharge.database import get_db
from evcharge.auth.dependencies import require
from evcharge.auth.permissions import Action
from evcharge.auth.schemas import RequestContext
from evcharge.owners.schemas import EVOwner, EVOwnerCreate, EVOwnerUpdate
from evcharge.owners.service import OwnerService

router = APIRouter()

manage_owners = require(Action.MANAGE_OWNERS)

@router.get("", response_model=List[EVOwner])
def list_owners(
    q: Optional[str] = Query(None, description="Search by NIC, name or email"),
    is_active: Optional[bool] = Query(None, alias="isActive", description="Filter by activation"),
    ctx: RequestContext = Depends(manage_owners),
    db: Session = Depends(get_db)
):
    """Get EV owners"""
    return OwnerService.list_owners(db, query=q, is_active=is_active)

@router.post("", response_model=EVOwner, status_code=status.HTTP_201_CREATED)
def create_owner(payload: EVOwnerCreate, ctx: RequestContext = Depends(manage_owners), db: Session = Depends(get_db)):
    return OwnerService.create_owner(db, payload)

@router.get("/{nic}", response_model=EVOwner)
def get_owner(nic: str, ctx: RequestContext = Depends(manage_owners), db: Session = Depends(get_db)):
    return OwnerService.get_owner_or_404(db, nic)

@router.put("/{nic}", response_model=EVOwner)
def update_owner(
    nic: str,
    payload: EVOwnerUpdate,
    ctx: RequestContext = Depends(manage_owners),
    db: Session = Depends(get_db)
):
    return OwnerService.update_owner(db, nic, payload)

@router.patch("/{nic}/status", response_model=EVOwner)
def set_owner_status(
    nic: str,
    is_active: bool = Query(..., alias="isActive"),
    ctx: RequestContext = Depends(manage_owners),
    db: Session = Depends(get_db)
):
    """Activate or deactivate an EV owner account"""
    return OwnerService.set_active(db, nic, is_active)

@router.delete("/{nic}", status_code=status.HTTP_204_NO_CONTENT)
def delete_owner(nic: str, ctx: RequestContext = Depends(manage_owners), db: Session = Depends(get_db)):
    OwnerService.delete_owner(db, nic)
