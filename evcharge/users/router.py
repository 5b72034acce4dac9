from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from evcharge.database import get_db
from evcharge.auth.dependencies import require
from evcharge.auth.permissions import Action, Role
from evcharge.auth.schemas import RequestContext
from evcharge.users.schemas import User, UserCreate, UserUpdate
from evcharge.users.service import UserService

router = APIRouter()

manage_users = require(Action.MANAGE_USERS)

@router.get("", response_model=List[User])
def list_users(
    role: Optional[Role] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, alias="isActive", description="Filter by activation"),
    ctx: RequestContext = Depends(manage_users),
    db: Session = Depends(get_db)
):
    """Get console users"""
    return UserService.list_users(db, role=role, is_active=is_active)

@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, ctx: RequestContext = Depends(manage_users), db: Session = Depends(get_db)):
    return UserService.create_user(db, payload)

@router.get("/{user_id}", response_model=User)
def get_user(user_id: str, ctx: RequestContext = Depends(manage_users), db: Session = Depends(get_db)):
    return UserService.get_user_or_404(db, user_id)

@router.put("/{user_id}", response_model=User)
def update_user(
    user_id: str,
    payload: UserUpdate,
    ctx: RequestContext = Depends(manage_users),
    db: Session = Depends(get_db)
):
    return UserService.update_user(db, user_id, payload)

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, ctx: RequestContext = Depends(manage_users), db: Session = Depends(get_db)):
    UserService.delete_user(db, user_id, acting_user_id=ctx.user_id)
