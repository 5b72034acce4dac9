from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import timedelta
import logging

from evcharge.database import get_db
from evcharge.auth.schemas import LoginRequest, AuthResponse, RequestContext, Me
from evcharge.auth.service import AuthService
from evcharge.auth.utils import create_access_token
from evcharge.auth.dependencies import get_request_context
from evcharge.config import settings
from evcharge.exceptions import AuthenticationFailed, SessionExpired

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/login", response_model=AuthResponse)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Exchange username and password for a bearer credential"""
    user = AuthService.authenticate(db, login_data.username, login_data.password)
    if not user:
        logger.warning(f"Failed login for {login_data.username!r}")
        raise AuthenticationFailed()

    access_token = create_access_token(
        data={"sub": user.id, "role": user.role},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    logger.info(f"User {user.username} signed in as {user.role}")
    return AuthResponse(
        access_token=access_token,
        token_type="bearer",
        role=user.role,
        username=user.username,
        user_id=user.id
    )

@router.get("/me", response_model=Me)
def read_me(ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    """Get the current user's profile"""
    user = AuthService.get_user_by_id(db, ctx.user_id)
    if not user:
        raise SessionExpired()
    return user
