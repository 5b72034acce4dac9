from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from evcharge.database import get_db
from evcharge.auth.utils import verify_token
from evcharge.auth.service import AuthService
from evcharge.auth.schemas import RequestContext
from evcharge.auth.permissions import Role, Action, authorize
from evcharge.exceptions import SessionExpired

bearer_scheme = HTTPBearer(auto_error=False)

def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> RequestContext:
    """Resolve the caller from the bearer credential"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise SessionExpired("Missing bearer credential")

    payload = verify_token(credentials.credentials)

    user = AuthService.get_user_by_id(db, user_id=payload["sub"])
    if user is None or not user.is_active:
        raise SessionExpired("Could not validate credentials")

    try:
        role = Role(payload["role"])
    except ValueError:
        raise SessionExpired("Could not validate credentials")

    return RequestContext(user_id=user.id, username=user.username, role=role)

def require(action: Action):
    """Dependency factory: the caller's role must hold `action` regardless of station assignment"""
    def dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        authorize(ctx.role, action)
        return ctx
    return dependency
