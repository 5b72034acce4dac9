from sqlalchemy.orm import Session
from typing import List, Optional

from evcharge.models import User
from evcharge.auth.permissions import Role
from evcharge.auth.utils import verify_password

class AuthService:
    @staticmethod
    def get_user_by_username(db: Session, username: str) -> Optional[User]:
        """Get user by username"""
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def authenticate(db: Session, username: str, password: str) -> Optional[User]:
        """Authenticate an active console user with username and password"""
        user = AuthService.get_user_by_username(db, username)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        if not user.is_active:
            return None
        return user

    @staticmethod
    def get_assignable_operators(db: Session, user_ids: List[str]) -> List[User]:
        """Active Operators among the given ids; only these may be assigned to a station"""
        if not user_ids:
            return []
        return db.query(User).filter(
            User.id.in_(user_ids),
            User.role == Role.OPERATOR.value,
            User.is_active.is_(True)
        ).all()
