from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
import logging

from evcharge.models import User
from evcharge.auth.permissions import Role
from evcharge.auth.utils import get_password_hash
from evcharge.users.schemas import UserCreate, UserUpdate
from evcharge.exceptions import ConflictError, NotFound
from evcharge.utils import utcnow

logger = logging.getLogger(__name__)

class UserService:
    @staticmethod
    def list_users(db: Session, role: Optional[Role] = None, is_active: Optional[bool] = None) -> List[User]:
        query = db.query(User)
        if role is not None:
            query = query.filter(User.role == role.value)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        return query.order_by(User.username).all()

    @staticmethod
    def get_user_or_404(db: Session, user_id: str) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFound("User not found")
        return user

    @staticmethod
    def create_user(db: Session, user: UserCreate) -> User:
        """Create a console user"""
        db_user = User(
            username=user.username,
            password_hash=get_password_hash(user.password),
            role=user.role.value,
            is_active=user.is_active
        )
        try:
            db.add(db_user)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Username already exists")
        db.refresh(db_user)
        logger.info(f"User {db_user.username} created as {db_user.role}")
        return db_user

    @staticmethod
    def update_user(db: Session, user_id: str, user_update: UserUpdate) -> User:
        """Update user information"""
        db_user = UserService.get_user_or_404(db, user_id)

        update_data = user_update.model_dump(exclude_unset=True)
        update_data = {field: value for field, value in update_data.items() if value is not None}

        if "password" in update_data:
            update_data["password_hash"] = get_password_hash(update_data.pop("password"))
        if "role" in update_data:
            update_data["role"] = update_data["role"].value

        for field, value in update_data.items():
            setattr(db_user, field, value)

        # Operators that are demoted or deactivated lose their station assignments
        if db_user.role != Role.OPERATOR.value or not db_user.is_active:
            db_user.stations = []

        db_user.updated_utc = utcnow()
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Username already exists")
        db.refresh(db_user)
        return db_user

    @staticmethod
    def delete_user(db: Session, user_id: str, acting_user_id: str) -> None:
        db_user = UserService.get_user_or_404(db, user_id)
        if db_user.id == acting_user_id:
            raise ConflictError("You cannot delete your own account")
        db_user.stations = []
        db.delete(db_user)
        db.commit()
        logger.info(f"User {db_user.username} deleted")
