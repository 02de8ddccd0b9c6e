"""User service - the user directory consulted by the auth core"""

from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, timezone
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse
from app.core.security import get_password_hash, verify_password
from app.core.exceptions import (
    InvalidCredentialsError,
    ResourceNotFoundError,
    ValidationError,
)
from app.services.role_service import role_service
import logging

logger = logging.getLogger(__name__)


class UserService:
    """Service for user management"""

    @staticmethod
    def create_user(db: Session, user_data: UserCreate) -> User:
        """
        Create new user

        Args:
            db: Database session
            user_data: User creation data

        Returns:
            Created user
        """
        existing = db.query(User).filter(User.email == user_data.email).first()
        if existing:
            raise ValidationError(f"Email '{user_data.email}' already registered")

        if not role_service.is_valid_role(user_data.role):
            raise ValidationError(f"Invalid role: {user_data.role}")

        user = User(
            email=user_data.email,
            full_name=user_data.full_name,
            password_hash=get_password_hash(user_data.password),
            role=user_data.role,
        )

        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"Created user: {user.email} (role: {user.role})")
        return user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> User:
        """
        Authenticate user by email and password

        Args:
            db: Database session
            email: Email address
            password: Password

        Returns:
            Authenticated user

        Raises:
            InvalidCredentialsError: Unknown email, wrong password or disabled account
        """
        user = db.query(User).filter(User.email == email.strip().lower()).first()

        if not verify_password(password, user.password_hash if user else None):
            if user:
                logger.info(f"Failed login for user id {user.id}")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.info(f"Login attempt for disabled user id {user.id}")
            raise InvalidCredentialsError()

        user.last_login = datetime.now(timezone.utc)
        db.commit()

        logger.info(f"User authenticated: {user.id}")
        return user

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email.strip().lower()).first()

    @staticmethod
    def resolve_principal(db: Session, user_id: int) -> Optional[User]:
        """Active user for a token subject, or None"""
        user = UserService.get_user_by_id(db, user_id)
        return user if user and user.is_active else None

    @staticmethod
    def get_all_users(db: Session, role: Optional[str] = None) -> List[UserResponse]:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        return [UserResponse.model_validate(user) for user in query.order_by(User.id).all()]

    @staticmethod
    def set_password(db: Session, user_id: int, new_password: str) -> User:
        user = UserService.get_user_by_id(db, user_id)
        if not user:
            raise ResourceNotFoundError("User")
        user.password_hash = get_password_hash(new_password)
        db.commit()
        logger.info(f"Password changed for user id {user_id}")
        return user

    @staticmethod
    def assign_role(db: Session, user_id: int, role: str) -> User:
        """
        Assign a role to a user

        Raises:
            ValidationError: If the role does not exist
            ResourceNotFoundError: If the user does not exist
        """
        if not role_service.is_valid_role(role):
            raise ValidationError(f"Invalid role: {role}")

        user = UserService.get_user_by_id(db, user_id)
        if not user:
            raise ResourceNotFoundError("User")

        user.role = role
        db.commit()
        db.refresh(user)
        logger.info(f"Assigned role '{role}' to user id {user_id}")
        return user


# Singleton instance
user_service = UserService()
