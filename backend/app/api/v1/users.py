"""User directory routes"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.database import get_db
from app.schemas.user import UserResponse
from app.services.user_service import user_service
from app.api.deps import require_permissions
from app.models.user import User

router = APIRouter()


@router.get("/me", response_model=UserResponse)
def get_my_profile(
    current_user: User = Depends(require_permissions("getProfile"))
):
    """
    Get current user profile
    """
    return UserResponse.model_validate(current_user)


@router.get("/", response_model=List[UserResponse])
def get_all_users(
    role: Optional[str] = None,
    current_user: User = Depends(require_permissions("getUsers")),
    db: Session = Depends(get_db)
):
    """
    List users, optionally filtered by role
    """
    return user_service.get_all_users(db, role)
