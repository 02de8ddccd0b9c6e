"""Role and permission routes"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.role import (
    RoleListResponse,
    RolePermissionsResponse,
    PermissionCheckResponse,
    RoleAssignment,
    RoleAssignmentResponse,
)
from app.services.role_service import role_service
from app.services.user_service import user_service
from app.api.deps import require_permissions
from app.models.user import User

router = APIRouter()


@router.get("/", response_model=RoleListResponse)
def list_roles(
    current_user: User = Depends(require_permissions("systemConfig"))
):
    return RoleListResponse(roles=role_service.get_all_roles())


@router.get("/{role}/permissions", response_model=RolePermissionsResponse)
def get_role_permissions(
    role: str,
    current_user: User = Depends(require_permissions("systemConfig"))
):
    """
    List a role's permissions; 400 for an unknown role
    """
    return RolePermissionsResponse(role=role, permissions=role_service.get_role_permissions(role))


@router.get("/{role}/permissions/{permission}", response_model=PermissionCheckResponse)
def check_role_permission(
    role: str,
    permission: str,
    current_user: User = Depends(require_permissions("systemConfig"))
):
    return PermissionCheckResponse(
        role=role,
        permission=permission,
        has_permission=role_service.has_permission(role, permission),
    )


@router.post("/assign/{user_id}", response_model=RoleAssignmentResponse)
def assign_role(
    user_id: int,
    body: RoleAssignment,
    current_user: User = Depends(require_permissions("manageUsers")),
    db: Session = Depends(get_db)
):
    """
    Assign a role to a user
    """
    user = user_service.assign_role(db, user_id, body.role)
    return RoleAssignmentResponse(
        message=f"Role '{user.role}' assigned to user {user.id} successfully",
        user_id=user.id,
        role=user.role,
    )
