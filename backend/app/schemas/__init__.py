"""Pydantic schemas for API validation"""

from app.schemas.user import (
    UserCreate,
    UserResponse,
    UserLogin,
    TokenResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from app.schemas.role import (
    RoleListResponse,
    RolePermissionsResponse,
    PermissionCheckResponse,
    RoleAssignment,
    RoleAssignmentResponse,
)
from app.schemas.response import APIResponse, HealthResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "TokenResponse",
    "ForgotPasswordRequest", "ResetPasswordRequest",
    "RoleListResponse", "RolePermissionsResponse", "PermissionCheckResponse",
    "RoleAssignment", "RoleAssignmentResponse",
    "APIResponse", "HealthResponse",
]
