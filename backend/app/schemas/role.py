"""Role and permission schemas"""

from typing import List

from pydantic import BaseModel, Field


class RoleListResponse(BaseModel):
    roles: List[str]


class RolePermissionsResponse(BaseModel):
    role: str
    permissions: List[str]


class PermissionCheckResponse(BaseModel):
    role: str
    permission: str
    has_permission: bool


class RoleAssignment(BaseModel):
    role: str = Field(..., min_length=1, max_length=20)


class RoleAssignmentResponse(BaseModel):
    message: str
    user_id: int
    role: str
