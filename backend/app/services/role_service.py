"""Role and permission queries over the static rights table"""

from typing import FrozenSet, Iterable, List

from app.core.exceptions import ValidationError
from app.core.roles import ROLES, ROLE_RIGHTS, ROLE_RIGHTS_ORDERED


class RoleService:
    """Read-only permission registry"""

    @staticmethod
    def get_all_roles() -> List[str]:
        return list(ROLES)

    @staticmethod
    def is_valid_role(role: str) -> bool:
        return role in ROLE_RIGHTS

    @staticmethod
    def rights_of(role: str) -> FrozenSet[str]:
        """Rights held by ``role``; empty for an unknown role."""
        return ROLE_RIGHTS.get(role, frozenset())

    @staticmethod
    def get_role_permissions(role: str) -> List[str]:
        """
        List permissions for a role

        Args:
            role: Role name

        Returns:
            Permissions in table order

        Raises:
            ValidationError: If the role does not exist
        """
        if role not in ROLE_RIGHTS_ORDERED:
            raise ValidationError(f"Role '{role}' does not exist")
        return list(ROLE_RIGHTS_ORDERED[role])

    @staticmethod
    def has_permission(role: str, permission: str) -> bool:
        return permission in RoleService.rights_of(role)

    @staticmethod
    def missing_permissions(role: str, required: Iterable[str]) -> List[str]:
        rights = RoleService.rights_of(role)
        return [permission for permission in required if permission not in rights]


role_service = RoleService()
