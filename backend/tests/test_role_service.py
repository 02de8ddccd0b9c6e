import pytest

from app.core.exceptions import ValidationError
from app.core.roles import DEFAULT_ROLE, ROLE_RIGHTS, ROLES
from app.services.role_service import role_service


def test_roles_are_fixed():
    assert ROLES == ("resident", "manager", "admin")
    assert DEFAULT_ROLE in ROLES
    assert role_service.get_all_roles() == list(ROLES)


def test_has_permission_matches_rights_table():
    every_permission = set().union(*ROLE_RIGHTS.values())

    for role in ROLES:
        for permission in every_permission:
            expected = permission in ROLE_RIGHTS[role]
            assert role_service.has_permission(role, permission) is expected


def test_admin_holds_every_manager_right():
    assert ROLE_RIGHTS["manager"] <= ROLE_RIGHTS["admin"]
    assert "manageUsers" in ROLE_RIGHTS["admin"]
    assert "manageUsers" not in ROLE_RIGHTS["manager"]


def test_unknown_role_has_no_rights():
    assert role_service.rights_of("janitor") == frozenset()
    assert not role_service.has_permission("janitor", "getProfile")
    assert not role_service.is_valid_role("janitor")


def test_rights_table_is_read_only():
    with pytest.raises(TypeError):
        ROLE_RIGHTS["janitor"] = frozenset({"getProfile"})


def test_get_role_permissions_keeps_table_order():
    permissions = role_service.get_role_permissions("resident")

    assert permissions[0] == "getProfile"
    assert set(permissions) == ROLE_RIGHTS["resident"]


def test_get_role_permissions_rejects_unknown_role():
    with pytest.raises(ValidationError):
        role_service.get_role_permissions("janitor")


def test_missing_permissions():
    assert role_service.missing_permissions("resident", []) == []
    assert role_service.missing_permissions("resident", ["getProfile", "manageUsers", "viewReports"]) == [
        "manageUsers",
        "viewReports",
    ]
    assert role_service.missing_permissions("janitor", ["getProfile"]) == ["getProfile"]
