"""Static role -> rights table, fixed at import time"""

from types import MappingProxyType
from typing import FrozenSet, Mapping, Tuple

_ALL_ROLES = {
    "resident": (
        "getProfile",
        "updateProfile",
        "viewAnnouncements",
        "viewContracts",
        "createFeedbacks",
        "getFeedbacks",
        "viewInvoices",
        "getInvoices",
        "getInvoiceDetails",
        "viewServices",
        "registerService",
        "getApartments",
        "getServiceTypes",
        "getServiceRegistrations",
    ),
    "manager": (
        "getProfile",
        "updateProfile",
        "getUsers",
        "manageAnnouncements",
        "manageContracts",
        "manageFeedbacks",
        "getFeedbacks",
        "getInvoices",
        "manageInvoices",
        "getInvoiceDetails",
        "manageInvoiceDetails",
        "manageServices",
        "manageApartments",
        "manageApartmentTypes",
        "getServiceTypes",
        "manageServiceTypes",
        "getServiceRegistrations",
        "manageServiceRegistrations",
        "viewReports",
    ),
    "admin": (
        "getProfile",
        "updateProfile",
        "getUsers",
        "manageUsers",
        "manageAnnouncements",
        "manageContracts",
        "manageFeedbacks",
        "getFeedbacks",
        "getInvoices",
        "manageInvoices",
        "getInvoiceDetails",
        "manageInvoiceDetails",
        "manageServices",
        "manageApartments",
        "manageApartmentTypes",
        "getServiceTypes",
        "manageServiceTypes",
        "getServiceRegistrations",
        "manageServiceRegistrations",
        "managePermissions",
        "viewReports",
        "systemConfig",
    ),
}

DEFAULT_ROLE = "resident"

ROLES: Tuple[str, ...] = tuple(_ALL_ROLES)

ROLE_RIGHTS: Mapping[str, FrozenSet[str]] = MappingProxyType(
    {role: frozenset(rights) for role, rights in _ALL_ROLES.items()}
)

# Listing order for API responses
ROLE_RIGHTS_ORDERED: Mapping[str, Tuple[str, ...]] = MappingProxyType(dict(_ALL_ROLES))
