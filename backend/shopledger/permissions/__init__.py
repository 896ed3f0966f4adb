# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    ALLOCATION_PERMISSIONS,
    EXCHANGE_PERMISSIONS,
    REPAIR_PERMISSIONS,
    PAYMENT_PERMISSIONS,
    SUPPLIER_PERMISSIONS,
    SALES_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, VALID_ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_TECHNICIAN
from .helpers import check_role_grants, get_all_permission_codes

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "ALLOCATION_PERMISSIONS",
    "EXCHANGE_PERMISSIONS",
    "REPAIR_PERMISSIONS",
    "PAYMENT_PERMISSIONS",
    "SUPPLIER_PERMISSIONS",
    "SALES_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "VALID_ROLES",
    "ROLE_ADMIN",
    "ROLE_MANAGER",
    "ROLE_TECHNICIAN",
    "get_all_permission_codes",
    "check_role_grants",
]
