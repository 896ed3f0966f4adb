# Overview: Role to permission grants.

from .helpers import check_role_grants, get_all_permission_codes

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_TECHNICIAN = "technician"

VALID_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_TECHNICIAN)

_STAFF_PERMISSIONS = [
    "VIEW_INVENTORY",
    "CREATE_EXCHANGE",
    "CONFIRM_EXCHANGE",
    "CREATE_REPAIR",
    "UPDATE_REPAIR",
    "COLLECT_PAYMENT",
    "CONFIRM_COLLECTION",
    "RECORD_SALE",
    "VIEW_ACTIVITY",
]

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: get_all_permission_codes(),
    ROLE_MANAGER: _STAFF_PERMISSIONS + [
        "RECORD_PURCHASE",
        "REQUEST_ALLOCATION",
        "VIEW_PAYMENTS",
        "SETTLE_CASH",
        "VIEW_SUPPLIER_DEBTS",
    ],
    ROLE_TECHNICIAN: list(_STAFF_PERMISSIONS),
}

check_role_grants(DEFAULT_ROLE_PERMISSIONS)
