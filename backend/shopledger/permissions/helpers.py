# Overview: Permission catalog lookups used when building role grants.

from .definitions import PERMISSION_DEFINITIONS


def get_all_permission_codes():
    """Every permission code in catalog order."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def check_role_grants(role_permissions):
    """
    Raise ValueError if a role grants a code missing from the catalog.

    Called once when the role table is built.
    """
    known = set(get_all_permission_codes())
    for role, codes in role_permissions.items():
        unknown = sorted(set(codes) - known)
        if unknown:
            raise ValueError(f"Role {role!r} grants unknown permissions: {', '.join(unknown)}")
