# Overview: Pytest coverage for the permission catalog and role grants.

import pytest

from shopledger.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_TECHNICIAN,
    check_role_grants,
    get_all_permission_codes,
)


class TestRoleGrants:
    def test_admin_holds_every_code(self):
        assert set(DEFAULT_ROLE_PERMISSIONS[ROLE_ADMIN]) == set(get_all_permission_codes())

    def test_manager_extends_technician(self):
        technician = set(DEFAULT_ROLE_PERMISSIONS[ROLE_TECHNICIAN])
        manager = set(DEFAULT_ROLE_PERMISSIONS[ROLE_MANAGER])
        assert technician < manager
        assert "APPROVE_ALLOCATION" not in manager

    def test_shipped_grants_are_in_catalog(self):
        check_role_grants(DEFAULT_ROLE_PERMISSIONS)

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError, match="APPROVE_EVERYTHING"):
            check_role_grants({ROLE_MANAGER: ["VIEW_INVENTORY", "APPROVE_EVERYTHING"]})
