"""
Role tiers & owner scope
"""

import pytest

from services.permissions import (
    Requester,
    Role,
    build_owner_filter,
    is_privileged,
    non_privileged_role_filter,
)
from tests.fake_db import matches


class TestRoleMapping:

    @pytest.mark.parametrize("raw,expected", [
        ("admin", Role.ADMIN),
        ("Admin", Role.ADMIN),
        ("SuperAdmin", Role.SUPER_ADMIN),
        ("super_admin", Role.SUPER_ADMIN),
        ("super-admin", Role.SUPER_ADMIN),
        ("SUPERADMIN", Role.SUPER_ADMIN),
        ("Super-Admin ", Role.SUPER_ADMIN),
        (" ADMIN", Role.ADMIN),
        ("administrator", Role.STANDARD),
        ("sales_admin", Role.STANDARD),
        ("sales", Role.STANDARD),
        ("", Role.STANDARD),
        (None, Role.STANDARD),
    ])
    def test_from_value(self, raw, expected):
        assert Role.from_value(raw) == expected

    def test_is_privileged(self):
        assert is_privileged("admin")
        assert is_privileged(Role.SUPER_ADMIN)
        assert not is_privileged("manager")


class TestOwnerScope:

    def test_standard_user_scoped_to_self(self):
        requester = Requester.from_user({"id": "7", "role": "sales"})
        assert requester.id == 7
        assert requester.owner_scope == 7

    def test_admin_sees_all(self):
        assert Requester(id=1, role=Role.ADMIN).owner_scope is None
        assert Requester(id=1, role=Role.SUPER_ADMIN).owner_scope is None

    def test_build_owner_filter(self):
        assert build_owner_filter(None) == {}
        assert build_owner_filter(3) == {"owner_id": 3}
        assert build_owner_filter(3, field="created_by_id") == {"created_by_id": 3}


class TestAttendancePoolRoleFilter:

    @pytest.mark.parametrize("raw", ["admin", "Admin", "SuperAdmin", "Superadmin", "SUPERADMIN",
                                     "super_admin", "super-admin", "Super-Admin "])
    def test_admin_tier_excluded(self, raw):
        assert is_privileged(raw)
        assert not matches({"role": raw}, non_privileged_role_filter())

    @pytest.mark.parametrize("raw", ["sales", "manager", "administrator", "sales_admin", ""])
    def test_standard_roles_kept(self, raw):
        assert not is_privileged(raw)
        assert matches({"role": raw}, non_privileged_role_filter())

    def test_missing_role_kept(self):
        assert matches({"id": 1}, non_privileged_role_filter())
