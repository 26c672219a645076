"""
tests/test_permissions.py — Permission Bit-Set Tests
=====================================================
Pure tests of chord.engine.permissions: no database involved.
"""

from __future__ import annotations

import pytest

from chord.engine.permissions import (
    ALL_BASIC,
    KNOWN_PERMISSION_BITS,
    Permission,
    PermissionSet,
    permission_from_name,
)


class TestPermissionCatalog:
    def test_administrator_is_its_own_bit(self):
        others = 0
        for flag in Permission:
            if flag is not Permission.ADMINISTRATOR:
                others |= int(flag)
        assert others & Permission.ADMINISTRATOR == 0
        assert others != int(Permission.ADMINISTRATOR)

    def test_known_bits_cover_every_flag(self):
        for flag in Permission:
            assert KNOWN_PERMISSION_BITS & int(flag) == int(flag)
        assert KNOWN_PERMISSION_BITS == (1 << 17) - 1

    @pytest.mark.parametrize("name", ["ManageRoles", "manage_roles", "MANAGE_ROLES"])
    def test_permission_from_name_spellings(self, name):
        assert permission_from_name(name) is Permission.MANAGE_ROLES

    def test_permission_from_name_unknown(self):
        with pytest.raises(ValueError):
            permission_from_name("FlyAeroplanes")


class TestPermissionSet:
    def test_empty_allows_nothing(self):
        empty = PermissionSet.empty()
        assert empty.is_empty
        assert not empty.allows(Permission.SEND_MESSAGES)
        assert empty.flags() == []

    def test_of_combines_flags(self):
        perms = PermissionSet.of(Permission.SEND_MESSAGES, Permission.CONNECT)
        assert perms.has_bit(Permission.SEND_MESSAGES)
        assert perms.has_bit(Permission.CONNECT)
        assert not perms.has_bit(Permission.SPEAK)

    def test_has_bit_requires_every_bit(self):
        perms = PermissionSet.of(Permission.SEND_MESSAGES)
        assert not perms.has_bit(Permission.SEND_MESSAGES | Permission.READ_MESSAGES)

    def test_has_bit_has_no_administrator_bypass(self):
        admin = PermissionSet.administrator()
        assert not admin.has_bit(Permission.MANAGE_ROLES)

    def test_allows_short_circuits_on_administrator(self):
        admin = PermissionSet.administrator()
        for flag in Permission:
            assert admin.allows(flag)

    def test_union_of_disjoint_sets_is_bitwise_or(self):
        a = PermissionSet.of(Permission.SEND_MESSAGES)
        b = PermissionSet.of(Permission.CONNECT, Permission.SPEAK)
        assert a.union(b).bits == int(Permission.SEND_MESSAGES | Permission.CONNECT | Permission.SPEAK)

    def test_union_all_accepts_raw_ints(self):
        result = PermissionSet.union_all([int(Permission.KICK_MEMBERS), int(Permission.BAN_MEMBERS)])
        assert result == PermissionSet.of(Permission.KICK_MEMBERS, Permission.BAN_MEMBERS)
        assert PermissionSet.union_all([]) == PermissionSet.empty()

    def test_collapse_keeps_exactly_administrator(self):
        mixed = PermissionSet.of(Permission.ADMINISTRATOR, Permission.SEND_MESSAGES, Permission.BAN_MEMBERS)
        collapsed = mixed.collapse()
        assert collapsed.bits == int(Permission.ADMINISTRATOR)
        assert collapsed.flags() == [Permission.ADMINISTRATOR]

    def test_collapse_without_administrator_is_identity(self):
        perms = PermissionSet(int(ALL_BASIC))
        assert perms.collapse() == perms

    def test_rejects_out_of_range_bits(self):
        with pytest.raises(ValueError):
            PermissionSet(-1)
        with pytest.raises(ValueError):
            PermissionSet(1 << 64)

    def test_sets_are_immutable(self):
        perms = PermissionSet.empty()
        with pytest.raises(AttributeError):
            perms.bits = 5  # type: ignore[misc]

    def test_repr_names_flags(self):
        assert "MANAGE_ROLES" in repr(PermissionSet.of(Permission.MANAGE_ROLES))
        assert "NONE" in repr(PermissionSet.empty())
