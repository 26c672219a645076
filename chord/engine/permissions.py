"""
chord.engine.permissions — Fixed-Width Permission Bit-Set
==========================================================

Roles carry a 64-bit capability mask.  This module names the bits and
wraps the raw integer in :class:`PermissionSet` so that every comparison
goes through explicit helpers instead of ad-hoc ``&`` / ``|`` arithmetic.

``ADMINISTRATOR`` is **not** "all other bits ORed together".  It is its
own bit, and any set containing it satisfies every check.  Resolution
collapses a union that contains it down to exactly ``ADMINISTRATOR``
(see :meth:`PermissionSet.collapse`), and callers rely on that form.

Usage::

    from chord.engine.permissions import Permission, PermissionSet

    perms = PermissionSet.of(Permission.SEND_MESSAGES, Permission.CONNECT)
    perms.has_bit(Permission.CONNECT)            # True
    perms.allows(Permission.MANAGE_ROLES)        # False
    PermissionSet.administrator().allows(Permission.MANAGE_ROLES)  # True
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

PERMISSION_BITS = 64
PERMISSION_MASK = (1 << PERMISSION_BITS) - 1


class Permission(enum.IntFlag):
    """Named capability bits.  Values are part of the stored data; never renumber."""
    NONE = 0

    # Administrative
    ADMINISTRATOR = 1 << 0      # bypasses every other check
    MANAGE_GUILD = 1 << 1
    MANAGE_CHANNELS = 1 << 2
    MANAGE_ROLES = 1 << 3       # only roles ranked below the actor's own
    MANAGE_MESSAGES = 1 << 4

    # Member management
    KICK_MEMBERS = 1 << 5
    BAN_MEMBERS = 1 << 6

    # Text
    SEND_MESSAGES = 1 << 7
    READ_MESSAGES = 1 << 8
    MENTION_EVERYONE = 1 << 9
    ADD_REACTIONS = 1 << 10

    # Voice
    CONNECT = 1 << 11
    SPEAK = 1 << 12
    MUTE_MEMBERS = 1 << 13
    DEAFEN_MEMBERS = 1 << 14
    MOVE_MEMBERS = 1 << 15

    # Invites
    CREATE_INVITE = 1 << 16


KNOWN_PERMISSION_BITS: int = 0
for _flag in Permission:
    KNOWN_PERMISSION_BITS |= _flag.value

# Common bundles
ALL_TEXT = Permission.SEND_MESSAGES | Permission.READ_MESSAGES | Permission.ADD_REACTIONS
ALL_VOICE = Permission.CONNECT | Permission.SPEAK
ALL_BASIC = ALL_TEXT | ALL_VOICE | Permission.CREATE_INVITE


def permission_from_name(name: str) -> Permission:
    """Look up a flag by name, accepting ``ManageRoles``, ``manage_roles`` or ``MANAGE_ROLES``."""
    normalized = "".join(ch for ch in name if ch.isalnum()).upper()
    for flag in Permission:
        if flag.name and flag.name.replace("_", "") == normalized:
            return flag
    raise ValueError(f"Unknown permission name: {name!r}")


@dataclass(frozen=True, slots=True)
class PermissionSet:
    """Immutable 64-bit capability set."""

    bits: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.bits <= PERMISSION_MASK:
            raise ValueError(f"Permission bits out of range: {self.bits}")

    # -- constructors -------------------------------------------------------
    @classmethod
    def empty(cls) -> PermissionSet:
        return cls(0)

    @classmethod
    def administrator(cls) -> PermissionSet:
        return cls(int(Permission.ADMINISTRATOR))

    @classmethod
    def of(cls, *flags: Permission | int) -> PermissionSet:
        bits = 0
        for flag in flags:
            bits |= int(flag)
        return cls(bits)

    @classmethod
    def union_all(cls, values: Iterable[int | PermissionSet]) -> PermissionSet:
        """Bitwise OR of every value (raw ints or sets).  Empty input → empty set."""
        result = cls.empty()
        for value in values:
            result = result.union(value)
        return result

    # -- queries -----------------------------------------------------------
    def has_bit(self, flag: Permission | int) -> bool:
        """Raw containment: every bit of *flag* is present.  No Administrator bypass."""
        mask = int(flag)
        return (self.bits & mask) == mask

    @property
    def is_administrator(self) -> bool:
        return bool(self.bits & Permission.ADMINISTRATOR)

    @property
    def is_empty(self) -> bool:
        return self.bits == 0

    def allows(self, required: Permission | int) -> bool:
        """Capability check used for authorization.

        Administrator short-circuits; otherwise every required bit must be held.
        """
        if self.is_administrator:
            return True
        return self.has_bit(required)

    # -- combinators -------------------------------------------------------
    def union(self, other: int | PermissionSet) -> PermissionSet:
        other_bits = other.bits if isinstance(other, PermissionSet) else int(other)
        return PermissionSet(self.bits | (other_bits & PERMISSION_MASK))

    def collapse(self) -> PermissionSet:
        """Return exactly ``ADMINISTRATOR`` if that bit is present, else ``self``."""
        if self.is_administrator:
            return PermissionSet.administrator()
        return self

    def flags(self) -> list[Permission]:
        """Named flags present in the set (unknown bits are skipped)."""
        return [
            flag for flag in Permission
            if flag is not Permission.NONE and self.has_bit(flag)
        ]

    def __int__(self) -> int:
        return self.bits

    def __repr__(self) -> str:
        names = "|".join(f.name for f in self.flags() if f.name) or "NONE"
        return f"<PermissionSet {names}>"
