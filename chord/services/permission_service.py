"""
chord.services.permission_service — Effective Permission Resolution
====================================================================

Resolves what a user may do in a guild:

1. The guild owner gets the Administrator set, no role lookup at all.
2. Everyone else gets the bitwise OR of every role they hold there.
3. If that union contains Administrator it collapses to *exactly*
   Administrator; downstream checks rely on seeing the collapsed form.
4. No roles (or no such guild) → the empty set.

Reads only; safe to call concurrently.  A check racing a concurrent role
edit may see the pre-edit state, which the next request corrects.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from chord.engine.permissions import Permission, PermissionSet
from chord.errors import ForbiddenError
from chord.services import role_catalog
from chord.services.guild_service import get_guild


def resolve(session: Session, guild_id: str, user_id: str) -> PermissionSet:
    """Return the effective permission set of *user_id* in *guild_id*."""
    guild = get_guild(session, guild_id)
    if guild is None:
        return PermissionSet.empty()
    if guild.owner_id == user_id:
        return PermissionSet.administrator()

    masks = role_catalog.member_permission_masks(session, guild_id, user_id)
    return PermissionSet.union_all(masks).collapse()


def has(session: Session, guild_id: str, user_id: str, permission: Permission | int) -> bool:
    """True if the user holds every bit of *permission* (Administrator satisfies anything)."""
    return resolve(session, guild_id, user_id).allows(permission)


def require(
    session: Session,
    guild_id: str,
    user_id: str,
    permission: Permission,
    message: str | None = None,
) -> None:
    """Raise :class:`ForbiddenError` unless :func:`has` is true."""
    if not has(session, guild_id, user_id, permission):
        raise ForbiddenError(
            message or f"You don't have the required permission: {_describe(permission)}"
        )


def _describe(permission: Permission | int) -> str:
    names = [flag.name for flag in PermissionSet(int(permission)).flags() if flag.name]
    return ", ".join(names) or str(int(permission))
