"""
chord.services.hierarchy_service — Role Hierarchy Authority
============================================================

Decides whether an actor may manage a particular role.  Rank is the
role ``position``: lower number = more authority.  An actor may only
manage roles *strictly below* their own highest rank, never a role at or
above it, and never a system role except through the owner bypass.

``can_manage`` order of evaluation:

1. guild owner            → True
2. lacks ManageRoles      → False
3. target missing         → False
4. target is system role  → False
5. otherwise              → target.position > actor's highest rank

Higher-level operations (rename, delete, manual assign/remove) reject
system roles on their own, so the owner bypass here never lets anyone
edit Owner or General through those entry points.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from chord.constants import GENERAL_POSITION
from chord.database.models import Role
from chord.engine.permissions import Permission
from chord.errors import ForbiddenError
from chord.services import permission_service, role_catalog
from chord.services.guild_service import is_owner


def highest_rank(session: Session, guild_id: str, user_id: str) -> int:
    """Best (lowest) position the user holds; the General sentinel if they hold none."""
    position = role_catalog.member_highest_position(session, guild_id, user_id)
    return GENERAL_POSITION if position is None else position


def can_manage(session: Session, guild_id: str, actor_id: str, target_role_id: str) -> bool:
    if is_owner(session, guild_id, actor_id):
        return True

    if not permission_service.has(session, guild_id, actor_id, Permission.MANAGE_ROLES):
        return False

    target = role_catalog.get_role(session, target_role_id)
    if target is None or target.guild_id != guild_id:
        return False
    if target.is_system_role:
        return False

    return target.position > highest_rank(session, guild_id, actor_id)


def require_manage(
    session: Session,
    guild_id: str,
    actor_id: str,
    target_role_id: str,
    message: str | None = None,
) -> None:
    if not can_manage(session, guild_id, actor_id, target_role_id):
        raise ForbiddenError(message or "You don't have permission to manage this role")


def require_outranks_all(
    session: Session,
    guild_id: str,
    actor_id: str,
    roles: Iterable[Role],
    message: str | None = None,
) -> None:
    """Every role must sit strictly below the actor's highest rank (owner exempt)."""
    if is_owner(session, guild_id, actor_id):
        return
    rank = highest_rank(session, guild_id, actor_id)
    for role in roles:
        if role.position <= rank:
            raise ForbiddenError(message or "Cannot reorder roles above your own role")
