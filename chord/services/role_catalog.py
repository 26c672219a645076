"""
chord.services.role_catalog — Role & Assignment Data Access
============================================================

Pure data access over ``roles`` and ``guild_member_roles``.  No policy
lives here: callers decide *whether* something may happen, these helpers
only read or write rows inside the caller's session.

All helpers take an open :class:`Session` and never commit.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from chord.config import DEFAULT_CONFIG, ChordConfig
from chord.constants import (
    GENERAL_POSITION,
    MAX_CUSTOM_POSITION,
    OWNER_POSITION,
)
from chord.database.models import GuildMemberRole, Role
from chord.engine.permissions import PermissionSet

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Role reads
# ---------------------------------------------------------------------------
def get_role(session: Session, role_id: str) -> Role | None:
    return session.get(Role, role_id)


def guild_roles(session: Session, guild_id: str) -> list[Role]:
    """Every role of the guild, highest rank first."""
    return list(session.scalars(
        select(Role)
        .where(Role.guild_id == guild_id)
        .order_by(Role.position, Role.created_at)
    ).all())


def custom_roles(session: Session, guild_id: str, *, for_update: bool = False) -> list[Role]:
    """Non-system roles of the guild, optionally row-locked for a reorder."""
    stmt = (
        select(Role)
        .where(Role.guild_id == guild_id, Role.is_system_role.is_(False))
        .order_by(Role.position)
    )
    if for_update:
        stmt = stmt.with_for_update()
    return list(session.scalars(stmt).all())


def find_role_by_name(session: Session, guild_id: str, name: str) -> Role | None:
    return session.scalar(
        select(Role).where(Role.guild_id == guild_id, Role.name == name)
    )


def system_role(session: Session, guild_id: str, position: int) -> Role | None:
    """The Owner (position 0) or General (position 999) role of a guild."""
    return session.scalar(
        select(Role).where(
            Role.guild_id == guild_id,
            Role.is_system_role.is_(True),
            Role.position == position,
        )
    )


def next_custom_position(session: Session, guild_id: str) -> int | None:
    """Next free custom rank (max below General + 1), or ``None`` if exhausted."""
    highest = session.scalar(
        select(func.max(Role.position)).where(
            Role.guild_id == guild_id, Role.position < GENERAL_POSITION
        )
    )
    position = (highest if highest is not None else OWNER_POSITION) + 1
    if position > MAX_CUSTOM_POSITION:
        return None
    return position


def member_counts(session: Session, guild_id: str) -> dict[str, int]:
    """``{role_id: number of holders}`` for every role with at least one holder."""
    rows = session.execute(
        select(GuildMemberRole.role_id, func.count())
        .where(GuildMemberRole.guild_id == guild_id)
        .group_by(GuildMemberRole.role_id)
    ).all()
    return {role_id: count for role_id, count in rows}


# ---------------------------------------------------------------------------
# Assignment reads
# ---------------------------------------------------------------------------
def member_roles(session: Session, guild_id: str, user_id: str) -> list[Role]:
    """Roles held by *user_id* in *guild_id*, highest rank first."""
    return list(session.scalars(
        select(Role)
        .join(GuildMemberRole, GuildMemberRole.role_id == Role.id)
        .where(
            GuildMemberRole.guild_id == guild_id,
            GuildMemberRole.user_id == user_id,
        )
        .order_by(Role.position)
    ).all())


def member_permission_masks(session: Session, guild_id: str, user_id: str) -> list[int]:
    return list(session.scalars(
        select(Role.permissions)
        .join(GuildMemberRole, GuildMemberRole.role_id == Role.id)
        .where(
            GuildMemberRole.guild_id == guild_id,
            GuildMemberRole.user_id == user_id,
        )
    ).all())


def member_highest_position(session: Session, guild_id: str, user_id: str) -> int | None:
    """Minimum position among the member's roles, ``None`` if they hold none."""
    return session.scalar(
        select(func.min(Role.position))
        .join(GuildMemberRole, GuildMemberRole.role_id == Role.id)
        .where(
            GuildMemberRole.guild_id == guild_id,
            GuildMemberRole.user_id == user_id,
        )
    )


def get_assignment(
    session: Session, guild_id: str, user_id: str, role_id: str
) -> GuildMemberRole | None:
    return session.get(GuildMemberRole, (guild_id, user_id, role_id))


# ---------------------------------------------------------------------------
# Writes (caller commits)
# ---------------------------------------------------------------------------
def add_assignment(session: Session, guild_id: str, user_id: str, role_id: str) -> bool:
    """Assign a role.  Returns ``False`` if it was already assigned."""
    if get_assignment(session, guild_id, user_id, role_id) is not None:
        return False
    session.add(GuildMemberRole(guild_id=guild_id, user_id=user_id, role_id=role_id))
    return True


def remove_assignment(session: Session, guild_id: str, user_id: str, role_id: str) -> bool:
    """Unassign a role.  Returns ``False`` if it wasn't assigned."""
    assignment = get_assignment(session, guild_id, user_id, role_id)
    if assignment is None:
        return False
    session.delete(assignment)
    return True


def delete_role_assignments(session: Session, role_id: str) -> int:
    """Delete every assignment of *role_id*.  Returns the number removed."""
    result = session.execute(
        delete(GuildMemberRole).where(GuildMemberRole.role_id == role_id)
    )
    return result.rowcount or 0


def delete_member_assignments(session: Session, guild_id: str, user_id: str) -> int:
    result = session.execute(
        delete(GuildMemberRole).where(
            GuildMemberRole.guild_id == guild_id,
            GuildMemberRole.user_id == user_id,
        )
    )
    return result.rowcount or 0


def create_system_roles(
    session: Session,
    guild_id: str,
    owner_id: str,
    cfg: ChordConfig = DEFAULT_CONFIG,
) -> tuple[Role, Role]:
    """Create the Owner and General roles and give both to the guild owner.

    The owner must already be a member row in this session.
    """
    owner_role = Role(
        guild_id=guild_id,
        name=cfg.owner_role_name,
        color=cfg.owner_role_color,
        position=OWNER_POSITION,
        permissions=int(PermissionSet.administrator()),
        is_system_role=True,
    )
    general_role = Role(
        guild_id=guild_id,
        name=cfg.general_role_name,
        color=cfg.general_role_color,
        position=GENERAL_POSITION,
        permissions=int(cfg.general_permissions),
        is_system_role=True,
    )
    session.add_all([owner_role, general_role])
    session.flush()

    add_assignment(session, guild_id, owner_id, owner_role.id)
    add_assignment(session, guild_id, owner_id, general_role.id)
    session.flush()
    logger.info("Default roles created for guild %s", guild_id)
    return owner_role, general_role
