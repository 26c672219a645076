"""
chord.services.guild_service — Guild Lookup, Membership & Bootstrap
====================================================================

The two lookups every authorization decision needs (``get_guild`` for the
owner id, ``is_member``) plus the guild lifecycle operations that keep
the implicit-grant invariant true:

- every member holds the General role;
- the guild owner additionally holds the Owner role;
- nothing else is granted implicitly.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from chord.config import DEFAULT_CONFIG, ChordConfig
from chord.constants import GENERAL_POSITION, GUILD_NAME_MAX_LENGTH
from chord.database.engine import get_session
from chord.database.models import (
    AuditAction,
    Channel,
    Guild,
    GuildMember,
    GuildMemberRole,
    Role,
)
from chord.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from chord.services import role_catalog
from chord.services.audit_service import AuditSink, emit_audit

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookups (session-level, read-only)
# ---------------------------------------------------------------------------
def get_guild(session: Session, guild_id: str) -> Guild | None:
    return session.get(Guild, guild_id)


def require_guild(session: Session, guild_id: str) -> Guild:
    guild = session.get(Guild, guild_id)
    if guild is None:
        raise NotFoundError("Guild not found")
    return guild


def is_owner(session: Session, guild_id: str, user_id: str) -> bool:
    guild = session.get(Guild, guild_id)
    return guild is not None and guild.owner_id == user_id


def is_member(session: Session, guild_id: str, user_id: str) -> bool:
    return session.get(GuildMember, (guild_id, user_id)) is not None


def require_member(session: Session, guild_id: str, user_id: str) -> None:
    if not is_member(session, guild_id, user_id):
        raise ForbiddenError("You are not a member of this guild")


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
def create_guild(
    engine: Engine,
    owner_id: str,
    name: str,
    *,
    cfg: ChordConfig = DEFAULT_CONFIG,
    audit: AuditSink | None = None,
) -> dict:
    """Create a guild, make *owner_id* its first member, and bootstrap the
    Owner + General system roles, in one transaction."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Guild name cannot be empty")
    if len(name) > GUILD_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Guild name must be at most {GUILD_NAME_MAX_LENGTH} characters"
        )

    with get_session(engine) as session:
        guild = Guild(name=name, owner_id=owner_id)
        session.add(guild)
        session.flush()
        session.add(GuildMember(guild_id=guild.id, user_id=owner_id))
        session.flush()
        role_catalog.create_system_roles(session, guild.id, owner_id, cfg)
        result = _guild_to_dict(guild)

    logger.info("Guild %s created by user %s", result["id"], owner_id)
    emit_audit(
        audit,
        actor_id=owner_id,
        action=AuditAction.GUILD_CREATED,
        target_type="Guild",
        target_id=result["id"],
        guild_id=result["id"],
        changes={"name": name},
    )
    return result


def add_member(
    engine: Engine,
    guild_id: str,
    user_id: str,
    *,
    audit: AuditSink | None = None,
) -> bool:
    """Join *user_id* to the guild and give them the General role.

    Returns ``False`` (and changes nothing) if they are already a member.
    """
    with get_session(engine) as session:
        require_guild(session, guild_id)
        if is_member(session, guild_id, user_id):
            return False

        session.add(GuildMember(guild_id=guild_id, user_id=user_id))
        session.flush()

        general = role_catalog.system_role(session, guild_id, GENERAL_POSITION)
        if general is None:
            logger.warning("General role not found for guild %s", guild_id)
        else:
            role_catalog.add_assignment(session, guild_id, user_id, general.id)

    logger.info("User %s joined guild %s", user_id, guild_id)
    emit_audit(
        audit,
        actor_id=user_id,
        action=AuditAction.MEMBER_JOINED,
        target_type="GuildMember",
        target_id=user_id,
        guild_id=guild_id,
    )
    return True


def remove_member(
    engine: Engine,
    guild_id: str,
    user_id: str,
    *,
    audit: AuditSink | None = None,
) -> bool:
    """Remove a member and all of their role assignments.

    Returns ``False`` if they weren't a member.  The owner cannot leave.
    """
    with get_session(engine) as session:
        guild = require_guild(session, guild_id)
        if guild.owner_id == user_id:
            raise ConflictError("The guild owner cannot leave the guild")
        if not is_member(session, guild_id, user_id):
            return False

        removed = role_catalog.delete_member_assignments(session, guild_id, user_id)
        session.execute(
            delete(GuildMember).where(
                GuildMember.guild_id == guild_id,
                GuildMember.user_id == user_id,
            )
        )

    logger.info(
        "User %s left guild %s (%d role assignments removed)", user_id, guild_id, removed
    )
    emit_audit(
        audit,
        actor_id=user_id,
        action=AuditAction.MEMBER_LEFT,
        target_type="GuildMember",
        target_id=user_id,
        guild_id=guild_id,
    )
    return True


def delete_guild(
    engine: Engine,
    guild_id: str,
    actor_id: str,
    *,
    audit: AuditSink | None = None,
) -> None:
    """Destroy a guild with its assignments, roles, channels and members.

    Only the owner may do this.  Children are deleted explicitly, leaves
    first, inside the same transaction.
    """
    with get_session(engine) as session:
        guild = require_guild(session, guild_id)
        if guild.owner_id != actor_id:
            raise ForbiddenError("Only the guild owner can delete the guild")

        session.execute(delete(GuildMemberRole).where(GuildMemberRole.guild_id == guild_id))
        session.execute(delete(Channel).where(Channel.guild_id == guild_id))
        session.execute(delete(Role).where(Role.guild_id == guild_id))
        session.execute(delete(GuildMember).where(GuildMember.guild_id == guild_id))
        session.execute(delete(Guild).where(Guild.id == guild_id))
        session.expunge_all()

    logger.info("Guild %s deleted by user %s", guild_id, actor_id)
    emit_audit(
        audit,
        actor_id=actor_id,
        action=AuditAction.GUILD_DELETED,
        target_type="Guild",
        target_id=guild_id,
        guild_id=guild_id,
    )


def list_members(engine: Engine, guild_id: str) -> list[str]:
    """User ids of every member, in join order."""
    with Session(engine) as session:
        return list(session.scalars(
            select(GuildMember.user_id)
            .where(GuildMember.guild_id == guild_id)
            .order_by(GuildMember.joined_at, GuildMember.user_id)
        ).all())


def _guild_to_dict(guild: Guild) -> dict:
    return {
        "id": guild.id,
        "name": guild.name,
        "owner_id": guild.owner_id,
    }
