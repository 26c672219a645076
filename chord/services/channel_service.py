"""
chord.services.channel_service — Channel CRUD & Position Sequencing
====================================================================

Channels are positioned per scope ``(guild_id, type)``.  Create appends,
move shifts the siblings in between, delete closes the gap.  The
arithmetic is :func:`chord.engine.sequencer.compute_shift`; this module
only does the I/O around it:

  1. Authorize (ManageChannels via the permission service)
  2. Lock the guild row with ``SELECT … FOR UPDATE``, then load the
     *whole* scope.  Row locks on the channels alone cannot stop a
     concurrent insert into an empty scope (or past the last locked row),
     so the guild row is the mutex every structural write queues on
  3. Compute the shift from that snapshot
  4. Write every changed row and commit once

Writers in different guilds never contend.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from sqlalchemy import Engine, Select, select
from sqlalchemy.orm import Session

from chord.constants import CHANNEL_NAME_MAX_LENGTH, CHANNEL_TOPIC_MAX_LENGTH
from chord.database.engine import get_session
from chord.database.models import AuditAction, Channel, ChannelType, Guild
from chord.engine import sequencer
from chord.engine.permissions import Permission
from chord.errors import ConflictError, NotFoundError, ValidationError
from chord.services import permission_service
from chord.services.audit_service import AuditSink, emit_audit
from chord.services.guild_service import require_guild, require_member

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Channel name cannot be empty")
    if len(cleaned) > CHANNEL_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Channel name must be at most {CHANNEL_NAME_MAX_LENGTH} characters"
        )
    return cleaned


def _check_topic(topic: str | None) -> None:
    if topic is not None and len(topic) > CHANNEL_TOPIC_MAX_LENGTH:
        raise ValidationError(
            f"Channel topic must be at most {CHANNEL_TOPIC_MAX_LENGTH} characters"
        )


def _coerce_type(channel_type: ChannelType | str) -> ChannelType:
    try:
        return ChannelType(channel_type)
    except ValueError as exc:
        raise ValidationError(f"Unknown channel type {channel_type!r}") from exc


def _guild_lock_statement(guild_id: str) -> Select:
    return select(Guild.id).where(Guild.id == guild_id).with_for_update()


def _lock_guild(session: Session, guild_id: str) -> None:
    """Take the guild row lock that serializes structural channel writes."""
    if session.scalar(_guild_lock_statement(guild_id)) is None:
        raise NotFoundError("Guild not found")


def _lock_scope(session: Session, guild_id: str, channel_type: ChannelType) -> list[Channel]:
    """Lock the guild, then load and row-lock every channel in one scope."""
    _lock_guild(session, guild_id)
    return list(session.scalars(
        select(Channel)
        .where(Channel.guild_id == guild_id, Channel.type == channel_type)
        .order_by(Channel.position, Channel.created_at)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).all())


def _snapshot(channels: list[Channel]) -> dict[str, int]:
    return {ch.id: ch.position for ch in channels}


def _compute(siblings: dict[str, int], op: sequencer.ScopeOp) -> dict[str, int]:
    try:
        return sequencer.compute_shift(siblings, op)
    except sequencer.SequenceError as exc:
        raise ConflictError(
            f"Channel positions are inconsistent; resequence the scope first ({exc})"
        ) from exc


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_channels(engine: Engine, guild_id: str, actor_id: str) -> list[dict[str, Any]]:
    """Every channel of the guild, grouped by type and ordered by position."""
    with Session(engine) as session:
        require_guild(session, guild_id)
        require_member(session, guild_id, actor_id)
        rows = session.scalars(
            select(Channel)
            .where(Channel.guild_id == guild_id)
            .order_by(Channel.type, Channel.position, Channel.created_at)
        ).all()
        return [_channel_to_dict(ch) for ch in rows]


def get_channel(engine: Engine, channel_id: str, actor_id: str) -> dict[str, Any] | None:
    with Session(engine) as session:
        channel = session.get(Channel, channel_id)
        if channel is None:
            return None
        require_member(session, channel.guild_id, actor_id)
        return _channel_to_dict(channel)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_channel(
    engine: Engine,
    guild_id: str,
    actor_id: str,
    name: str,
    channel_type: ChannelType | str = ChannelType.TEXT,
    topic: str | None = None,
    *,
    audit: AuditSink | None = None,
) -> dict[str, Any]:
    """Create a channel at the end of its type scope."""
    with get_session(engine) as session:
        require_guild(session, guild_id)
        permission_service.require(
            session, guild_id, actor_id, Permission.MANAGE_CHANNELS,
            "You don't have permission to create channels",
        )
        name = _clean_name(name)
        _check_topic(topic)
        kind = _coerce_type(channel_type)

        siblings = _snapshot(_lock_scope(session, guild_id, kind))
        channel = Channel(id=str(uuid4()), guild_id=guild_id, name=name, type=kind, topic=topic)
        channel.position = _compute(siblings, sequencer.Append(channel.id))[channel.id]
        session.add(channel)
        session.flush()
        result = _channel_to_dict(channel)

    logger.info(
        "Channel %s created in guild %s by user %s at %s position %d",
        result["id"], guild_id, actor_id, kind, result["position"],
    )
    emit_audit(
        audit,
        actor_id=actor_id,
        action=AuditAction.CHANNEL_CREATED,
        target_type="Channel",
        target_id=result["id"],
        guild_id=guild_id,
        changes={"name": name, "type": str(kind), "topic": topic},
    )
    return result


def update_channel(
    engine: Engine,
    channel_id: str,
    actor_id: str,
    *,
    name: str | None = None,
    topic: str | None = None,
    position: int | None = None,
    audit: AuditSink | None = None,
) -> dict[str, Any]:
    """Rename, re-topic and/or move a channel within its type scope.

    ``None`` leaves a field unchanged.  A move to the current position
    touches nothing; any other move shifts the siblings in between by one.
    """
    with get_session(engine) as session:
        channel = session.get(Channel, channel_id)
        if channel is None:
            raise NotFoundError("Channel not found")
        guild_id = channel.guild_id
        permission_service.require(
            session, guild_id, actor_id, Permission.MANAGE_CHANNELS,
            "You don't have permission to update channels",
        )
        if name is not None:
            name = _clean_name(name)
        _check_topic(topic)

        changes: dict[str, Any] = {}
        scope = _lock_scope(session, guild_id, channel.type) if position is not None else []
        siblings = _snapshot(scope)
        if position is not None and position != siblings[channel.id]:
            if not 0 <= position < len(siblings):
                raise ValidationError(
                    f"Position {position} is outside 0..{len(siblings) - 1}"
                )
            old_position = siblings[channel.id]
            shift = _compute(siblings, sequencer.Move(channel.id, position))
            for ch in scope:
                if ch.id in shift:
                    ch.position = shift[ch.id]
            logger.debug(
                "Moved channel %s %d → %d in guild %s (%s): %d siblings shifted",
                channel_id, old_position, position, guild_id, channel.type, len(shift) - 1,
            )
            changes["position"] = {"from": old_position, "to": position}

        if name is not None and name != channel.name:
            changes["name"] = name
            channel.name = name
        if topic is not None and topic != channel.topic:
            changes["topic"] = topic
            channel.topic = topic

        session.flush()
        result = _channel_to_dict(channel)

    logger.info("Channel %s updated by user %s", channel_id, actor_id)
    if changes:
        emit_audit(
            audit,
            actor_id=actor_id,
            action=AuditAction.CHANNEL_UPDATED,
            target_type="Channel",
            target_id=channel_id,
            guild_id=guild_id,
            changes=changes,
        )
    return result


def delete_channel(
    engine: Engine,
    channel_id: str,
    actor_id: str,
    *,
    audit: AuditSink | None = None,
) -> None:
    """Delete a channel and close the gap it leaves in its scope."""
    with get_session(engine) as session:
        channel = session.get(Channel, channel_id)
        if channel is None:
            raise NotFoundError("Channel not found")
        guild_id = channel.guild_id
        kind = channel.type
        permission_service.require(
            session, guild_id, actor_id, Permission.MANAGE_CHANNELS,
            "You don't have permission to delete channels",
        )

        scope = _lock_scope(session, guild_id, kind)
        siblings = _snapshot(scope)
        deleted_position = siblings[channel.id]
        shift = _compute(siblings, sequencer.Remove(channel.id))

        session.delete(channel)
        for ch in scope:
            if ch.id in shift:
                ch.position = shift[ch.id]
        if shift:
            logger.debug(
                "Shifted %d %s channels down after deleting position %d in guild %s",
                len(shift), kind, deleted_position, guild_id,
            )

    logger.info(
        "Channel %s (%s) deleted by user %s from position %d",
        channel_id, kind, actor_id, deleted_position,
    )
    emit_audit(
        audit,
        actor_id=actor_id,
        action=AuditAction.CHANNEL_DELETED,
        target_type="Channel",
        target_id=channel_id,
        guild_id=guild_id,
    )


def resequence_scope(engine: Engine, guild_id: str, channel_type: ChannelType | str) -> int:
    """Renumber a scope 0..n-1 in (position, created_at) order.

    Repairs legacy data whose positions have gaps or duplicates.  Returns
    the number of channels whose position changed.
    """
    kind = _coerce_type(channel_type)
    with get_session(engine) as session:
        require_guild(session, guild_id)
        scope = _lock_scope(session, guild_id, kind)
        if sequencer.is_contiguous(ch.position for ch in scope):
            return 0
        target = sequencer.resequence(ch.id for ch in scope)
        changed = 0
        for ch in scope:
            if ch.position != target[ch.id]:
                ch.position = target[ch.id]
                changed += 1

    logger.warning(
        "Resequenced %d %s channels in guild %s", changed, kind, guild_id
    )
    return changed


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------
def _channel_to_dict(channel: Channel) -> dict[str, Any]:
    return {
        "id": channel.id,
        "guild_id": channel.guild_id,
        "name": channel.name,
        "type": str(channel.type),
        "topic": channel.topic,
        "position": channel.position,
        "created_at": channel.created_at.isoformat() if channel.created_at else None,
    }
