"""
chord.services.audit_service — Fire-and-Forget Audit Sink
==========================================================

Role and channel mutations report what happened to an :class:`AuditSink`
*after* their own transaction has committed.  The sink is best effort:
if recording fails, the failure is logged and swallowed; the governing
operation has already succeeded and must not be reported as failed.

Sinks:
- :class:`DatabaseAuditSink` — writes one ``audit_log`` row per event in
  its own short session.
- :class:`NullAuditSink` — drops everything (tests, scripts, audit off).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from chord.database.models import AuditAction, AuditLog

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    """Receiver for audit events.  Implementations may raise; callers never see it."""

    def record(
        self,
        *,
        actor_id: str,
        action: AuditAction,
        target_type: str,
        target_id: str | None,
        guild_id: str | None,
        changes: dict[str, Any] | None = None,
    ) -> None: ...


class NullAuditSink:
    """Sink that records nothing."""

    def record(self, **kwargs: Any) -> None:
        return None


class DatabaseAuditSink:
    """Persist audit events to the ``audit_log`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def record(
        self,
        *,
        actor_id: str,
        action: AuditAction,
        target_type: str,
        target_id: str | None,
        guild_id: str | None,
        changes: dict[str, Any] | None = None,
    ) -> None:
        with Session(self.engine) as session:
            session.add(AuditLog(
                actor_id=actor_id,
                action=str(action),
                target_type=target_type,
                target_id=target_id,
                guild_id=guild_id,
                changes=changes,
            ))
            session.commit()
        logger.debug(
            "Audit: %s by %s on %s/%s (guild %s)",
            action, actor_id, target_type, target_id, guild_id,
        )


def emit_audit(
    sink: AuditSink | None,
    *,
    actor_id: str,
    action: AuditAction,
    target_type: str,
    target_id: str | None,
    guild_id: str | None,
    changes: dict[str, Any] | None = None,
) -> None:
    """Hand an event to *sink*, never letting a sink failure escape."""
    if sink is None:
        return
    try:
        sink.record(
            actor_id=actor_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            guild_id=guild_id,
            changes=changes,
        )
    except Exception:
        logger.exception(
            "Failed to record audit event %s by %s on %s/%s",
            action, actor_id, target_type, target_id,
        )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_audit_entries(
    engine: Engine,
    guild_id: str,
    *,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Return a guild's audit entries, newest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(AuditLog)
            .where(AuditLog.guild_id == guild_id)
            .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
            .limit(limit)
            .offset(offset)
        ).all()
        return [_entry_to_dict(row) for row in rows]


def _entry_to_dict(row: AuditLog) -> dict[str, Any]:
    ts: datetime | None = row.timestamp
    return {
        "id": row.id,
        "actor_id": row.actor_id,
        "action": row.action,
        "target_type": row.target_type,
        "target_id": row.target_id,
        "guild_id": row.guild_id,
        "changes": row.changes,
        "timestamp": ts.isoformat() if ts else None,
    }
