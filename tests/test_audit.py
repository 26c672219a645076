"""
tests/test_audit.py — Audit Sink Tests
=======================================
Audit recording is best effort: a failing sink is logged and never fails
the operation that triggered it.
"""

from __future__ import annotations

import logging

from conftest import OWNER_ID

from chord.database.models import AuditAction
from chord.services import audit_service, role_service
from chord.services.audit_service import DatabaseAuditSink, NullAuditSink, emit_audit


class ExplodingSink:
    def record(self, **event) -> None:
        raise RuntimeError("audit store is down")


class TestEmitAudit:
    def test_none_sink_is_ignored(self):
        emit_audit(
            None, actor_id="u", action=AuditAction.ROLE_CREATED,
            target_type="Role", target_id="r", guild_id="g",
        )

    def test_null_sink_accepts_events(self):
        emit_audit(
            NullAuditSink(), actor_id="u", action=AuditAction.ROLE_CREATED,
            target_type="Role", target_id="r", guild_id="g",
        )

    def test_failing_sink_is_logged_not_raised(self, caplog):
        with caplog.at_level(logging.ERROR, logger="chord.services.audit_service"):
            emit_audit(
                ExplodingSink(), actor_id="u", action=AuditAction.ROLE_DELETED,
                target_type="Role", target_id="r", guild_id="g",
            )
        assert "Failed to record audit event" in caplog.text

    def test_failing_sink_does_not_fail_operation(self, db_engine, guild):
        role = role_service.create_role(
            db_engine, guild["id"], OWNER_ID, "Survivor", audit=ExplodingSink()
        )
        assert role_service.get_role(db_engine, role["id"])["name"] == "Survivor"


class TestDatabaseAuditSink:
    def test_events_are_persisted_newest_first(self, db_engine, guild):
        sink = DatabaseAuditSink(db_engine)
        role = role_service.create_role(db_engine, guild["id"], OWNER_ID, "Logged", audit=sink)
        role_service.update_role(db_engine, role["id"], OWNER_ID, name="Renamed", audit=sink)

        entries = audit_service.list_audit_entries(db_engine, guild["id"])
        assert [e["action"] for e in entries] == ["ROLE_UPDATED", "ROLE_CREATED"]
        assert entries[0]["changes"] == {"name": "Renamed"}
        assert entries[0]["actor_id"] == OWNER_ID
        assert entries[0]["target_id"] == role["id"]

    def test_limit_and_offset(self, db_engine, guild):
        sink = DatabaseAuditSink(db_engine)
        for index in range(3):
            role_service.create_role(db_engine, guild["id"], OWNER_ID, f"R{index}", audit=sink)

        page = audit_service.list_audit_entries(db_engine, guild["id"], limit=2, offset=1)
        assert len(page) == 2
        assert [e["changes"]["name"] for e in page] == ["R1", "R0"]

    def test_entries_are_scoped_to_guild(self, db_engine, guild):
        sink = DatabaseAuditSink(db_engine)
        role_service.create_role(db_engine, guild["id"], OWNER_ID, "Mine", audit=sink)
        assert audit_service.list_audit_entries(db_engine, "other-guild") == []
