"""
chord.api.routes.guilds — Guild lifecycle, membership & audit log
==================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from chord.api.deps import get_audit_sink, get_config, get_current_user_id, get_engine
from chord.config import ChordConfig
from chord.database.engine import get_session
from chord.engine.permissions import Permission
from chord.services import audit_service, guild_service, permission_service
from chord.services.audit_service import AuditSink

router = APIRouter(prefix="/guilds", tags=["guilds"])


class GuildCreate(BaseModel):
    name: str


@router.post("", status_code=201)
def create_guild(
    body: GuildCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    cfg: ChordConfig = Depends(get_config),
    audit: AuditSink = Depends(get_audit_sink),
):
    return guild_service.create_guild(engine, user_id, body.name, cfg=cfg, audit=audit)


@router.delete("/{guild_id}", status_code=204)
def delete_guild(
    guild_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    guild_service.delete_guild(engine, guild_id, user_id, audit=audit)


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------
@router.get("/{guild_id}/members")
def list_members(
    guild_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    with get_session(engine) as session:
        guild_service.require_guild(session, guild_id)
        guild_service.require_member(session, guild_id, user_id)
    return {"members": guild_service.list_members(engine, guild_id)}


@router.post("/{guild_id}/join")
def join_guild(
    guild_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    return {"joined": guild_service.add_member(engine, guild_id, user_id, audit=audit)}


@router.post("/{guild_id}/leave")
def leave_guild(
    guild_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    return {"left": guild_service.remove_member(engine, guild_id, user_id, audit=audit)}


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------
@router.get("/{guild_id}/audit")
def list_audit(
    guild_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    with get_session(engine) as session:
        guild_service.require_guild(session, guild_id)
        permission_service.require(
            session, guild_id, user_id, Permission.MANAGE_GUILD,
            "You don't have permission to view the audit log",
        )
    entries = audit_service.list_audit_entries(engine, guild_id, limit=limit, offset=offset)
    return {"entries": entries}
