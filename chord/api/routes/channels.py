"""
chord.api.routes.channels — Channel CRUD & ordering
=====================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from chord.api.deps import get_audit_sink, get_current_user_id, get_engine
from chord.database.models import ChannelType
from chord.services import channel_service
from chord.services.audit_service import AuditSink

router = APIRouter(tags=["channels"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ChannelCreate(BaseModel):
    name: str
    type: str = ChannelType.TEXT.value  # text, voice, announcement
    topic: str | None = None


class ChannelUpdate(BaseModel):
    name: str | None = None
    topic: str | None = None
    position: int | None = None


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------
@router.get("/guilds/{guild_id}/channels")
def list_channels(
    guild_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {"channels": channel_service.list_channels(engine, guild_id, user_id)}


@router.post("/guilds/{guild_id}/channels", status_code=201)
def create_channel(
    guild_id: str,
    body: ChannelCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    return channel_service.create_channel(
        engine, guild_id, user_id, body.name, body.type, body.topic, audit=audit,
    )


@router.get("/channels/{channel_id}")
def get_channel(
    channel_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    channel = channel_service.get_channel(engine, channel_id, user_id)
    if channel is None:
        raise HTTPException(404, "Channel not found")
    return channel


@router.patch("/channels/{channel_id}")
def update_channel(
    channel_id: str,
    body: ChannelUpdate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    return channel_service.update_channel(
        engine, channel_id, user_id,
        name=body.name, topic=body.topic, position=body.position, audit=audit,
    )


@router.delete("/channels/{channel_id}", status_code=204)
def delete_channel(
    channel_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    channel_service.delete_channel(engine, channel_id, user_id, audit=audit)
