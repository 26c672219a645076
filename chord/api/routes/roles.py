"""
chord.api.routes.roles — Role CRUD, reorder & member assignment
=================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from chord.api.deps import get_audit_sink, get_current_user_id, get_engine
from chord.services import role_service
from chord.services.audit_service import AuditSink

router = APIRouter(prefix="/guilds/{guild_id}", tags=["roles"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RoleCreate(BaseModel):
    name: str
    color: str | None = None
    permissions: int = 0


class RoleUpdate(BaseModel):
    name: str | None = None
    color: str | None = None
    permissions: int | None = None


class RoleReorder(BaseModel):
    role_ids: list[str] = Field(default_factory=list)


def _role_in_guild(engine, guild_id: str, role_id: str, user_id: str) -> dict:
    role = role_service.get_role(engine, role_id, user_id)
    if role is None or role["guild_id"] != guild_id:
        raise HTTPException(404, "Role not found")
    return role


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------
@router.get("/roles")
def list_roles(
    guild_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {"roles": role_service.list_roles(engine, guild_id, user_id)}


@router.get("/roles/{role_id}")
def get_role(
    guild_id: str,
    role_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return _role_in_guild(engine, guild_id, role_id, user_id)


@router.post("/roles", status_code=201)
def create_role(
    guild_id: str,
    body: RoleCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    return role_service.create_role(
        engine, guild_id, user_id, body.name, body.color, body.permissions, audit=audit,
    )


@router.patch("/roles/{role_id}")
def update_role(
    guild_id: str,
    role_id: str,
    body: RoleUpdate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    _role_in_guild(engine, guild_id, role_id, user_id)
    return role_service.update_role(
        engine, role_id, user_id,
        name=body.name, color=body.color, permissions=body.permissions, audit=audit,
    )


@router.delete("/roles/{role_id}", status_code=204)
def delete_role(
    guild_id: str,
    role_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    _role_in_guild(engine, guild_id, role_id, user_id)
    role_service.delete_role(engine, role_id, user_id, audit=audit)


@router.put("/roles/order")
def reorder_roles(
    guild_id: str,
    body: RoleReorder,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    roles = role_service.reorder_roles(engine, guild_id, user_id, body.role_ids, audit=audit)
    return {"roles": roles}


# ---------------------------------------------------------------------------
# Member assignments
# ---------------------------------------------------------------------------
@router.get("/members/{member_id}/roles")
def get_member_roles(
    guild_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {"roles": role_service.get_member_roles(engine, guild_id, member_id, user_id)}


@router.put("/members/{member_id}/roles/{role_id}")
def assign_role(
    guild_id: str,
    member_id: str,
    role_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    changed = role_service.assign_role(engine, guild_id, member_id, role_id, user_id, audit=audit)
    return {"changed": changed}


@router.delete("/members/{member_id}/roles/{role_id}")
def remove_role(
    guild_id: str,
    member_id: str,
    role_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    audit: AuditSink = Depends(get_audit_sink),
):
    changed = role_service.remove_role(engine, guild_id, member_id, role_id, user_id, audit=audit)
    return {"changed": changed}
