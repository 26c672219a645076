"""
chord.services.role_service — Role Mutation Service Layer
==========================================================

Public role operations.  Every write follows the same pattern:

  1. Open one session (one transaction)
  2. Look up the guild / role           → NotFoundError
  3. Authorize (permissions, hierarchy) → ForbiddenError
  4. Check structural rules             → ConflictError / ValidationError
  5. Apply the change and commit
  6. Hand an event to the audit sink (best effort, after commit)

The first failing step raises and nothing is committed.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chord.constants import OWNER_POSITION, ROLE_NAME_MAX_LENGTH
from chord.database.engine import get_session
from chord.database.models import AuditAction, Role
from chord.engine.permissions import KNOWN_PERMISSION_BITS, Permission
from chord.errors import ConflictError, NotFoundError, ValidationError
from chord.services import hierarchy_service, permission_service, role_catalog
from chord.services.audit_service import AuditSink, emit_audit
from chord.services.guild_service import is_member, require_guild, require_member

logger = logging.getLogger(__name__)

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Role name cannot be empty")
    if len(cleaned) > ROLE_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Role name must be at most {ROLE_NAME_MAX_LENGTH} characters"
        )
    return cleaned


def _check_color(color: str | None) -> None:
    if color is not None and not _COLOR_RE.match(color):
        raise ValidationError(f"Invalid role color {color!r}; expected #RRGGBB")


def _check_permissions(bits: int) -> None:
    if bits < 0 or bits & ~KNOWN_PERMISSION_BITS:
        raise ValidationError(f"Unknown permission bits in {bits}")


def _ensure_unique_name(session: Session, guild_id: str, name: str) -> None:
    if role_catalog.find_role_by_name(session, guild_id, name) is not None:
        raise ConflictError(f"A role with the name '{name}' already exists")


def _load_role(session: Session, role_id: str, guild_id: str | None = None) -> Role:
    role = role_catalog.get_role(session, role_id)
    if role is None or (guild_id is not None and role.guild_id != guild_id):
        raise NotFoundError("Role not found")
    return role


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def _require_reader(session: Session, guild_id: str, actor_id: str | None) -> None:
    if actor_id is not None:
        require_guild(session, guild_id)
        require_member(session, guild_id, actor_id)


def list_roles(engine: Engine, guild_id: str, actor_id: str | None = None) -> list[dict[str, Any]]:
    """Every role of the guild, ordered by position (highest rank first).

    With ``actor_id`` the guild must exist and the actor must be a member.
    """
    with Session(engine) as session:
        _require_reader(session, guild_id, actor_id)
        counts = role_catalog.member_counts(session, guild_id)
        return [
            _role_to_dict(role, counts.get(role.id, 0))
            for role in role_catalog.guild_roles(session, guild_id)
        ]


def get_role(engine: Engine, role_id: str, actor_id: str | None = None) -> dict[str, Any] | None:
    with Session(engine) as session:
        role = role_catalog.get_role(session, role_id)
        if role is None:
            return None
        _require_reader(session, role.guild_id, actor_id)
        counts = role_catalog.member_counts(session, role.guild_id)
        return _role_to_dict(role, counts.get(role.id, 0))


def get_member_roles(
    engine: Engine, guild_id: str, user_id: str, actor_id: str | None = None
) -> list[dict[str, Any]]:
    """Roles held by a member, highest rank first."""
    with Session(engine) as session:
        _require_reader(session, guild_id, actor_id)
        counts = role_catalog.member_counts(session, guild_id)
        return [
            _role_to_dict(role, counts.get(role.id, 0))
            for role in role_catalog.member_roles(session, guild_id, user_id)
        ]


# ---------------------------------------------------------------------------
# Role CRUD
# ---------------------------------------------------------------------------
def create_role(
    engine: Engine,
    guild_id: str,
    actor_id: str,
    name: str,
    color: str | None = None,
    permissions: int = 0,
    *,
    audit: AuditSink | None = None,
) -> dict[str, Any]:
    """Create a custom role at the next free rank above General."""
    with get_session(engine) as session:
        require_guild(session, guild_id)
        permission_service.require(
            session, guild_id, actor_id, Permission.MANAGE_ROLES,
            "You don't have permission to create roles",
        )
        name = _clean_name(name)
        _check_color(color)
        _check_permissions(permissions)
        _ensure_unique_name(session, guild_id, name)

        position = role_catalog.next_custom_position(session, guild_id)
        if position is None:
            raise ConflictError("This guild has reached the maximum number of roles")

        role = Role(
            guild_id=guild_id,
            name=name,
            color=color,
            position=position,
            permissions=permissions,
            is_system_role=False,
        )
        session.add(role)
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"A role with the name '{name}' already exists") from exc
        result = _role_to_dict(role, 0)

    logger.info(
        "Role %s '%s' created in guild %s by user %s at position %d",
        result["id"], name, guild_id, actor_id, position,
    )
    emit_audit(
        audit,
        actor_id=actor_id,
        action=AuditAction.ROLE_CREATED,
        target_type="Role",
        target_id=result["id"],
        guild_id=guild_id,
        changes={"name": name, "color": color, "permissions": permissions, "position": position},
    )
    return result


def update_role(
    engine: Engine,
    role_id: str,
    actor_id: str,
    *,
    name: str | None = None,
    color: str | None = None,
    permissions: int | None = None,
    audit: AuditSink | None = None,
) -> dict[str, Any]:
    """Rename / recolor / re-permission a custom role ranked below the actor.

    ``None`` leaves a field unchanged.  System roles cannot be edited here.
    """
    with get_session(engine) as session:
        role = _load_role(session, role_id)
        guild_id = role.guild_id
        hierarchy_service.require_manage(
            session, guild_id, actor_id, role_id,
            "You don't have permission to update this role",
        )
        if role.is_system_role:
            raise ConflictError("System roles cannot be modified")

        changes: dict[str, Any] = {}
        if name is not None:
            name = _clean_name(name)
            if name != role.name:
                _ensure_unique_name(session, guild_id, name)
                changes["name"] = name
        if color is not None:
            _check_color(color)
            if color != role.color:
                changes["color"] = color
        if permissions is not None:
            _check_permissions(permissions)
            if permissions != role.permissions:
                changes["permissions"] = permissions

        for key, value in changes.items():
            setattr(role, key, value)
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"A role with the name '{name}' already exists") from exc

        counts = role_catalog.member_counts(session, guild_id)
        result = _role_to_dict(role, counts.get(role.id, 0))

    logger.info("Role %s updated in guild %s by user %s", role_id, guild_id, actor_id)
    if changes:
        emit_audit(
            audit,
            actor_id=actor_id,
            action=AuditAction.ROLE_UPDATED,
            target_type="Role",
            target_id=role_id,
            guild_id=guild_id,
            changes=changes,
        )
    return result


def delete_role(
    engine: Engine,
    role_id: str,
    actor_id: str,
    *,
    audit: AuditSink | None = None,
) -> None:
    """Delete a custom role and every assignment of it, in one transaction."""
    with get_session(engine) as session:
        role = _load_role(session, role_id)
        guild_id = role.guild_id
        if role.is_system_role:
            raise ConflictError("Cannot delete system roles")
        hierarchy_service.require_manage(
            session, guild_id, actor_id, role_id,
            "You don't have permission to delete this role",
        )
        snapshot = _role_to_dict(role)

        removed = role_catalog.delete_role_assignments(session, role_id)
        session.delete(role)

    logger.info(
        "Role %s deleted from guild %s by user %s (%d assignments removed)",
        role_id, guild_id, actor_id, removed,
    )
    emit_audit(
        audit,
        actor_id=actor_id,
        action=AuditAction.ROLE_DELETED,
        target_type="Role",
        target_id=role_id,
        guild_id=guild_id,
        changes={"name": snapshot["name"], "assignments_removed": removed},
    )


def reorder_roles(
    engine: Engine,
    guild_id: str,
    actor_id: str,
    role_ids: list[str],
    *,
    audit: AuditSink | None = None,
) -> list[dict[str, Any]]:
    """Reorder custom roles; ``role_ids`` is the new order, highest rank first.

    The listed roles are redistributed over the positions they already
    occupy, so unlisted roles (including the actor's own) keep their rank.
    The whole list is validated before anything moves.
    """
    with get_session(engine) as session:
        require_guild(session, guild_id)
        permission_service.require(
            session, guild_id, actor_id, Permission.MANAGE_ROLES,
            "You don't have permission to reorder roles",
        )
        if len(set(role_ids)) != len(role_ids):
            raise ValidationError("Role list contains duplicates")

        by_id = {r.id: r for r in role_catalog.custom_roles(session, guild_id, for_update=True)}
        for role_id in role_ids:
            if role_id not in by_id:
                raise ValidationError(f"Role {role_id} not found or cannot be reordered")

        listed = [by_id[role_id] for role_id in role_ids]
        hierarchy_service.require_outranks_all(session, guild_id, actor_id, listed)

        slots = sorted(role.position for role in listed)
        moved = {}
        for role, position in zip(listed, slots):
            if role.position != position:
                moved[role.id] = {"from": role.position, "to": position}
                role.position = position
        session.flush()

        counts = role_catalog.member_counts(session, guild_id)
        result = [
            _role_to_dict(role, counts.get(role.id, 0))
            for role in role_catalog.guild_roles(session, guild_id)
        ]

    logger.info(
        "Roles reordered in guild %s by user %s (%d moved)", guild_id, actor_id, len(moved)
    )
    if moved:
        emit_audit(
            audit,
            actor_id=actor_id,
            action=AuditAction.ROLES_REORDERED,
            target_type="Role",
            target_id=None,
            guild_id=guild_id,
            changes=moved,
        )
    return result


# ---------------------------------------------------------------------------
# Member assignments
# ---------------------------------------------------------------------------
def _check_manual_assignment(role: Role, verb: str) -> None:
    if role.position == OWNER_POSITION and role.is_system_role:
        raise ConflictError(f"Cannot manually {verb} the owner role")
    if role.is_system_role:
        raise ConflictError(f"Cannot manually {verb} system roles")


def assign_role(
    engine: Engine,
    guild_id: str,
    target_user_id: str,
    role_id: str,
    actor_id: str,
    *,
    audit: AuditSink | None = None,
) -> bool:
    """Give *role_id* to a member.  Returns ``False`` if they already had it."""
    with get_session(engine) as session:
        require_guild(session, guild_id)
        role = _load_role(session, role_id, guild_id)
        _check_manual_assignment(role, "assign")
        hierarchy_service.require_manage(
            session, guild_id, actor_id, role_id,
            "You don't have permission to assign this role",
        )
        if not is_member(session, guild_id, target_user_id):
            raise ConflictError("User is not a member of this guild")

        added = role_catalog.add_assignment(session, guild_id, target_user_id, role_id)

    if not added:
        return False
    logger.info(
        "Role %s assigned to user %s in guild %s by user %s",
        role_id, target_user_id, guild_id, actor_id,
    )
    emit_audit(
        audit,
        actor_id=actor_id,
        action=AuditAction.ROLE_ASSIGNED,
        target_type="Role",
        target_id=role_id,
        guild_id=guild_id,
        changes={"user_id": target_user_id},
    )
    return True


def remove_role(
    engine: Engine,
    guild_id: str,
    target_user_id: str,
    role_id: str,
    actor_id: str,
    *,
    audit: AuditSink | None = None,
) -> bool:
    """Take *role_id* away from a member.  Returns ``False`` if they didn't have it."""
    with get_session(engine) as session:
        require_guild(session, guild_id)
        role = _load_role(session, role_id, guild_id)
        _check_manual_assignment(role, "remove")
        hierarchy_service.require_manage(
            session, guild_id, actor_id, role_id,
            "You don't have permission to remove this role",
        )
        if not is_member(session, guild_id, target_user_id):
            raise ConflictError("User is not a member of this guild")

        removed = role_catalog.remove_assignment(session, guild_id, target_user_id, role_id)

    if not removed:
        return False
    logger.info(
        "Role %s removed from user %s in guild %s by user %s",
        role_id, target_user_id, guild_id, actor_id,
    )
    emit_audit(
        audit,
        actor_id=actor_id,
        action=AuditAction.ROLE_REMOVED,
        target_type="Role",
        target_id=role_id,
        guild_id=guild_id,
        changes={"user_id": target_user_id},
    )
    return True


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------
def _role_to_dict(role: Role, member_count: int = 0) -> dict[str, Any]:
    return {
        "id": role.id,
        "guild_id": role.guild_id,
        "name": role.name,
        "color": role.color,
        "position": role.position,
        "permissions": role.permissions,
        "is_system_role": role.is_system_role,
        "member_count": member_count,
        "created_at": role.created_at.isoformat() if role.created_at else None,
    }
