"""
chord.database.models — SQLAlchemy 2.0 Data Models
===================================================

Tables:
- guilds              — Community containers; ``owner_id`` bypasses every check
- guild_members       — Membership (guild_id, user_id)
- roles               — Named, ranked permission bundles (two system roles per guild)
- guild_member_roles  — Role assignments, many-to-many
- channels            — Type-scoped, contiguously positioned channels
- audit_log           — Append-only record of role/channel mutations

Only the columns the authorization and ordering logic needs are modelled
here; message, DM, upload and voice tables belong to other services.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid4())


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Chord ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ChannelType(enum.StrEnum):
    """Channel kinds.  Each kind is its own position scope within a guild."""
    TEXT = "text"
    VOICE = "voice"
    ANNOUNCEMENT = "announcement"


class AuditAction(enum.StrEnum):
    """Mutations reported to the audit sink."""
    GUILD_CREATED = "GUILD_CREATED"
    GUILD_DELETED = "GUILD_DELETED"
    MEMBER_JOINED = "MEMBER_JOINED"
    MEMBER_LEFT = "MEMBER_LEFT"
    CHANNEL_CREATED = "CHANNEL_CREATED"
    CHANNEL_UPDATED = "CHANNEL_UPDATED"
    CHANNEL_DELETED = "CHANNEL_DELETED"
    ROLE_CREATED = "ROLE_CREATED"
    ROLE_UPDATED = "ROLE_UPDATED"
    ROLE_DELETED = "ROLE_DELETED"
    ROLE_ASSIGNED = "ROLE_ASSIGNED"
    ROLE_REMOVED = "ROLE_REMOVED"
    ROLES_REORDERED = "ROLES_REORDERED"


# ---------------------------------------------------------------------------
# Guilds
# ---------------------------------------------------------------------------
class Guild(Base):
    __tablename__ = "guilds"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships: destroying a guild destroys its structure
    members: Mapped[list[GuildMember]] = relationship(
        back_populates="guild", cascade="all", passive_deletes=True
    )
    roles: Mapped[list[Role]] = relationship(
        back_populates="guild", cascade="all", passive_deletes=True
    )
    channels: Mapped[list[Channel]] = relationship(
        back_populates="guild", cascade="all", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_guilds_owner_id", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<Guild id={self.id} name={self.name!r} owner={self.owner_id}>"


# ---------------------------------------------------------------------------
# GuildMember — one row per (guild, user)
# ---------------------------------------------------------------------------
class GuildMember(Base):
    __tablename__ = "guild_members"

    guild_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("guilds.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    nickname: Mapped[str | None] = mapped_column(String(50), default=None)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    guild: Mapped[Guild] = relationship(back_populates="members")
    role_assignments: Mapped[list[GuildMemberRole]] = relationship(
        back_populates="member", cascade="all", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<GuildMember guild={self.guild_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Role — position is a rank: lower number = more authority
# ---------------------------------------------------------------------------
class Role(Base):
    """A named, colored, ranked bundle of permission bits.

    ``position`` 0 is the Owner system role, 999 the General system role;
    custom roles take 1–998.  ``permissions`` is the raw 64-bit mask,
    interpreted through :class:`chord.engine.permissions.PermissionSet`.
    """
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    guild_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(7), default=None)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    permissions: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    is_system_role: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    guild: Mapped[Guild] = relationship(back_populates="roles")
    assignments: Mapped[list[GuildMemberRole]] = relationship(
        back_populates="role", passive_deletes="all"
    )

    __table_args__ = (
        UniqueConstraint("guild_id", "name", name="uq_roles_guild_name"),
        Index("ix_roles_guild_position", "guild_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.name!r} pos={self.position}>"


# ---------------------------------------------------------------------------
# GuildMemberRole — role assignments
# ---------------------------------------------------------------------------
class GuildMemberRole(Base):
    __tablename__ = "guild_member_roles"

    guild_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    role_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    member: Mapped[GuildMember] = relationship(back_populates="role_assignments")
    role: Mapped[Role] = relationship(back_populates="assignments")

    __table_args__ = (
        ForeignKeyConstraint(
            ["guild_id", "user_id"],
            ["guild_members.guild_id", "guild_members.user_id"],
            ondelete="CASCADE",
            name="fk_member_roles_member",
        ),
        Index("ix_member_roles_role", "role_id"),
    )

    def __repr__(self) -> str:
        return f"<GuildMemberRole guild={self.guild_id} user={self.user_id} role={self.role_id}>"


# ---------------------------------------------------------------------------
# Channel — zero-based, contiguous position within (guild_id, type)
# ---------------------------------------------------------------------------
class Channel(Base):
    __tablename__ = "channels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    guild_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[ChannelType] = mapped_column(
        Enum(
            ChannelType,
            name="channel_type",
            native_enum=False,
            length=20,
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        nullable=False,
        default=ChannelType.TEXT,
    )
    topic: Mapped[str | None] = mapped_column(String(500), default=None)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    guild: Mapped[Guild] = relationship(back_populates="channels")

    __table_args__ = (
        Index("ix_channels_guild_type_position", "guild_id", "type", "position"),
    )

    def __repr__(self) -> str:
        return f"<Channel id={self.id} name={self.name!r} type={self.type} pos={self.position}>"


# ---------------------------------------------------------------------------
# AuditLog — append-only audit trail
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    target_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    guild_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    changes: Mapped[dict | None] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=True
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_audit_log_guild_time", "guild_id", "timestamp"),
        Index("ix_audit_log_target", "target_type", "target_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} actor={self.actor_id} action={self.action}>"
