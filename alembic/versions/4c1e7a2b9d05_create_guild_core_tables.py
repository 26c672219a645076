"""Create guild core tables: guilds, members, roles, assignments, channels, audit_log

Revision ID: 4c1e7a2b9d05
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "4c1e7a2b9d05"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "guilds",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("owner_id", sa.String(36), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_guilds_owner_id", "guilds", ["owner_id"])

    op.create_table(
        "guild_members",
        sa.Column(
            "guild_id",
            sa.String(36),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("nickname", sa.String(50), nullable=True),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "roles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "guild_id",
            sa.String(36),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(7), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("permissions", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("is_system_role", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("guild_id", "name", name="uq_roles_guild_name"),
    )
    op.create_index("ix_roles_guild_position", "roles", ["guild_id", "position"])

    op.create_table(
        "guild_member_roles",
        sa.Column("guild_id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column(
            "role_id",
            sa.String(36),
            sa.ForeignKey("roles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "assigned_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["guild_id", "user_id"],
            ["guild_members.guild_id", "guild_members.user_id"],
            ondelete="CASCADE",
            name="fk_member_roles_member",
        ),
    )
    op.create_index("ix_member_roles_role", "guild_member_roles", ["role_id"])

    op.create_table(
        "channels",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "guild_id",
            sa.String(36),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "text", "voice", "announcement",
                name="channel_type",
                native_enum=False,
                length=20,
            ),
            nullable=False,
        ),
        sa.Column("topic", sa.String(500), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_channels_guild_type_position", "channels", ["guild_id", "type", "position"]
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("actor_id", sa.String(36), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("target_type", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(36), nullable=True),
        sa.Column("guild_id", sa.String(36), nullable=True),
        sa.Column(
            "changes",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=True,
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_audit_log_guild_time", "audit_log", ["guild_id", "timestamp"])
    op.create_index(
        "ix_audit_log_target", "audit_log", ["target_type", "target_id", "timestamp"]
    )


def downgrade() -> None:
    op.drop_index("ix_audit_log_target", table_name="audit_log")
    op.drop_index("ix_audit_log_guild_time", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_channels_guild_type_position", table_name="channels")
    op.drop_table("channels")
    op.drop_index("ix_member_roles_role", table_name="guild_member_roles")
    op.drop_table("guild_member_roles")
    op.drop_index("ix_roles_guild_position", table_name="roles")
    op.drop_table("roles")
    op.drop_table("guild_members")
    op.drop_index("ix_guilds_owner_id", table_name="guilds")
    op.drop_table("guilds")
