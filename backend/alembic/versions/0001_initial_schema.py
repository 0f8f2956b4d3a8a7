"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the group event scheduler:
users, events, event_members, event_mutations.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

event_status = sa.Enum("scheduling", "scheduled", "confirmed", "cancelled", name="eventstatus")
visibility = sa.Enum("draft", "public", "private", name="visibility")
scheduling_method = sa.Enum("fixed", "flexible", name="schedulingmethod")
member_role = sa.Enum("creator", "admin", "participant", name="memberrole")
availability_status = sa.Enum("available", "unavailable", "tentative", "invited", name="availabilitystatus")
action_type = sa.Enum(
    "create", "update", "cancel", "delete", "member_settings", "code_reset", "member_removed",
    name="actiontype",
)


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False, unique=True),
        sa.Column("blackout_periods", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("event_code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(1000), nullable=False, server_default=""),
        sa.Column("scheduling_method", scheduling_method, nullable=False),
        sa.Column("duration", sa.BigInteger, nullable=False),
        sa.Column("time_window_start", sa.BigInteger, nullable=True),
        sa.Column("time_window_end", sa.BigInteger, nullable=True),
        sa.Column("status", event_status, nullable=False),
        sa.Column("scheduled_time", sa.BigInteger, nullable=True),
        sa.Column("visibility", visibility, nullable=False),
        sa.Column("blackout_periods", sa.JSON, nullable=False),
        sa.Column("preferred_times", sa.JSON, nullable=False),
        sa.Column("daily_start_constraints", sa.JSON, nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_events_event_code", "events", ["event_code"], unique=True)
    op.create_index("ix_events_status", "events", ["status"])
    op.create_index("ix_events_scheduled_time", "events", ["scheduled_time"])

    # --- event_members ---
    op.create_table(
        "event_members",
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("role", member_role, nullable=False),
        sa.Column("availability_status", availability_status, nullable=False),
        sa.Column("custom_padding_after", sa.BigInteger, nullable=True),
    )
    op.create_index("ix_event_members_user_id", "event_members", ["user_id"])

    # --- event_mutations (no FK: rows outlive deleted events) ---
    op.create_table(
        "event_mutations",
        sa.Column("mutation_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), nullable=False),
        sa.Column("actor_user_id", sa.String(36), nullable=True),
        sa.Column("action_type", action_type, nullable=False),
        sa.Column("from_status", sa.String(20), nullable=True),
        sa.Column("to_status", sa.String(20), nullable=True),
        sa.Column("before_snapshot", sa.JSON, nullable=True),
        sa.Column("after_snapshot", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_event_mutations_event_id", "event_mutations", ["event_id"])


def downgrade() -> None:
    op.drop_table("event_mutations")
    op.drop_table("event_members")
    op.drop_table("events")
    op.drop_table("users")
    bind = op.get_bind()
    for enum_type in (action_type, availability_status, member_role, visibility, scheduling_method, event_status):
        enum_type.drop(bind, checkfirst=True)
