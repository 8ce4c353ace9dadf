"""Notification pipeline tables: ledger, preferences, scheduled reminders, push tokens, profiles.

- user_notifications.id is deterministic ('<prefix>_<user_id>_<timestamp>'), so a duplicate
  firing hits the primary key instead of creating a second row.
- read_at: NULL = unread; set once when the user marks it read.
- scheduled_reminders: one row per user so reminders survive restarts; next_fire_at is
  indexed for the backstop sweep.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_JSON = sa.JSON().with_variant(JSONB, "postgresql")


def upgrade() -> None:
    op.create_table(
        "user_notifications",
        sa.Column("id", sa.String(128), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False, server_default="medium"),
        sa.Column("partnership_id", sa.String(64), nullable=True),
        sa.Column("related_entity_id", sa.String(64), nullable=True),
        sa.Column("action_url", sa.String(255), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", _JSON, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_notifications_user_id", "user_notifications", ["user_id"], unique=False)
    op.create_index("ix_user_notifications_type", "user_notifications", ["type"], unique=False)
    op.create_index("ix_user_notifications_created_at", "user_notifications", ["created_at"], unique=False)
    op.create_index(
        "ix_user_notifications_user_read_created",
        "user_notifications",
        ["user_id", "read_at", "created_at"],
        unique=False,
    )

    op.create_table(
        "notification_preferences",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("payday_reminders", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("partner_activity", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("missed_contributions", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("goal_milestones", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("approval_requests", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("safety_pot_alerts", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("streak_achievements", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("in_app_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("quiet_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("quiet_start", sa.String(5), nullable=False, server_default="22:00"),
        sa.Column("quiet_end", sa.String(5), nullable=False, server_default="08:00"),
        sa.Column("quiet_timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("frequency", sa.String(16), nullable=False, server_default="immediate"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "scheduled_reminders",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("config", _JSON, nullable=True),
        sa.Column("state", sa.String(16), nullable=False, server_default="idle"),
        sa.Column("occurrence", sa.Date(), nullable=True),
        sa.Column("next_fire_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_fired_occurrence", sa.Date(), nullable=True),
        sa.Column("job_id", sa.String(128), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index("ix_scheduled_reminders_state", "scheduled_reminders", ["state"], unique=False)
    op.create_index("ix_scheduled_reminders_next_fire_at", "scheduled_reminders", ["next_fire_at"], unique=False)

    op.create_table(
        "push_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("device_token", sa.String(256), nullable=False),
        sa.Column("platform", sa.String(16), nullable=False, server_default="ios"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_push_tokens_user_id", "push_tokens", ["user_id"], unique=False)
    op.create_index("ix_push_tokens_device_token", "push_tokens", ["device_token"], unique=True)

    op.create_table(
        "user_profiles",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("currency", sa.String(8), nullable=False, server_default="GBP"),
        sa.Column("payday", sa.String(32), nullable=True),
        sa.Column("custom_payday", sa.String(8), nullable=True),
        sa.Column("partnership_id", sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("user_profiles")
    op.drop_index("ix_push_tokens_device_token", table_name="push_tokens")
    op.drop_index("ix_push_tokens_user_id", table_name="push_tokens")
    op.drop_table("push_tokens")
    op.drop_index("ix_scheduled_reminders_next_fire_at", table_name="scheduled_reminders")
    op.drop_index("ix_scheduled_reminders_state", table_name="scheduled_reminders")
    op.drop_table("scheduled_reminders")
    op.drop_table("notification_preferences")
    op.drop_index("ix_user_notifications_user_read_created", table_name="user_notifications")
    op.drop_index("ix_user_notifications_created_at", table_name="user_notifications")
    op.drop_index("ix_user_notifications_type", table_name="user_notifications")
    op.drop_index("ix_user_notifications_user_id", table_name="user_notifications")
    op.drop_table("user_notifications")
