"""initial switch schema

Revision ID: 0001_switch
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_switch"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "owners",
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("owner_id"),
    )

    op.create_table(
        "dead_mans_switches",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("owner_ref", sa.String(), nullable=False),
        sa.Column("nominee_email", sa.String(), nullable=False),
        sa.Column("nominee_name", sa.String(), nullable=True),
        sa.Column("nominee_relation", sa.String(), nullable=True),
        sa.Column("personal_message", sa.String(), nullable=True),
        sa.Column("inactivity_period_days", sa.Integer(), nullable=False, server_default="180"),
        sa.Column("last_check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_triggered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("access_token", sa.String(), nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("inactivity_period_days > 0", name="ck_switch_period_positive"),
    )
    op.create_index("ix_dead_mans_switches_owner_ref", "dead_mans_switches", ["owner_ref"], unique=True)
    op.create_index("ix_dead_mans_switches_access_token", "dead_mans_switches", ["access_token"], unique=True)
    # Scan hot path: active and not yet triggered.
    op.create_index("ix_dead_mans_switches_eligible", "dead_mans_switches", ["is_active", "is_triggered"])

    op.create_table(
        "notification_log",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("switch_id", sa.String(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("recipient", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("error", sa.String(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["switch_id"], ["dead_mans_switches.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    # Dedup lookup: (switch, kind) within a sent_at window.
    op.create_index("ix_notification_log_dedup", "notification_log", ["switch_id", "kind", "sent_at"])

    op.create_table(
        "check_in_history",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("switch_id", sa.String(), nullable=False),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("origin", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["switch_id"], ["dead_mans_switches.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_check_in_history_switch_id", "check_in_history", ["switch_id"])


def downgrade() -> None:
    op.drop_index("ix_check_in_history_switch_id", table_name="check_in_history")
    op.drop_table("check_in_history")
    op.drop_index("ix_notification_log_dedup", table_name="notification_log")
    op.drop_table("notification_log")
    op.drop_index("ix_dead_mans_switches_eligible", table_name="dead_mans_switches")
    op.drop_index("ix_dead_mans_switches_access_token", table_name="dead_mans_switches")
    op.drop_index("ix_dead_mans_switches_owner_ref", table_name="dead_mans_switches")
    op.drop_table("dead_mans_switches")
    op.drop_table("owners")
