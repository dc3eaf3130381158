"""Create alerts table.

Revision ID: 003_alerts
Revises: 002_responders
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003_alerts"
down_revision: str | None = "002_responders"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ALERT_STATUSES = ("pending", "dispatched", "resolved", "cancelled")


def upgrade() -> None:
    conn = op.get_bind()

    # Create alert status enum (idempotent - check if exists first)
    result = conn.execute(
        sa.text("SELECT 1 FROM pg_type WHERE typname = 'alertstatus'")
    )
    if not result.fetchone():
        postgresql.ENUM(*ALERT_STATUSES, name="alertstatus").create(conn)

    op.create_table(
        "alerts",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("responder_id", sa.UUID(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("audio_url", sa.String(1024), nullable=True),
        sa.Column("requester_name", sa.String(255), nullable=True),
        sa.Column("requester_phone", sa.String(50), nullable=True),
        sa.Column(
            "status",
            postgresql.ENUM(*ALERT_STATUSES, name="alertstatus", create_type=False),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["responder_id"], ["responders.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_alerts_user_id", "alerts", ["user_id"])
    op.create_index("ix_alerts_responder_id", "alerts", ["responder_id"])
    op.create_index("ix_alerts_status", "alerts", ["status"])

    # Newest-first listings per requester and per responder
    op.create_index("ix_alerts_user_created", "alerts", ["user_id", "created_at"])
    op.create_index(
        "ix_alerts_responder_created", "alerts", ["responder_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_alerts_responder_created")
    op.drop_index("ix_alerts_user_created")
    op.drop_index("ix_alerts_status")
    op.drop_index("ix_alerts_responder_id")
    op.drop_index("ix_alerts_user_id")
    op.drop_table("alerts")

    op.execute("DROP TYPE IF EXISTS alertstatus")
