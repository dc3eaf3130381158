"""Create alert_routing_history table.

Revision ID: 004_routing_history
Revises: 003_alerts
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "004_routing_history"
down_revision: str | None = "003_alerts"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "alert_routing_history",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("alert_id", sa.UUID(), nullable=False),
        sa.Column("responder_id", sa.UUID(), nullable=False),
        sa.Column("attempt", sa.Integer(), nullable=False),
        sa.Column("notified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["alert_id"], ["alerts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["responder_id"], ["responders.id"]),
        sa.PrimaryKeyConstraint("id"),
        # A responder is tried at most once per alert
        sa.UniqueConstraint(
            "alert_id",
            "responder_id",
            name="uq_alert_routing_history_alert_responder",
        ),
    )
    op.create_index(
        "ix_alert_routing_history_alert_id", "alert_routing_history", ["alert_id"]
    )
    op.create_index(
        "ix_alert_routing_history_responder_id",
        "alert_routing_history",
        ["responder_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_alert_routing_history_responder_id")
    op.drop_index("ix_alert_routing_history_alert_id")
    op.drop_table("alert_routing_history")
