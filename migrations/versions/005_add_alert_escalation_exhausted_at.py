"""Add escalation_exhausted_at to alerts.

Revision ID: 005_escalation_exhausted
Revises: 004_routing_history
"""

import sqlalchemy as sa
from alembic import op

revision = "005_escalation_exhausted"
down_revision = "004_routing_history"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "alerts",
        sa.Column(
            "escalation_exhausted_at", sa.DateTime(timezone=True), nullable=True
        ),
    )


def downgrade() -> None:
    op.drop_column("alerts", "escalation_exhausted_at")
