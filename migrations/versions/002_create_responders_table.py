"""Create responders table.

Revision ID: 002_responders
Revises: 001_users
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_responders"
down_revision: str | None = "001_users"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "responders",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "coverage_radius_km",
            sa.Float(),
            nullable=False,
            server_default="10.0",
        ),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("expo_push_token", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_responders_email", "responders", ["email"], unique=True)
    op.create_index("ix_responders_is_available", "responders", ["is_available"])


def downgrade() -> None:
    op.drop_index("ix_responders_is_available")
    op.drop_index("ix_responders_email")
    op.drop_table("responders")
