"""create default state transition history table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

TABLE_NAME = "state_transitions"


def upgrade() -> None:
    op.create_table(
        TABLE_NAME,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("subject_type", sa.String(length=255), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("event", sa.String(length=100), nullable=False),
        sa.Column("from_state", sa.String(length=100), nullable=False),
        sa.Column("to_state", sa.String(length=100), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(f"idx_{TABLE_NAME}_subject", TABLE_NAME, ["subject_type", "subject_id"])
    op.create_index(f"idx_{TABLE_NAME}_event", TABLE_NAME, ["event"])
    op.create_index(f"idx_{TABLE_NAME}_from_state", TABLE_NAME, ["from_state"])
    op.create_index(f"idx_{TABLE_NAME}_to_state", TABLE_NAME, ["to_state"])
    op.create_index(f"idx_{TABLE_NAME}_created_at", TABLE_NAME, ["created_at"])


def downgrade() -> None:
    op.drop_index(f"idx_{TABLE_NAME}_created_at", table_name=TABLE_NAME)
    op.drop_index(f"idx_{TABLE_NAME}_to_state", table_name=TABLE_NAME)
    op.drop_index(f"idx_{TABLE_NAME}_from_state", table_name=TABLE_NAME)
    op.drop_index(f"idx_{TABLE_NAME}_event", table_name=TABLE_NAME)
    op.drop_index(f"idx_{TABLE_NAME}_subject", table_name=TABLE_NAME)
    op.drop_table(TABLE_NAME)
