"""add channels to criteria_profiles

Revision ID: 0002_channels
Revises: 0001_initial
Create Date: 2026-10-08
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_channels"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("criteria_profiles") as batch_op:
        batch_op.add_column(sa.Column("channels_json", sa.Text(), nullable=False, server_default="[]"))


def downgrade() -> None:
    with op.batch_alter_table("criteria_profiles") as batch_op:
        batch_op.drop_column("channels_json")
