"""Add config_risks table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "config_risks",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("device_id", sa.String(64), nullable=False),
        sa.Column("snapshot_id", sa.String(64), nullable=True),
        sa.Column("risk_type", sa.String(64), nullable=False),
        sa.Column("risk_category", sa.String(64), nullable=False),
        sa.Column("severity", sa.String(16), nullable=False),
        sa.Column("description", sa.String(1024), nullable=False),
        sa.Column("remediation", sa.String(1024), nullable=True),
        sa.Column("evidence", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_config_risks_device_id", "config_risks", ["device_id"])
    op.create_index("ix_config_risks_snapshot_id", "config_risks", ["snapshot_id"])


def downgrade() -> None:
    op.drop_index("ix_config_risks_snapshot_id", table_name="config_risks")
    op.drop_index("ix_config_risks_device_id", table_name="config_risks")
    op.drop_table("config_risks")
