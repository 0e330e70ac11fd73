"""add pending_key to cash_requests

Revision ID: 20261018_02
Revises: 6c1f0a2b9d34
Create Date: 2026-10-18 16:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_02"
down_revision = "6c1f0a2b9d34"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("cash_requests", sa.Column("pending_key", sa.String(length=64), nullable=True))
    op.create_index(
        "uq_cash_requests_pending_key",
        "cash_requests",
        ["pending_key"],
        unique=True,
        sqlite_where=sa.text("status = 'PENDING'"),
        postgresql_where=sa.text("status = 'PENDING'"),
    )


def downgrade() -> None:
    op.drop_index("uq_cash_requests_pending_key", table_name="cash_requests")
    with op.batch_alter_table("cash_requests") as batch_op:
        batch_op.drop_column("pending_key")
