"""create account, cash request and ledger tables

Revision ID: 6c1f0a2b9d34
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "6c1f0a2b9d34"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="client"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("unique_id", sa.String(length=32)),
        sa.Column("full_name", sa.String(length=120)),
        sa.Column("agent_status", sa.String(length=20)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_accounts_username", "accounts", ["username"], unique=True)
    op.create_index("ix_accounts_phone", "accounts", ["phone"], unique=True)
    op.create_index("ix_accounts_unique_id", "accounts", ["unique_id"], unique=True)

    op.create_table(
        "cash_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("reference", sa.String(length=32), nullable=False, unique=True),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("requester_id", sa.String(length=36), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("counterparty_id", sa.String(length=36), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("counterparty_role", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("fee", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("platform_fee", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("counterparty_fee", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("platform_share_bps", sa.Integer(), nullable=False),
        sa.Column("counterparty_share_bps", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("confirmation_code_hash", sa.String(length=100)),
        sa.Column("code_consumed_at", sa.DateTime(timezone=True)),
        sa.Column("source_reference", sa.String(length=32)),
        sa.Column("details", sa.Text()),
        sa.Column("message", sa.String(length=255)),
        sa.Column("response_note", sa.String(length=255)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        sa.Column("responded_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_cash_requests_requester_id", "cash_requests", ["requester_id"])
    op.create_index("ix_cash_requests_source_reference", "cash_requests", ["source_reference"])
    op.create_index("ix_cash_requests_status_expires_at", "cash_requests", ["status", "expires_at"])
    op.create_index("ix_cash_requests_counterparty_status", "cash_requests", ["counterparty_id", "status"])

    op.create_table(
        "ledger_accounts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=36), nullable=False),
        sa.Column("book", sa.String(length=20), nullable=False),
        sa.Column("balance", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="XAF"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("owner_id", "book", name="uq_ledger_accounts_owner_book"),
    )
    op.create_index("ix_ledger_accounts_owner_id", "ledger_accounts", ["owner_id"])

    op.create_table(
        "ledger_transfers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("idempotency_key", sa.String(length=64), nullable=False, unique=True),
        sa.Column("reference", sa.String(length=32), nullable=False, unique=True),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("payer_id", sa.String(length=36), nullable=False),
        sa.Column("payee_id", sa.String(length=36), nullable=False),
        sa.Column("principal", sa.BigInteger(), nullable=False),
        sa.Column("reverses_id", sa.String(length=36), sa.ForeignKey("ledger_transfers.id")),
        sa.Column("reversed_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_ledger_transfers_payer_id", "ledger_transfers", ["payer_id"])
    op.create_index("ix_ledger_transfers_payee_id", "ledger_transfers", ["payee_id"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("transfer_id", sa.String(length=36), sa.ForeignKey("ledger_transfers.id"), nullable=False),
        sa.Column("ledger_account_id", sa.String(length=36), sa.ForeignKey("ledger_accounts.id"), nullable=False),
        sa.Column("direction", sa.String(length=6), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("balance_after", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_ledger_entries_transfer_id", "ledger_entries", ["transfer_id"])
    op.create_index("ix_ledger_entries_ledger_account_id", "ledger_entries", ["ledger_account_id"])


def downgrade() -> None:
    op.drop_table("ledger_entries")
    op.drop_table("ledger_transfers")
    op.drop_table("ledger_accounts")
    op.drop_table("cash_requests")
    op.drop_table("accounts")
