"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from agentcash.infrastructure.database.base import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="client")  # client, agent, admin
    is_active = Column(Boolean, default=True)
    phone = Column(String(32), unique=True, index=True)
    unique_id = Column(String(32), unique=True, index=True)
    full_name = Column(String(120))
    agent_status = Column(String(20))  # PENDING_FLOAT, ACTIVE, SUSPENDED; NULL for non-agents
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    last_login_at = Column(DateTime(timezone=True))


class CashRequest(Base):
    __tablename__ = "cash_requests"
    __table_args__ = (
        Index("ix_cash_requests_status_expires_at", "status", "expires_at"),
        Index("ix_cash_requests_counterparty_status", "counterparty_id", "status"),
        # At most one PENDING request per key (one cancellation per transfer, one top-up per agent).
        Index(
            "uq_cash_requests_pending_key",
            "pending_key",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    reference = Column(String(32), unique=True, nullable=False)
    kind = Column(String(20), nullable=False)
    requester_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    counterparty_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    counterparty_role = Column(String(20), nullable=False)
    amount = Column(BigInteger, nullable=False)
    fee = Column(BigInteger, nullable=False, default=0)
    platform_fee = Column(BigInteger, nullable=False, default=0)
    counterparty_fee = Column(BigInteger, nullable=False, default=0)
    platform_share_bps = Column(Integer, nullable=False)
    counterparty_share_bps = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    confirmation_code_hash = Column(String(100))
    code_consumed_at = Column(DateTime(timezone=True))
    source_reference = Column(String(32), index=True)
    pending_key = Column(String(64))
    details = Column(Text)
    message = Column(String(255))
    response_note = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True))
    responded_at = Column(DateTime(timezone=True))

    requester = relationship("Account", foreign_keys=[requester_id])
    counterparty = relationship("Account", foreign_keys=[counterparty_id])


class LedgerAccount(Base):
    __tablename__ = "ledger_accounts"
    __table_args__ = (UniqueConstraint("owner_id", "book", name="uq_ledger_accounts_owner_book"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), nullable=False, index=True)
    book = Column(String(20), nullable=False)  # WALLET, FLOAT, COMMISSION, REVENUE, TREASURY
    balance = Column(BigInteger, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="XAF")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    entries = relationship("LedgerEntry", back_populates="account")


class LedgerTransfer(Base):
    __tablename__ = "ledger_transfers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    idempotency_key = Column(String(64), unique=True, nullable=False)
    reference = Column(String(32), unique=True, nullable=False)
    kind = Column(String(20), nullable=False)
    payer_id = Column(String(36), nullable=False, index=True)
    payee_id = Column(String(36), nullable=False, index=True)
    principal = Column(BigInteger, nullable=False)
    reverses_id = Column(String(36), ForeignKey("ledger_transfers.id"))
    reversed_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True), nullable=False)

    entries = relationship("LedgerEntry", back_populates="transfer", cascade="all, delete-orphan")


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transfer_id = Column(String(36), ForeignKey("ledger_transfers.id"), nullable=False, index=True)
    ledger_account_id = Column(String(36), ForeignKey("ledger_accounts.id"), nullable=False, index=True)
    direction = Column(String(6), nullable=False)  # DEBIT, CREDIT
    amount = Column(BigInteger, nullable=False)
    balance_after = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    transfer = relationship("LedgerTransfer", back_populates="entries")
    account = relationship("LedgerAccount", back_populates="entries")
