"""Domain models for ledger transfers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class LedgerBook(str, Enum):
    WALLET = "WALLET"
    FLOAT = "FLOAT"
    COMMISSION = "COMMISSION"
    REVENUE = "REVENUE"
    TREASURY = "TREASURY"


class Direction(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


@dataclass(slots=True, frozen=True)
class Leg:
    owner_id: str
    book: LedgerBook
    amount: int
    direction: Direction

    @classmethod
    def debit(cls, owner_id: str, book: LedgerBook, amount: int) -> "Leg":
        return cls(owner_id, book, amount, Direction.DEBIT)

    @classmethod
    def credit(cls, owner_id: str, book: LedgerBook, amount: int) -> "Leg":
        return cls(owner_id, book, amount, Direction.CREDIT)


@dataclass(slots=True, frozen=True)
class TransferReceipt:
    transfer_id: str
    idempotency_key: str
    reference: str
    completed_at: datetime


@dataclass(slots=True)
class TransferRecord:
    id: str
    reference: str
    kind: str
    payer_id: str
    payee_id: str
    principal: int
    completed_at: datetime
    reversed_at: Optional[datetime] = None

    @property
    def is_reversed(self) -> bool:
        return self.reversed_at is not None


@dataclass(slots=True)
class LedgerEntryRecord:
    transfer_reference: str
    book: LedgerBook
    direction: Direction
    amount: int
    balance_after: int
    created_at: datetime


@dataclass(slots=True)
class BalanceSnapshot:
    owner_id: str
    book: LedgerBook
    balance: int
    currency: str
