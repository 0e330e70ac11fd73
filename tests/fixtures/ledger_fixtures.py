"""An in-memory ledger double with controllable failures."""

import asyncio
import uuid
from collections import defaultdict
from typing import Optional, Sequence

import pytest

from agentcash.core.clock import FrozenClock
from agentcash.modules.ledger import (
    BalanceSnapshot,
    Direction,
    DuplicateTransferError,
    InsufficientFundsError,
    LedgerBook,
    Leg,
    TransferReceipt,
    TransferRecord,
)


class InMemoryLedger:
    """Applies transfers to a dict of balances.

    ``stall_after_apply`` makes the next transfer apply its legs and then hang,
    which is what a caller sees when the ledger commits but the reply is lost.
    ``refuse_next`` makes the next transfer fail without applying anything.
    """

    def __init__(self, clock: FrozenClock) -> None:
        self.clock = clock
        self.books: dict[tuple[str, LedgerBook], int] = defaultdict(int)
        self.receipts: dict[str, TransferReceipt] = {}
        self.records: dict[str, TransferRecord] = {}
        self.applied: list[str] = []
        self.stall_after_apply = False
        self.refuse_next = False

    def seed(self, owner_id: str, book: LedgerBook, amount: int) -> None:
        self.books[(owner_id, book)] += amount

    async def transfer(
        self,
        idempotency_key: str,
        legs: Sequence[Leg],
        *,
        reference: str,
        kind: str,
        payer_id: str,
        payee_id: str,
        principal: int,
        reverses: Optional[str] = None,
    ) -> TransferReceipt:
        if idempotency_key in self.receipts:
            raise DuplicateTransferError(self.receipts[idempotency_key])
        if self.refuse_next:
            self.refuse_next = False
            raise InsufficientFundsError(payer_id, "WALLET", 0, principal)

        for leg in legs:
            signed = leg.amount if leg.direction is Direction.CREDIT else -leg.amount
            self.books[(leg.owner_id, leg.book)] += signed
        receipt = TransferReceipt(
            transfer_id=str(uuid.uuid4()),
            idempotency_key=idempotency_key,
            reference=reference,
            completed_at=self.clock.now(),
        )
        self.receipts[idempotency_key] = receipt
        self.records[reference] = TransferRecord(
            id=receipt.transfer_id,
            reference=reference,
            kind=kind,
            payer_id=payer_id,
            payee_id=payee_id,
            principal=principal,
            completed_at=receipt.completed_at,
        )
        self.applied.append(idempotency_key)

        if self.stall_after_apply:
            self.stall_after_apply = False
            await asyncio.sleep(3600)
        return receipt

    async def balance(self, owner_id: str, book: LedgerBook) -> int:
        return self.books[(owner_id, book)]

    async def balances(self, owner_id: str) -> Sequence[BalanceSnapshot]:
        return [
            BalanceSnapshot(owner_id=owner, book=book, balance=value, currency="XAF")
            for (owner, book), value in self.books.items()
            if owner == owner_id
        ]

    async def get_transfer(self, reference: str) -> Optional[TransferRecord]:
        return self.records.get(reference)

    async def list_entries(self, owner_id: str, limit: int = 50, offset: int = 0):
        return []


@pytest.fixture
def memory_ledger(clock) -> InMemoryLedger:
    return InMemoryLedger(clock)
