"""Ledger interface consumed by the request protocol."""

from __future__ import annotations

from typing import Protocol, Sequence

from .models import BalanceSnapshot, LedgerBook, LedgerEntryRecord, Leg, TransferReceipt, TransferRecord


class Ledger(Protocol):
    """Atomic multi-leg transfers with exactly-once semantics per idempotency key.

    ``transfer`` applies every leg or none. It raises
    :class:`~agentcash.modules.ledger.exceptions.DuplicateTransferError` when the
    key has already been applied.
    """

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
        reverses: str | None = None,
    ) -> TransferReceipt:
        ...

    async def balance(self, owner_id: str, book: LedgerBook) -> int:
        ...

    async def balances(self, owner_id: str) -> Sequence[BalanceSnapshot]:
        ...

    async def get_transfer(self, reference: str) -> TransferRecord | None:
        ...

    async def list_entries(self, owner_id: str, limit: int = 50, offset: int = 0) -> Sequence[LedgerEntryRecord]:
        ...
