"""Ledger exceptions."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for transfers the ledger refused or could not complete."""


class UnbalancedTransferError(LedgerError):
    """Debits and credits of a transfer do not add up."""


class InsufficientFundsError(LedgerError):
    def __init__(self, owner_id: str, book: str, balance: int, requested: int) -> None:
        super().__init__(f"{book} account of {owner_id} holds {balance}, cannot debit {requested}")
        self.owner_id = owner_id
        self.book = book
        self.balance = balance
        self.requested = requested


class FloatFloorError(LedgerError):
    def __init__(self, owner_id: str, balance: int, requested: int, floor: int) -> None:
        super().__init__(
            f"Float of {owner_id} would drop to {balance - requested}, below the minimum of {floor}"
        )
        self.owner_id = owner_id
        self.balance = balance
        self.requested = requested
        self.floor = floor


class ActivationMinimumError(LedgerError):
    def __init__(self, owner_id: str, amount: int, minimum: int) -> None:
        super().__init__(f"First float deposit for {owner_id} must be at least {minimum}, got {amount}")
        self.owner_id = owner_id
        self.amount = amount
        self.minimum = minimum


class DuplicateTransferError(LedgerError):
    """The idempotency key was already applied; ``receipt`` describes that transfer."""

    def __init__(self, receipt) -> None:
        super().__init__(f"Transfer {receipt.idempotency_key} already applied as {receipt.reference}")
        self.receipt = receipt


class TransferNotFoundError(LedgerError):
    """No transfer matches the given reference."""
