"""Ledger domain exports"""

from .exceptions import (
    ActivationMinimumError,
    DuplicateTransferError,
    FloatFloorError,
    InsufficientFundsError,
    LedgerError,
    TransferNotFoundError,
    UnbalancedTransferError,
)
from .models import (
    BalanceSnapshot,
    Direction,
    LedgerBook,
    LedgerEntryRecord,
    Leg,
    TransferReceipt,
    TransferRecord,
)
from .repository import Ledger

__all__ = [
    "ActivationMinimumError",
    "BalanceSnapshot",
    "Direction",
    "DuplicateTransferError",
    "FloatFloorError",
    "InsufficientFundsError",
    "Ledger",
    "LedgerBook",
    "LedgerEntryRecord",
    "LedgerError",
    "Leg",
    "TransferNotFoundError",
    "TransferReceipt",
    "TransferRecord",
    "UnbalancedTransferError",
]
