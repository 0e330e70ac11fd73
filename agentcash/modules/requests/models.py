"""Domain models for cash requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class RequestKind(str, Enum):
    WITHDRAWAL = "WITHDRAWAL"
    FLOAT = "FLOAT"
    CANCELLATION = "CANCELLATION"

    @property
    def reference_prefix(self) -> str:
        return _REFERENCE_PREFIXES[self]


_REFERENCE_PREFIXES = {
    RequestKind.WITHDRAWAL: "WD",
    RequestKind.FLOAT: "FL",
    RequestKind.CANCELLATION: "CX",
}


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


@dataclass(slots=True)
class RequestRecord:
    id: str
    reference: str
    kind: RequestKind
    requester_id: str
    counterparty_id: str
    counterparty_role: str
    amount: int
    fee: int
    platform_fee: int
    counterparty_fee: int
    platform_share_bps: int
    counterparty_share_bps: int
    status: RequestStatus
    created_at: datetime
    expires_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    confirmation_code_hash: Optional[str] = field(default=None, repr=False)
    code_consumed_at: Optional[datetime] = None
    source_reference: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None
    response_note: Optional[str] = None

    @property
    def requires_code(self) -> bool:
        return self.confirmation_code_hash is not None

    def is_overdue(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass(slots=True)
class NewRequest:
    """Everything the registry needs to persist a PENDING request."""

    kind: RequestKind
    requester_id: str
    counterparty_id: str
    counterparty_role: str
    amount: int
    fee: int
    platform_fee: int
    counterparty_fee: int
    platform_share_bps: int
    counterparty_share_bps: int
    created_at: datetime
    expires_at: Optional[datetime]
    confirmation_code_hash: Optional[str] = field(default=None, repr=False)
    source_reference: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None
    # Unique among PENDING requests when set.
    pending_key: Optional[str] = None


@dataclass(slots=True)
class RequestView:
    """Read model handed to callers."""

    id: str
    reference: str
    kind: RequestKind
    amount: int
    fee: int
    status: RequestStatus
    requester_id: str
    counterparty_id: str
    message: Optional[str]
    response_note: Optional[str]
    created_at: datetime
    expires_at: Optional[datetime]
    responded_at: Optional[datetime] = None
    details: dict[str, Any] = field(default_factory=dict)
    confirmation_code: Optional[str] = None

    @classmethod
    def from_record(cls, record: RequestRecord, confirmation_code: Optional[str] = None) -> "RequestView":
        return cls(
            id=record.id,
            reference=record.reference,
            kind=record.kind,
            amount=record.amount,
            fee=record.fee,
            status=record.status,
            requester_id=record.requester_id,
            counterparty_id=record.counterparty_id,
            message=record.message,
            response_note=record.response_note,
            created_at=record.created_at,
            expires_at=record.expires_at,
            responded_at=record.responded_at,
            details=dict(record.details),
            confirmation_code=confirmation_code if record.status is RequestStatus.PENDING else None,
        )


__all__ = [
    "NewRequest",
    "RequestKind",
    "RequestRecord",
    "RequestStatus",
    "RequestView",
]
