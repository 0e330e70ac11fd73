"""Repository protocol for cash requests."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from .models import NewRequest, RequestKind, RequestRecord, RequestStatus


class DuplicateReferenceError(Exception):
    """The generated reference is already taken."""


class PendingKeyTakenError(Exception):
    """Another PENDING request already holds the same ``pending_key``."""

    def __init__(self, pending_key: str, existing_reference: str) -> None:
        super().__init__(f"{pending_key} is held by pending request {existing_reference}")
        self.pending_key = pending_key
        self.existing_reference = existing_reference


class RequestRepository(Protocol):
    async def add(self, request: NewRequest, reference: str) -> RequestRecord:
        """Insert a PENDING request.

        Raises :class:`DuplicateReferenceError` on a reference clash and
        :class:`PendingKeyTakenError` when another PENDING request holds
        ``request.pending_key``.
        """
        ...

    async def reference_exists(self, reference: str) -> bool:
        ...

    async def get_by_id(self, request_id: str) -> RequestRecord | None:
        ...

    async def get_by_reference(self, reference: str) -> RequestRecord | None:
        ...

    async def get_pending_by_key(self, pending_key: str) -> RequestRecord | None:
        ...

    async def list_pending_for(
        self,
        counterparty_id: str,
        now: datetime,
        kind: RequestKind | None = None,
    ) -> Sequence[RequestRecord]:
        ...

    async def list_for(
        self,
        account_id: str,
        *,
        include_received: bool = False,
        kind: RequestKind | None = None,
        status: RequestStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[RequestRecord]:
        ...

    async def list_all(
        self,
        *,
        kind: RequestKind | None = None,
        status: RequestStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[RequestRecord]:
        ...

    async def find_pending(
        self,
        *,
        kind: RequestKind,
        requester_id: str | None = None,
        source_reference: str | None = None,
        direction: str | None = None,
    ) -> RequestRecord | None:
        ...

    async def list_overdue(self, now: datetime, limit: int) -> Sequence[RequestRecord]:
        ...

    async def transition(
        self,
        request_id: str,
        *,
        from_status: RequestStatus,
        to_status: RequestStatus,
        require_unconsumed_code: bool = False,
        expected_code_hash: str | None = None,
        **values: Any,
    ) -> RequestRecord | None:
        """Conditional status update; ``None`` when the stored status no longer matches."""
        ...

    async def replace_code(self, request_id: str, code_hash: str) -> RequestRecord | None:
        ...
