"""Request registry: persistence-facing use cases for cash requests."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from agentcash.core.codes import ReferenceGenerator
from agentcash.core.config import Settings, get_settings
from agentcash.infrastructure.database.repositories.request_repository import SqlRequestRepository

from .exceptions import InvalidConfirmationCodeError, RequestConflictError, RequestNotFoundError
from .models import NewRequest, RequestKind, RequestRecord, RequestStatus
from .repository import DuplicateReferenceError, RequestRepository

logger = logging.getLogger(__name__)


class RequestRegistry:
    def __init__(
        self,
        repository: RequestRepository,
        references: ReferenceGenerator | None = None,
        max_attempts: int = 5,
    ) -> None:
        self.repository = repository
        self.references = references or ReferenceGenerator()
        self.max_attempts = max_attempts

    @classmethod
    def with_session(cls, session: AsyncSession, settings: Settings | None = None) -> "RequestRegistry":
        settings = settings or get_settings()
        return cls(SqlRequestRepository(session), max_attempts=settings.requests.reference_attempts)

    async def create(self, request: NewRequest) -> RequestRecord:
        """Persist a PENDING request under a fresh reference.

        A reference clash (caught by the unique index) draws a new reference;
        after ``max_attempts`` clashes the last error propagates.
        """
        attempt = 0
        while True:
            attempt += 1
            reference = self.references.generate(request.kind.reference_prefix)
            try:
                record = await self.repository.add(request, reference)
            except DuplicateReferenceError:
                if attempt >= self.max_attempts:
                    raise
                logger.warning("Reference %s already taken, drawing another (attempt %d)", reference, attempt)
                continue
            logger.info("Created %s request %s for %s", record.kind.value, record.reference, record.counterparty_id)
            return record

    async def get(self, request_id: str) -> RequestRecord:
        record = await self.repository.get_by_id(request_id)
        if record is None:
            raise RequestNotFoundError(f"Request not found: {request_id}")
        return record

    async def get_by_reference(self, reference: str) -> RequestRecord:
        record = await self.repository.get_by_reference(reference.strip().upper())
        if record is None:
            raise RequestNotFoundError(f"Request not found: {reference}")
        return record

    async def list_pending_for(
        self,
        counterparty_id: str,
        now: datetime,
        kind: RequestKind | None = None,
    ) -> Sequence[RequestRecord]:
        return await self.repository.list_pending_for(counterparty_id, now, kind)

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
        return await self.repository.list_for(
            account_id,
            include_received=include_received,
            kind=kind,
            status=status,
            limit=limit,
            offset=offset,
        )

    async def list_all(
        self,
        *,
        kind: RequestKind | None = None,
        status: RequestStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[RequestRecord]:
        return await self.repository.list_all(kind=kind, status=status, limit=limit, offset=offset)

    async def find_pending(self, **criteria: Any) -> RequestRecord | None:
        return await self.repository.find_pending(**criteria)

    async def list_overdue(self, now: datetime, limit: int) -> Sequence[RequestRecord]:
        return await self.repository.list_overdue(now, limit)

    async def update_status(
        self,
        request_id: str,
        from_status: RequestStatus,
        to_status: RequestStatus,
        *,
        require_unconsumed_code: bool = False,
        expected_code_hash: str | None = None,
        **values: Any,
    ) -> RequestRecord:
        """Move ``from_status -> to_status`` or raise :class:`RequestConflictError`.

        With ``expected_code_hash`` the move also requires the stored code to be
        the one the caller verified; a replaced code raises
        :class:`InvalidConfirmationCodeError`.
        """
        record = await self.repository.transition(
            request_id,
            from_status=from_status,
            to_status=to_status,
            require_unconsumed_code=require_unconsumed_code,
            expected_code_hash=expected_code_hash,
            **values,
        )
        if record is None:
            current = await self.repository.get_by_id(request_id)
            if current is None:
                raise RequestNotFoundError(f"Request not found: {request_id}")
            if (
                current.status is from_status
                and expected_code_hash is not None
                and current.confirmation_code_hash != expected_code_hash
            ):
                raise InvalidConfirmationCodeError(f"Confirmation code of {current.reference} was replaced")
            raise RequestConflictError(
                f"Request {current.reference} is {current.status.value}, expected {from_status.value}",
                current_status=current.status,
            )
        return record

    async def replace_code(self, request_id: str, code_hash: str) -> RequestRecord:
        record = await self.repository.replace_code(request_id, code_hash)
        if record is None:
            current = await self.get(request_id)
            raise RequestConflictError(
                f"Confirmation code of {current.reference} can no longer be replaced",
                current_status=current.status,
            )
        return record


__all__ = ["RequestRegistry"]
