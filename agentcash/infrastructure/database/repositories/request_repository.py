"""SQLAlchemy implementation of the cash request repository."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import desc, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agentcash.core.clock import ensure_utc
from agentcash.db.models import CashRequest
from agentcash.modules.requests.models import NewRequest, RequestKind, RequestRecord, RequestStatus
from agentcash.modules.requests.repository import DuplicateReferenceError, PendingKeyTakenError


class SqlRequestRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, request: NewRequest, reference: str) -> RequestRecord:
        model = CashRequest(
            reference=reference,
            kind=request.kind.value,
            requester_id=request.requester_id,
            counterparty_id=request.counterparty_id,
            counterparty_role=request.counterparty_role,
            amount=request.amount,
            fee=request.fee,
            platform_fee=request.platform_fee,
            counterparty_fee=request.counterparty_fee,
            platform_share_bps=request.platform_share_bps,
            counterparty_share_bps=request.counterparty_share_bps,
            status=RequestStatus.PENDING.value,
            confirmation_code_hash=request.confirmation_code_hash,
            source_reference=request.source_reference,
            pending_key=request.pending_key,
            details=json.dumps(request.details, ensure_ascii=False) if request.details else None,
            message=request.message,
            created_at=request.created_at,
            expires_at=request.expires_at,
        )
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            if await self.reference_exists(reference):
                raise DuplicateReferenceError(reference) from None
            if request.pending_key is not None:
                holder = await self.get_pending_by_key(request.pending_key)
                if holder is not None:
                    raise PendingKeyTakenError(request.pending_key, holder.reference) from None
            raise
        await self.session.refresh(model)
        return self._to_domain(model)

    async def reference_exists(self, reference: str) -> bool:
        stmt = select(CashRequest.id).where(CashRequest.reference == reference)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def get_by_id(self, request_id: str) -> RequestRecord | None:
        return await self._first(CashRequest.id == request_id)

    async def get_by_reference(self, reference: str) -> RequestRecord | None:
        return await self._first(CashRequest.reference == reference)

    async def get_pending_by_key(self, pending_key: str) -> RequestRecord | None:
        return await self._first(
            (CashRequest.pending_key == pending_key) & (CashRequest.status == RequestStatus.PENDING.value)
        )

    async def list_pending_for(
        self,
        counterparty_id: str,
        now: datetime,
        kind: RequestKind | None = None,
    ) -> Sequence[RequestRecord]:
        stmt = (
            select(CashRequest)
            .where(CashRequest.counterparty_id == counterparty_id)
            .where(CashRequest.status == RequestStatus.PENDING.value)
            .where(or_(CashRequest.expires_at.is_(None), CashRequest.expires_at > now))
        )
        if kind is not None:
            stmt = stmt.where(CashRequest.kind == kind.value)
        stmt = stmt.order_by(desc(CashRequest.created_at))
        result = await self.session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

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
        if include_received:
            stmt = select(CashRequest).where(
                or_(CashRequest.requester_id == account_id, CashRequest.counterparty_id == account_id)
            )
        else:
            stmt = select(CashRequest).where(CashRequest.requester_id == account_id)
        stmt = self._filter(stmt, kind, status)
        stmt = stmt.order_by(desc(CashRequest.created_at)).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

    async def list_all(
        self,
        *,
        kind: RequestKind | None = None,
        status: RequestStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[RequestRecord]:
        stmt = self._filter(select(CashRequest), kind, status)
        stmt = stmt.order_by(desc(CashRequest.created_at)).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

    async def find_pending(
        self,
        *,
        kind: RequestKind,
        requester_id: str | None = None,
        source_reference: str | None = None,
        direction: str | None = None,
    ) -> RequestRecord | None:
        stmt = (
            select(CashRequest)
            .where(CashRequest.kind == kind.value)
            .where(CashRequest.status == RequestStatus.PENDING.value)
        )
        if requester_id is not None:
            stmt = stmt.where(CashRequest.requester_id == requester_id)
        if source_reference is not None:
            stmt = stmt.where(CashRequest.source_reference == source_reference)
        result = await self.session.execute(stmt.order_by(desc(CashRequest.created_at)))
        for row in result.scalars().all():
            record = self._to_domain(row)
            if direction is None or record.details.get("direction") == direction:
                return record
        return None

    async def list_overdue(self, now: datetime, limit: int) -> Sequence[RequestRecord]:
        stmt = (
            select(CashRequest)
            .where(CashRequest.status == RequestStatus.PENDING.value)
            .where(CashRequest.expires_at.is_not(None))
            .where(CashRequest.expires_at <= now)
            .order_by(CashRequest.expires_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

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
        stmt = (
            update(CashRequest)
            .where(CashRequest.id == request_id)
            .where(CashRequest.status == from_status.value)
        )
        if require_unconsumed_code:
            stmt = stmt.where(CashRequest.code_consumed_at.is_(None))
        if expected_code_hash is not None:
            # A reissue since the caller verified its code invalidates that code.
            stmt = stmt.where(CashRequest.confirmation_code_hash == expected_code_hash)
        stmt = (
            stmt.values(status=to_status.value, **values)
            .execution_options(synchronize_session="fetch", populate_existing=True)
            .returning(CashRequest)
        )
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model is not None else None

    async def replace_code(self, request_id: str, code_hash: str) -> RequestRecord | None:
        stmt = (
            update(CashRequest)
            .where(CashRequest.id == request_id)
            .where(CashRequest.status == RequestStatus.PENDING.value)
            .where(CashRequest.confirmation_code_hash.is_not(None))
            .where(CashRequest.code_consumed_at.is_(None))
            .values(confirmation_code_hash=code_hash)
            .execution_options(synchronize_session="fetch", populate_existing=True)
            .returning(CashRequest)
        )
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model is not None else None

    async def _first(self, criterion) -> RequestRecord | None:
        stmt = select(CashRequest).where(criterion).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model is not None else None

    @staticmethod
    def _filter(stmt, kind: RequestKind | None, status: RequestStatus | None):
        if kind is not None:
            stmt = stmt.where(CashRequest.kind == kind.value)
        if status is not None:
            stmt = stmt.where(CashRequest.status == status.value)
        return stmt

    @staticmethod
    def _to_domain(model: CashRequest) -> RequestRecord:
        return RequestRecord(
            id=model.id,
            reference=model.reference,
            kind=RequestKind(model.kind),
            requester_id=model.requester_id,
            counterparty_id=model.counterparty_id,
            counterparty_role=model.counterparty_role,
            amount=model.amount,
            fee=model.fee,
            platform_fee=model.platform_fee,
            counterparty_fee=model.counterparty_fee,
            platform_share_bps=model.platform_share_bps,
            counterparty_share_bps=model.counterparty_share_bps,
            status=RequestStatus(model.status),
            created_at=ensure_utc(model.created_at),
            expires_at=ensure_utc(model.expires_at) if model.expires_at else None,
            responded_at=ensure_utc(model.responded_at) if model.responded_at else None,
            confirmation_code_hash=model.confirmation_code_hash,
            code_consumed_at=ensure_utc(model.code_consumed_at) if model.code_consumed_at else None,
            source_reference=model.source_reference,
            details=json.loads(model.details) if model.details else {},
            message=model.message,
            response_note=model.response_note,
        )
