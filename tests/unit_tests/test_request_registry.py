"""Tests for the request registry and its SQL repository."""

import asyncio
import logging
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from agentcash.core.codes import ReferenceGenerator
from agentcash.db.models import CashRequest
from agentcash.modules.requests import (
    NewRequest,
    RequestConflictError,
    RequestKind,
    RequestNotFoundError,
    RequestStatus,
)
from agentcash.modules.requests.repository import DuplicateReferenceError, PendingKeyTakenError
from agentcash.modules.requests.service import RequestRegistry
from tests.consts import T0


class ScriptedReferences:
    """Hands out a fixed sequence of references."""

    def __init__(self, *references: str) -> None:
        self.references = list(references)

    def generate(self, prefix: str) -> str:
        return self.references.pop(0)


def _new_request(
    people, *, expires_in=timedelta(hours=24), kind=RequestKind.WITHDRAWAL, pending_key=None
) -> NewRequest:
    return NewRequest(
        kind=kind,
        requester_id=people.client.id,
        counterparty_id=people.agent.id,
        counterparty_role="agent",
        amount=100_000,
        fee=2_000,
        platform_fee=800,
        counterparty_fee=1_200,
        platform_share_bps=4_000,
        counterparty_share_bps=6_000,
        created_at=T0,
        expires_at=T0 + expires_in if expires_in is not None else None,
        confirmation_code_hash="hash",
        details={"version": 1},
        pending_key=pending_key,
    )


@pytest.mark.asyncio
async def test_create_assigns_prefixed_reference(session, settings, people):
    registry = RequestRegistry.with_session(session, settings)

    record = await registry.create(_new_request(people))
    await session.commit()

    assert record.reference.startswith("WD-")
    assert record.status is RequestStatus.PENDING
    assert record.expires_at == T0 + timedelta(hours=24)
    assert (await registry.get_by_reference(record.reference.lower())).id == record.id


@pytest.mark.asyncio
async def test_reference_collision_draws_a_new_reference(session, settings, people):
    first = RequestRegistry.with_session(session, settings)
    first.references = ScriptedReferences("WD-TAKEN000")
    await first.create(_new_request(people))
    await session.commit()

    second = RequestRegistry.with_session(session, settings)
    second.references = ScriptedReferences("WD-TAKEN000", "WD-FRESH000")
    record = await second.create(_new_request(people))
    await session.commit()

    assert record.reference == "WD-FRESH000"


@pytest.mark.asyncio
async def test_reference_collisions_are_bounded(session, settings, people):
    registry = RequestRegistry.with_session(session, settings)
    registry.references = ScriptedReferences("WD-TAKEN000")
    await registry.create(_new_request(people))
    await session.commit()

    registry.max_attempts = 2
    registry.references = ScriptedReferences("WD-TAKEN000", "WD-TAKEN000")
    with pytest.raises(DuplicateReferenceError):
        await registry.create(_new_request(people))


@pytest.mark.asyncio
async def test_concurrent_creates_store_distinct_references(session_factory, settings, people, caplog):
    caplog.set_level(logging.WARNING, logger="agentcash.modules.requests.service")
    # A small reference space so that concurrent writers really do collide.
    references = ReferenceGenerator(length=16, alphabet="AB")
    slots = asyncio.Semaphore(8)

    async def create_one():
        async with slots, session_factory() as session:
            registry = RequestRegistry.with_session(session, settings)
            registry.references = references
            registry.max_attempts = 20
            record = await registry.create(_new_request(people))
            await session.commit()
            return record.reference

    created = await asyncio.gather(*(create_one() for _ in range(10_000)))

    async with session_factory() as session:
        stored = (await session.execute(select(func.count(func.distinct(CashRequest.reference))))).scalar_one()
    assert len(set(created)) == 10_000
    assert stored == 10_000
    assert any("already taken" in message for message in caplog.messages)


@pytest.mark.asyncio
async def test_pending_key_is_held_by_one_pending_request(session, settings, people):
    registry = RequestRegistry.with_session(session, settings)
    first = await registry.create(_new_request(people, pending_key="TOP_UP:agent"))
    await session.commit()

    with pytest.raises(PendingKeyTakenError) as excinfo:
        await registry.create(_new_request(people, pending_key="TOP_UP:agent"))
    assert excinfo.value.existing_reference == first.reference

    await registry.update_status(first.id, RequestStatus.PENDING, RequestStatus.REJECTED)
    await session.commit()
    second = await registry.create(_new_request(people, pending_key="TOP_UP:agent"))
    await session.commit()

    assert second.status is RequestStatus.PENDING
    assert (await registry.repository.get_pending_by_key("TOP_UP:agent")).id == second.id


@pytest.mark.asyncio
async def test_update_status_is_conditional(session, settings, people):
    registry = RequestRegistry.with_session(session, settings)
    record = await registry.create(_new_request(people))
    await session.commit()

    rejected = await registry.update_status(record.id, RequestStatus.PENDING, RequestStatus.REJECTED)
    await session.commit()
    assert rejected.status is RequestStatus.REJECTED

    with pytest.raises(RequestConflictError) as excinfo:
        await registry.update_status(record.id, RequestStatus.PENDING, RequestStatus.APPROVED)
    await session.rollback()

    assert excinfo.value.current_status is RequestStatus.REJECTED
    assert (await registry.get(record.id)).status is RequestStatus.REJECTED


@pytest.mark.asyncio
async def test_pending_list_hides_overdue_requests(session, settings, people):
    registry = RequestRegistry.with_session(session, settings)
    live = await registry.create(_new_request(people))
    stale = await registry.create(_new_request(people, expires_in=timedelta(minutes=5)))
    await session.commit()

    pending = await registry.list_pending_for(people.agent.id, T0 + timedelta(minutes=10))
    overdue = await registry.list_overdue(T0 + timedelta(minutes=10), limit=10)

    assert [record.id for record in pending] == [live.id]
    assert [record.id for record in overdue] == [stale.id]


@pytest.mark.asyncio
async def test_history_lists_sent_and_received(session, settings, people):
    registry = RequestRegistry.with_session(session, settings)
    record = await registry.create(_new_request(people))
    await session.commit()

    sent = await registry.list_for(people.client.id)
    received_only = await registry.list_for(people.agent.id)
    received = await registry.list_for(people.agent.id, include_received=True)

    assert [r.id for r in sent] == [record.id]
    assert received_only == []
    assert [r.id for r in received] == [record.id]


@pytest.mark.asyncio
async def test_unknown_request_is_not_found(session, settings):
    registry = RequestRegistry.with_session(session, settings)

    with pytest.raises(RequestNotFoundError):
        await registry.get("missing")
    with pytest.raises(RequestNotFoundError):
        await registry.get_by_reference("WD-NOPE0000")
