"""Fixtures for settings, clock and events."""

import pytest

from agentcash.core.clock import FrozenClock
from agentcash.core.config import (
    DatabaseSettings,
    ExpirySettings,
    RequestSettings,
    SecuritySettings,
    Settings,
)
from agentcash.core.events import EventBus
from tests.consts import T0


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        environment="test",
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'agentcash.db'}"),
        security=SecuritySettings(secret_key="test-secret-key"),
        requests=RequestSettings(confirmation_hash_rounds=4, ledger_timeout_seconds=2.0),
        expiry=ExpirySettings(enabled=False, batch_size=50),
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture
def published() -> list:
    """Events received by the ``events`` bus, in order."""
    return []


@pytest.fixture
def events(published) -> EventBus:
    bus = EventBus()
    bus.subscribe(published.append)
    return bus
