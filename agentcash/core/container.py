"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from agentcash.core.clock import Clock, SystemClock
from agentcash.core.config import Settings, get_settings
from agentcash.core.events import EventBus, log_event
from agentcash.infrastructure.database.session import build_engine, build_session_factory
from agentcash.modules.ledger import Ledger
from agentcash.modules.requests.expiry import ExpirySweeper
from agentcash.modules.requests.lifecycle import RequestLifecycleService


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    clock: Clock = field(default_factory=SystemClock)
    events: EventBus = field(default_factory=EventBus)
    engine: Optional[AsyncEngine] = None
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    sweeper: Optional[ExpirySweeper] = None

    def __post_init__(self) -> None:
        self.events.subscribe(log_event)

    def init_infrastructure(self) -> None:
        """Ensure infrastructure singletons (database engine, etc.) are initialised."""
        if self.engine is None:
            self.engine = build_engine(self.settings)
        if self.session_factory is None:
            self.session_factory = build_session_factory(self.engine)

    def lifecycle(self, session: AsyncSession, ledger: Ledger | None = None) -> RequestLifecycleService:
        return RequestLifecycleService.with_session(
            session,
            self.settings,
            clock=self.clock,
            events=self.events,
            ledger=ledger,
        )

    def build_sweeper(self) -> ExpirySweeper:
        self.init_infrastructure()
        if self.sweeper is None:
            self.sweeper = ExpirySweeper(self.session_factory, self.settings, self.clock, self.events)
        return self.sweeper

    async def shutdown(self) -> None:
        if self.sweeper is not None:
            await self.sweeper.stop()
        if self.engine is not None:
            await self.engine.dispose()


@lru_cache()
def get_container() -> ApplicationContainer:
    container = ApplicationContainer(settings=get_settings())
    container.init_infrastructure()
    return container


__all__ = ["ApplicationContainer", "get_container"]
