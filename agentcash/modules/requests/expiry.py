"""Background retirement of overdue PENDING requests."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agentcash.core.clock import Clock, SystemClock
from agentcash.core.config import Settings, get_settings
from agentcash.core.events import EventBus

from .lifecycle import RequestLifecycleService
from .models import RequestStatus
from .service import RequestRegistry

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodically moves PENDING requests past ``expires_at`` to EXPIRED.

    Approval already expires stale requests lazily; the sweep keeps them out of
    the counterparty's pending list and emits ``RequestExpired`` even when
    nobody touches them again.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        clock: Clock | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.events = events or EventBus()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> list[str]:
        """Expire one batch of overdue requests and return their references."""
        now = self.clock.now()
        async with self.session_factory() as session:
            overdue = await RequestRegistry.with_session(session, self.settings).list_overdue(
                now, self.settings.expiry.batch_size
            )

        expired: list[str] = []
        for request in overdue:
            async with self.session_factory() as session:
                lifecycle = RequestLifecycleService.with_session(
                    session,
                    self.settings,
                    clock=self.clock,
                    events=self.events,
                )
                record = await lifecycle.expire(request.id, now)
            if record.status is RequestStatus.EXPIRED:
                expired.append(record.reference)

        if expired:
            logger.info("Expiry sweep retired %d request(s)", len(expired))
        return expired

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Expiry sweeper started (every %ss)", self.settings.expiry.interval_seconds)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Expiry sweeper stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as exc:  # pylint: disable=broad-except
                # Keep sweeping; the next pass retries whatever failed.
                logger.exception("Expiry sweep failed: %s", exc)
            await asyncio.sleep(self.settings.expiry.interval_seconds)


__all__ = ["ExpirySweeper"]
