"""In-process event bus for request lifecycle notifications.

The protocol only publishes; delivering codes and status messages to people
is left to subscribers (SMS gateways, push workers, ...).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RequestEvent:
    reference: str
    request_id: str
    kind: str
    requester_id: str
    counterparty_id: str
    occurred_at: datetime


@dataclass(slots=True, frozen=True)
class RequestCreated(RequestEvent):
    code: Optional[str] = field(default=None, repr=False)


@dataclass(slots=True, frozen=True)
class RequestApproved(RequestEvent):
    pass


@dataclass(slots=True, frozen=True)
class RequestRejected(RequestEvent):
    note: Optional[str] = None


@dataclass(slots=True, frozen=True)
class RequestCancelled(RequestEvent):
    pass


@dataclass(slots=True, frozen=True)
class RequestExpired(RequestEvent):
    pass


@dataclass(slots=True, frozen=True)
class ConfirmationCodeReissued(RequestEvent):
    code: Optional[str] = field(default=None, repr=False)


Handler = Callable[[RequestEvent], Union[Awaitable[None], None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        self._handlers.append(handler)

    async def publish(self, event: RequestEvent) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if result is not None:
                    await result
            except Exception as exc:  # pylint: disable=broad-except
                # The transition is already committed; a failing subscriber must not undo it.
                logger.error("Event handler %r failed for %s: %s", handler, event.reference, exc)


def log_event(event: RequestEvent) -> None:
    logger.info("%s %s (%s)", type(event).__name__, event.reference, event.kind)


__all__ = [
    "ConfirmationCodeReissued",
    "EventBus",
    "RequestApproved",
    "RequestCancelled",
    "RequestCreated",
    "RequestEvent",
    "RequestExpired",
    "RequestRejected",
    "log_event",
]
