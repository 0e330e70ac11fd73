"""Request protocol exceptions."""

from __future__ import annotations

from typing import Optional

from .models import RequestStatus


class RequestError(Exception):
    """Base class for request protocol errors."""


class RequestValidationError(RequestError):
    """Rejected at creation; nothing was persisted."""

    def __init__(self, message: str, *, existing_reference: Optional[str] = None) -> None:
        super().__init__(message)
        self.existing_reference = existing_reference


class RequestNotFoundError(RequestError):
    """Unknown request id or reference."""


class RequestPermissionError(RequestError):
    """The acting account is not allowed to perform this transition."""


class RequestConflictError(RequestError):
    """The request is no longer in the state the caller expected."""

    def __init__(self, message: str, *, current_status: Optional[RequestStatus] = None) -> None:
        super().__init__(message)
        self.current_status = current_status


class RequestExpiredError(RequestError):
    """Approval attempted after ``expires_at``; the request is now EXPIRED."""


class InvalidConfirmationCodeError(RequestError):
    """Supplied code did not match. The request stays PENDING and may be retried."""


class LedgerFailureError(RequestError):
    """The ledger refused or did not confirm the transfer. The request stays PENDING."""


__all__ = [
    "InvalidConfirmationCodeError",
    "LedgerFailureError",
    "RequestConflictError",
    "RequestError",
    "RequestExpiredError",
    "RequestNotFoundError",
    "RequestPermissionError",
    "RequestValidationError",
]
