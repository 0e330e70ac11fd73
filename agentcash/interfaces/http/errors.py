"""Translate domain exceptions into HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from agentcash.modules.accounts import AccountAlreadyExistsError, AccountError, AccountNotFoundError
from agentcash.modules.requests import (
    InvalidConfirmationCodeError,
    LedgerFailureError,
    RequestConflictError,
    RequestError,
    RequestExpiredError,
    RequestNotFoundError,
    RequestPermissionError,
    RequestValidationError,
)

logger = logging.getLogger(__name__)

REQUEST_ERROR_STATUS: dict[type[RequestError], int] = {
    RequestValidationError: 422,
    RequestConflictError: status.HTTP_409_CONFLICT,
    RequestExpiredError: status.HTTP_410_GONE,
    InvalidConfirmationCodeError: status.HTTP_400_BAD_REQUEST,
    LedgerFailureError: status.HTTP_502_BAD_GATEWAY,
    RequestNotFoundError: status.HTTP_404_NOT_FOUND,
    RequestPermissionError: status.HTTP_403_FORBIDDEN,
}


def status_for(exc: RequestError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in REQUEST_ERROR_STATUS:
            return REQUEST_ERROR_STATUS[error_type]
    return status.HTTP_400_BAD_REQUEST


async def handle_request_errors(request: Request, exc: RequestError) -> JSONResponse:
    http_status = status_for(exc)
    error_response = {
        "detail": str(exc),
        "error_type": type(exc).__name__,
    }
    current_status = getattr(exc, "current_status", None)
    if current_status is not None:
        error_response["current_status"] = current_status.value
    existing_reference = getattr(exc, "existing_reference", None)
    if existing_reference is not None:
        error_response["existing_reference"] = existing_reference

    log = logger.error if http_status >= 500 else logger.info
    log("%s %s -> %d %s: %s", request.method, request.url.path, http_status, type(exc).__name__, exc)
    return JSONResponse(status_code=http_status, content=error_response)


async def handle_account_errors(request: Request, exc: AccountError) -> JSONResponse:
    if isinstance(exc, AccountNotFoundError):
        http_status = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, AccountAlreadyExistsError):
        http_status = status.HTTP_409_CONFLICT
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    content = {"detail": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, AccountAlreadyExistsError):
        content["field"] = exc.field
    logger.info("%s %s -> %d: %s", request.method, request.url.path, http_status, exc)
    return JSONResponse(status_code=http_status, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestError, handle_request_errors)
    app.add_exception_handler(AccountError, handle_account_errors)


__all__ = [
    "REQUEST_ERROR_STATUS",
    "handle_account_errors",
    "handle_request_errors",
    "register_exception_handlers",
    "status_for",
]
