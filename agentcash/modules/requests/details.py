"""Closed, versioned detail payloads per request kind.

Unknown fields are rejected instead of being carried along as free-form
metadata.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import RequestValidationError
from .models import RequestKind


class FloatDirection(str, Enum):
    TOP_UP = "TOP_UP"
    CASH_OUT = "CASH_OUT"


class _Details(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class WithdrawalDetails(_Details):
    version: Literal[1] = 1


class FloatDetails(_Details):
    version: Literal[1] = 1
    # TOP_UP: the counterparty funds the requester's float.
    # CASH_OUT: the requester converts float to cash at the counterparty.
    direction: FloatDirection = FloatDirection.TOP_UP


class CancellationDetails(_Details):
    version: Literal[1] = 1
    transaction_reference: str = Field(..., min_length=3, max_length=32)
    reason: Optional[str] = Field(default=None, max_length=255)


RequestDetails = Union[WithdrawalDetails, FloatDetails, CancellationDetails]

DETAILS_BY_KIND: dict[RequestKind, type[_Details]] = {
    RequestKind.WITHDRAWAL: WithdrawalDetails,
    RequestKind.FLOAT: FloatDetails,
    RequestKind.CANCELLATION: CancellationDetails,
}


def parse_details(kind: RequestKind, raw: Optional[Mapping[str, Any]]) -> RequestDetails:
    model = DETAILS_BY_KIND[kind]
    try:
        return model.model_validate(dict(raw or {}))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'details'}: {error['msg']}"
            for error in exc.errors()
        )
        raise RequestValidationError(f"Invalid {kind.value.lower()} details: {problems}") from exc


def dump_details(details: RequestDetails) -> dict[str, Any]:
    return details.model_dump(mode="json")


__all__ = [
    "CancellationDetails",
    "DETAILS_BY_KIND",
    "FloatDetails",
    "FloatDirection",
    "RequestDetails",
    "WithdrawalDetails",
    "dump_details",
    "parse_details",
]
