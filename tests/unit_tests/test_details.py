"""Tests for the closed per-kind detail payloads."""

import pytest

from agentcash.modules.requests import (
    CancellationDetails,
    FloatDetails,
    FloatDirection,
    RequestKind,
    RequestValidationError,
    WithdrawalDetails,
    dump_details,
    parse_details,
)


def test_withdrawal_details_default_to_empty_payload():
    details = parse_details(RequestKind.WITHDRAWAL, None)

    assert isinstance(details, WithdrawalDetails)
    assert dump_details(details) == {"version": 1}


def test_float_direction_defaults_to_top_up():
    details = parse_details(RequestKind.FLOAT, {})

    assert isinstance(details, FloatDetails)
    assert details.direction is FloatDirection.TOP_UP


def test_float_cash_out_is_parsed():
    details = parse_details(RequestKind.FLOAT, {"direction": "CASH_OUT"})

    assert dump_details(details) == {"version": 1, "direction": "CASH_OUT"}


def test_unknown_fields_are_rejected():
    with pytest.raises(RequestValidationError, match="note"):
        parse_details(RequestKind.WITHDRAWAL, {"note": "free-form"})


def test_unknown_version_is_rejected():
    with pytest.raises(RequestValidationError):
        parse_details(RequestKind.FLOAT, {"version": 2})


def test_cancellation_needs_transaction_reference():
    with pytest.raises(RequestValidationError, match="transaction_reference"):
        parse_details(RequestKind.CANCELLATION, {"reason": "wrong agent"})

    details = parse_details(RequestKind.CANCELLATION, {"transaction_reference": "WD-ABCDEFGH"})
    assert isinstance(details, CancellationDetails)
    assert details.reason is None
