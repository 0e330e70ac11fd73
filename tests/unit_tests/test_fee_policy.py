"""Tests for fee computation and splits."""

import pytest

from agentcash.core.config import FeeSettings
from agentcash.modules.accounts import Role
from agentcash.modules.fees import FeePolicy, FeeRule, FeeRuleNotFound, apply_bps
from agentcash.modules.requests import RequestKind


@pytest.fixture
def policy() -> FeePolicy:
    return FeePolicy.from_settings(FeeSettings())


def test_withdrawal_fee_is_two_percent_split_forty_sixty(policy):
    quote = policy.compute(RequestKind.WITHDRAWAL, Role.AGENT, 100_000)

    assert quote.fee == 2_000
    assert quote.platform_share == 800
    assert quote.counterparty_share == 1_200
    assert (quote.platform_share_bps, quote.counterparty_share_bps) == (4_000, 6_000)


def test_cancellation_fee_is_five_percent_split_sixty_forty(policy):
    quote = policy.compute(RequestKind.CANCELLATION, Role.AGENT, 100_000)

    assert quote.fee == 5_000
    assert quote.platform_share == 3_000
    assert quote.counterparty_share == 2_000


@pytest.mark.parametrize("role", [Role.ADMIN, Role.AGENT])
def test_float_is_free(policy, role):
    quote = policy.compute(RequestKind.FLOAT, role, 250_000)

    assert quote.fee == 0
    assert quote.platform_share == 0
    assert quote.counterparty_share == 0


def test_rounding_is_half_up(policy):
    # 25 * 2% = 0.5 -> 1, 24 * 2% = 0.48 -> 0
    assert policy.compute(RequestKind.WITHDRAWAL, Role.AGENT, 25).fee == 1
    assert policy.compute(RequestKind.WITHDRAWAL, Role.AGENT, 24).fee == 0
    assert apply_bps(12_345, 200) == 247


def test_shares_always_sum_to_fee(policy):
    for amount in (10_001, 33_333, 99_999, 123_457):
        quote = policy.compute(RequestKind.WITHDRAWAL, Role.AGENT, amount)
        assert quote.platform_share + quote.counterparty_share == quote.fee


def test_same_input_gives_same_quote(policy):
    first = policy.compute(RequestKind.WITHDRAWAL, Role.AGENT, 77_777)
    second = policy.compute(RequestKind.WITHDRAWAL, Role.AGENT, 77_777)

    assert first == second


def test_unknown_pair_is_rejected(policy):
    with pytest.raises(FeeRuleNotFound):
        policy.compute(RequestKind.WITHDRAWAL, Role.CLIENT, 100_000)


def test_non_positive_amount_is_rejected(policy):
    with pytest.raises(ValueError):
        policy.compute(RequestKind.WITHDRAWAL, Role.AGENT, 0)


def test_rule_validates_platform_share():
    with pytest.raises(ValueError):
        FeeRule(rate_bps=100, platform_share_bps=10_001)
    assert FeeRule(rate_bps=100, platform_share_bps=2_500).counterparty_share_bps == 7_500


def test_rates_come_from_settings():
    policy = FeePolicy.from_settings(FeeSettings(withdrawal_rate_bps=150, withdrawal_platform_share_bps=5_000))

    quote = policy.compute(RequestKind.WITHDRAWAL, Role.AGENT, 100_000)

    assert quote.fee == 1_500
    assert quote.platform_share == 750
