"""Fee policy: basis-point rates and platform/counterparty splits per request kind.

All arithmetic is integer. ``amount * rate`` is rounded half-up once for the
fee and once more for the platform share; the counterparty share is the
remainder, so the two shares always add up to the fee.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from agentcash.core.config import FeeSettings
from agentcash.modules.accounts.models import Role
from agentcash.modules.requests.models import RequestKind

BPS_DENOMINATOR = 10_000


class FeeRuleNotFound(LookupError):
    """No fee rule exists for the (kind, counterparty role) pair."""


@dataclass(slots=True, frozen=True)
class FeeRule:
    rate_bps: int
    platform_share_bps: int

    def __post_init__(self) -> None:
        if self.rate_bps < 0:
            raise ValueError("rate_bps must be non-negative")
        if not 0 <= self.platform_share_bps <= BPS_DENOMINATOR:
            raise ValueError("platform_share_bps must be between 0 and 10000")

    @property
    def counterparty_share_bps(self) -> int:
        return BPS_DENOMINATOR - self.platform_share_bps


@dataclass(slots=True, frozen=True)
class FeeQuote:
    fee: int
    platform_share: int
    counterparty_share: int
    platform_share_bps: int
    counterparty_share_bps: int


def apply_bps(amount: int, bps: int) -> int:
    """``amount * bps / 10000`` rounded half-up, for non-negative inputs."""
    return (amount * bps + BPS_DENOMINATOR // 2) // BPS_DENOMINATOR


class FeePolicy:
    def __init__(self, rules: Mapping[tuple[RequestKind, Role], FeeRule]) -> None:
        self._rules = dict(rules)

    @classmethod
    def from_settings(cls, settings: FeeSettings) -> "FeePolicy":
        return cls(
            {
                (RequestKind.WITHDRAWAL, Role.AGENT): FeeRule(
                    settings.withdrawal_rate_bps, settings.withdrawal_platform_share_bps
                ),
                (RequestKind.FLOAT, Role.ADMIN): FeeRule(
                    settings.float_admin_rate_bps, settings.float_admin_platform_share_bps
                ),
                (RequestKind.FLOAT, Role.AGENT): FeeRule(
                    settings.float_agent_rate_bps, settings.float_agent_platform_share_bps
                ),
                (RequestKind.CANCELLATION, Role.AGENT): FeeRule(
                    settings.cancellation_rate_bps, settings.cancellation_platform_share_bps
                ),
            }
        )

    def rule_for(self, kind: RequestKind, counterparty_role: Role) -> FeeRule:
        try:
            return self._rules[(kind, counterparty_role)]
        except KeyError:
            raise FeeRuleNotFound(f"No fee rule for {kind.value} with a {counterparty_role.value} counterparty") from None

    def compute(self, kind: RequestKind, counterparty_role: Role, amount: int) -> FeeQuote:
        if amount <= 0:
            raise ValueError("amount must be positive")
        rule = self.rule_for(kind, counterparty_role)
        fee = apply_bps(amount, rule.rate_bps)
        platform_share = apply_bps(fee, rule.platform_share_bps)
        return FeeQuote(
            fee=fee,
            platform_share=platform_share,
            counterparty_share=fee - platform_share,
            platform_share_bps=rule.platform_share_bps,
            counterparty_share_bps=rule.counterparty_share_bps,
        )


__all__ = ["FeePolicy", "FeeQuote", "FeeRule", "FeeRuleNotFound", "apply_bps"]
