"""Fee policy exports"""

from .policy import FeePolicy, FeeQuote, FeeRule, FeeRuleNotFound, apply_bps

__all__ = ["FeePolicy", "FeeQuote", "FeeRule", "FeeRuleNotFound", "apply_bps"]
