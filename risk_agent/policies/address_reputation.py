"""
Address reputation policy.

Scores an address from its on-chain history: age, activity level, failure
rate, unusual patterns, average size and venue diversity. Malformed
addresses score a fixed 75; any data or computation failure scores a fixed
conservative 50.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass

from risk_agent.agent_logging import get_logger
from risk_agent.analysis_engine.models import AddressHistory, AddressStats, PolicyOutcome
from risk_agent.chain_data.cached import CachedChainData
from risk_agent.config.settings import ReputationConfig
from risk_agent.core.result import Err
from risk_agent.policies.rules import Factor, evaluate_factors, factor, tier

logger = get_logger(__name__)

BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

REASON_NO_ADDRESS = "no-address"
REASON_INVALID_FORMAT = "invalid-address-format"
REASON_ANALYSIS_ERROR = "analysis-error-conservative-score"


@dataclass(frozen=True)
class ReputationContext:
    history: AddressHistory
    stats: AddressStats


def address_pattern(config: ReputationConfig) -> re.Pattern[str]:
    """<prefix>1<bech32 data>, lowercase, with one of the configured total lengths."""
    prefix = re.escape(config.address_prefix)
    data_lengths = sorted({n - len(config.address_prefix) - 1 for n in config.address_lengths})
    alternatives = "|".join(f"[{BECH32_CHARSET}]{{{n}}}" for n in data_lengths if n > 0)
    return re.compile(f"{prefix}1(?:{alternatives})")


def reputation_factors(config: ReputationConfig) -> tuple[Factor[ReputationContext], ...]:
    return (
        factor(
            "age",
            tier("no-history", lambda c: c.history.is_empty, 40),
            tier("new-address", lambda c: c.stats.age_days < 7, 30),
            tier("young-address", lambda c: c.stats.age_days < 30, 20),
            tier("established-address", lambda c: True, 5),
        ),
        factor(
            "transaction_count",
            tier("no-transactions", lambda c: c.stats.total_transactions == 0, 35),
            tier("low-activity", lambda c: c.stats.total_transactions < 5, 25),
            tier("moderate-activity", lambda c: c.stats.total_transactions < 50, 15),
            tier("active-history", lambda c: True, 5),
        ),
        factor(
            "failure_rate",
            tier("high-failure-rate", lambda c: c.stats.failure_rate > 0.5, 30),
            tier("elevated-failure-rate", lambda c: c.stats.failure_rate > 0.2, 15),
        ),
        factor(
            "unusual_patterns",
            tier("unusual-patterns", lambda c: c.stats.has_unusual_patterns, 25),
        ),
        factor(
            "average_size",
            tier(
                "large-average-size",
                lambda c: c.stats.average_transaction_size > config.large_average_size,
                10,
            ),
        ),
        factor(
            "venue_diversity",
            tier("diverse-usage", lambda c: c.stats.unique_venues > config.diverse_venue_count, -5),
        ),
    )


class AddressReputationPolicy:
    """evaluate(address) -> PolicyOutcome; never raises on provider failure."""

    def __init__(self, data: CachedChainData, config: ReputationConfig | None = None) -> None:
        self.data = data
        self.config = config or ReputationConfig()
        self._pattern = address_pattern(self.config)
        self._factors = reputation_factors(self.config)

    def is_valid_address(self, address: str) -> bool:
        return self._pattern.fullmatch(address) is not None

    async def evaluate(self, address: str | None) -> PolicyOutcome:
        if not address:
            return PolicyOutcome(score=0, reason=REASON_NO_ADDRESS)
        if not self.is_valid_address(address):
            logger.info("address_format_invalid", address=address)
            return PolicyOutcome(score=self.config.invalid_format_score, reason=REASON_INVALID_FORMAT)

        history, stats = await asyncio.gather(
            self.data.address_history(address),
            self.data.address_stats(address),
        )
        if isinstance(history, Err) or isinstance(stats, Err):
            return self._conservative(address)

        try:
            evaluation = evaluate_factors(self._factors, ReputationContext(history.value, stats.value))
        except (ArithmeticError, TypeError, ValueError, AttributeError):
            logger.exception("reputation_evaluation_failed", address=address)
            return self._conservative(address)

        outcome = evaluation.outcome(default="established-address")
        logger.debug(
            "reputation_scored",
            address=address,
            score=outcome.score,
            hits=[h.to_dict() for h in evaluation.hits],
        )
        return outcome

    def _conservative(self, address: str) -> PolicyOutcome:
        logger.warning("reputation_fallback", address=address, score=self.config.conservative_score)
        return PolicyOutcome(score=self.config.conservative_score, reason=REASON_ANALYSIS_ERROR)
