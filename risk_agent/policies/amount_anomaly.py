"""
Amount anomaly policy.

Scores a transfer amount against absolute size tiers, market-wide and
per-user z-scores, and shape heuristics (frequent large, round number,
micro transaction). Outliers count in the upper tail only, so a larger
amount never lowers the z-score contributions.

If market or user statistics cannot be fetched, raw smallest-unit tiers
are used instead and the reason carries a "-fallback" suffix.
"""

from __future__ import annotations

import asyncio
import math
import re
from dataclasses import dataclass
from typing import Any

from risk_agent.agent_logging import get_logger
from risk_agent.analysis_engine.models import MarketStats, PolicyOutcome, UserTransactionStats
from risk_agent.analysis_engine.records import SMALLEST_UNITS_PER_UNIT
from risk_agent.chain_data.cached import CachedChainData
from risk_agent.config.settings import AmountConfig
from risk_agent.core.result import Err, FetchResult, Ok
from risk_agent.policies.rules import Factor, evaluate_factors, factor, tier

logger = get_logger(__name__)

REASON_NO_AMOUNT = "no-amount"
REASON_INVALID_AMOUNT = "invalid-amount"
REASON_NORMAL = "normal-amount"

# Raw smallest-unit tiers used when statistics are unavailable
FALLBACK_TIERS: tuple[tuple[int, int, str], ...] = (
    (1_000_000_000, 90, "extreme-amount-fallback"),
    (100_000_000, 60, "very-high-amount-fallback"),
    (10_000_000, 35, "high-amount-fallback"),
)
FALLBACK_DEFAULT = (15, "normal-amount-fallback")


_INTEGER_QUANTITY = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class AmountContext:
    raw: int
    """Amount in smallest units."""
    units: float
    market: MarketStats
    user: UserTransactionStats | None

    @property
    def market_z(self) -> float:
        return upper_z_score(self.units, self.market.average_transaction_size, self.market.transaction_size_std_dev)

    @property
    def user_z(self) -> float:
        if self.user is None:
            return 0.0
        return upper_z_score(self.units, self.user.average_transaction_size, self.user.transaction_size_std_dev)


def upper_z_score(value: float, mean: float, std_dev: float) -> float:
    """Standard deviations above the mean; 0 at or below it, or with no spread."""
    if std_dev <= 0:
        return 0.0
    return max(0.0, value - mean) / std_dev


def parse_quantity(value: Any) -> int | None:
    """
    Smallest-unit quantity as a positive int, else None.

    Accepts ints, integral floats and plain digit strings. Fractions,
    exponents and signs are rejected; amounts are whole smallest units.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        raw = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        raw = int(value)
    elif isinstance(value, str) and _INTEGER_QUANTITY.fullmatch(value.strip()):
        try:
            raw = int(value.strip())
        except ValueError:
            # beyond the interpreter's int string conversion limit
            return None
    else:
        return None
    return raw if raw > 0 else None


def quantity_units(raw: int) -> float:
    """Whole units as a float; inf when the amount exceeds float range."""
    try:
        return raw / SMALLEST_UNITS_PER_UNIT
    except OverflowError:
        return math.inf


def fallback_outcome(raw: int) -> PolicyOutcome:
    for threshold, score, reason in FALLBACK_TIERS:
        if raw >= threshold:
            return PolicyOutcome(score=score, reason=reason)
    score, reason = FALLBACK_DEFAULT
    return PolicyOutcome(score=score, reason=reason)


def amount_factors(config: AmountConfig) -> tuple[Factor[AmountContext], ...]:
    round_step = config.round_number_base * SMALLEST_UNITS_PER_UNIT

    def has_user_history(c: AmountContext) -> bool:
        return c.user is not None and c.user.total_transactions >= config.user_min_history

    return (
        factor(
            "absolute_size",
            tier("extreme-amount", lambda c: c.units >= 10_000, 85),
            tier("very-high-amount", lambda c: c.units >= 1_000, 70),
            tier("high-amount", lambda c: c.units >= 100, 45),
            tier("elevated-amount", lambda c: c.units >= 50, 25),
        ),
        factor(
            "market_z_score",
            tier("extreme-market-outlier", lambda c: c.market_z > 5, 40),
            tier("high-market-outlier", lambda c: c.market_z > 3, 25),
            tier("market-outlier", lambda c: c.market_z > 2, 15),
        ),
        factor(
            "user_z_score",
            tier("extreme-user-outlier", lambda c: has_user_history(c) and c.user_z > 4, 35),
            tier("high-user-outlier", lambda c: has_user_history(c) and c.user_z > 2.5, 20),
            tier("user-outlier", lambda c: has_user_history(c) and c.user_z > 1.5, 10),
        ),
        factor(
            "frequent_large",
            tier(
                "frequent-large-transactions",
                lambda c: (
                    c.user is not None
                    and c.user.large_transaction_ratio > config.frequent_large_ratio
                    and c.units > config.user_large_threshold
                ),
                config.frequent_large_score,
            ),
        ),
        factor(
            "round_number",
            tier(
                "round-number",
                lambda c: c.units >= config.round_number_min and c.raw % round_step == 0,
                config.round_number_score,
            ),
        ),
        factor(
            "micro_transaction",
            tier("micro-transaction", lambda c: c.units < config.micro_threshold, config.micro_score),
        ),
    )


class AmountAnomalyPolicy:
    """evaluate(amount, address?) -> PolicyOutcome; amount is in smallest units."""

    def __init__(self, data: CachedChainData, config: AmountConfig | None = None) -> None:
        self.data = data
        self.config = config or AmountConfig()
        self._factors = amount_factors(self.config)

    async def evaluate(self, amount: Any, address: str | None = None) -> PolicyOutcome:
        if amount is None:
            return PolicyOutcome(score=0, reason=REASON_NO_AMOUNT)
        raw = parse_quantity(amount)
        if raw is None:
            logger.info("amount_invalid", amount=str(amount))
            return PolicyOutcome(score=self.config.invalid_amount_score, reason=REASON_INVALID_AMOUNT)

        if address:
            market, user = await asyncio.gather(
                self.data.market_stats(),
                self.data.user_transaction_stats(address),
            )
        else:
            market, user = await self.data.market_stats(), Ok(None)

        if isinstance(market, Err) or isinstance(user, Err):
            outcome = fallback_outcome(raw)
            logger.warning("amount_fallback", address=address, score=outcome.score, reason=outcome.reason)
            return outcome

        ctx = AmountContext(
            raw=raw,
            units=quantity_units(raw),
            market=market.value,
            user=_value_or_none(user),
        )
        try:
            evaluation = evaluate_factors(self._factors, ctx)
        except (ArithmeticError, TypeError, ValueError, AttributeError):
            logger.exception("amount_evaluation_failed", address=address)
            return fallback_outcome(raw)
        outcome = evaluation.outcome(default=REASON_NORMAL)
        logger.debug(
            "amount_scored",
            address=address,
            units=ctx.units,
            market_z=round(ctx.market_z, 4),
            score=outcome.score,
            hits=[h.to_dict() for h in evaluation.hits],
        )
        return outcome


def _value_or_none(result: FetchResult[UserTransactionStats | None]) -> UserTransactionStats | None:
    return result.value if isinstance(result, Ok) else None
