"""
Velocity / burst policy.

With an address, scores the address's VelocityStats (hourly and daily
counts, burst, peak-vs-average, trend, detected patterns, daily surge over
the weekly average, dormancy followed by a burst). Without an address, or
with no timestamped activity, only caller-supplied rate hints
(txPerHour, txPerDay) are used. On provider failure the same hint tiers
apply with a "-fallback" suffix.
"""

from __future__ import annotations

from typing import Any, Mapping

from risk_agent.agent_logging import get_logger
from risk_agent.analysis_engine.models import PolicyOutcome, VelocityStats, VelocityTrend
from risk_agent.analysis_engine.velocity import PATTERN_SUDDEN_ACTIVITY
from risk_agent.chain_data.cached import CachedChainData
from risk_agent.core.result import Err
from risk_agent.policies.rules import Factor, evaluate_factors, factor, tier

logger = get_logger(__name__)

REASON_NORMAL = "normal-velocity"
FALLBACK_SUFFIX = "-fallback"

HOUR_HINT_KEYS = ("txPerHour", "tx_per_hour")
DAY_HINT_KEYS = ("txPerDay", "tx_per_day")


def _hint(context: Mapping[str, Any] | None, keys: tuple[str, ...]) -> float:
    if not context:
        return 0.0
    for key in keys:
        if key in context:
            try:
                value = float(context[key])
            except (TypeError, ValueError, OverflowError):
                return 0.0
            return value if value == value else 0.0
    return 0.0


def context_outcome(context: Mapping[str, Any] | None, *, suffix: str = "") -> PolicyOutcome:
    """Fixed tiers over caller-supplied hourly/daily rate hints."""
    per_hour = _hint(context, HOUR_HINT_KEYS)
    per_day = _hint(context, DAY_HINT_KEYS)
    if per_hour > 400:
        score, reason = 85, "tx-burst"
    elif per_hour > 50:
        score, reason = 55, "high-velocity"
    elif per_day > 1000:
        score, reason = 70, "daily-limit-exceeded"
    elif per_day > 100:
        score, reason = 30, "active-user"
    else:
        score, reason = 10, "low-velocity"
    return PolicyOutcome(score=score, reason=reason + suffix)


def _peak_ratio(s: VelocityStats) -> float:
    if s.average_hourly_rate <= 0:
        return 0.0
    return s.peak_hourly_rate / s.average_hourly_rate


def _daily_ratio(s: VelocityStats) -> float:
    if s.average_daily_rate <= 0:
        return 0.0
    return s.transactions_last_day / s.average_daily_rate


def _pattern_tag(s: VelocityStats) -> str:
    if len(s.unusual_patterns) == 1:
        return s.unusual_patterns[0]
    return "multiple-patterns"


VELOCITY_FACTORS: tuple[Factor[VelocityStats], ...] = (
    factor(
        "hourly_count",
        tier("extreme-hourly-velocity", lambda s: s.transactions_last_hour > 100, 90),
        tier("very-high-hourly-velocity", lambda s: s.transactions_last_hour > 50, 70),
        tier("high-hourly-velocity", lambda s: s.transactions_last_hour > 20, 45),
        tier("elevated-hourly-velocity", lambda s: s.transactions_last_hour > 10, 25),
    ),
    factor(
        "daily_count",
        tier("extreme-daily-velocity", lambda s: s.transactions_last_day > 500, 80),
        tier("very-high-daily-velocity", lambda s: s.transactions_last_day > 200, 60),
        tier("high-daily-velocity", lambda s: s.transactions_last_day > 100, 40),
        tier("elevated-daily-velocity", lambda s: s.transactions_last_day > 50, 20),
    ),
    factor(
        "burst",
        tier("burst-detected", lambda s: s.burst_detected, 35),
    ),
    factor(
        "peak_vs_average",
        tier("peak-rate-spike", lambda s: _peak_ratio(s) > 10, 30),
        tier("peak-rate-elevated", lambda s: _peak_ratio(s) > 5, 20),
    ),
    factor(
        "trend",
        tier("rapidly-increasing-velocity", lambda s: s.velocity_trend is VelocityTrend.RAPIDLY_INCREASING, 25),
        tier("increasing-velocity", lambda s: s.velocity_trend is VelocityTrend.INCREASING, 15),
    ),
    factor(
        "patterns",
        tier(_pattern_tag, lambda s: bool(s.unusual_patterns), lambda s: 20 * len(s.unusual_patterns)),
    ),
    factor(
        "daily_vs_weekly",
        tier("daily-surge", lambda s: _daily_ratio(s) > 5, 25),
        tier("daily-increase", lambda s: _daily_ratio(s) > 3, 15),
    ),
    factor(
        "dormant_then_burst",
        tier(
            "dormant-then-burst",
            lambda s: s.burst_detected and PATTERN_SUDDEN_ACTIVITY in s.unusual_patterns,
            20,
        ),
    ),
)


class VelocityPolicy:
    """evaluate(context?, address?) -> PolicyOutcome."""

    def __init__(self, data: CachedChainData) -> None:
        self.data = data

    async def evaluate(
        self,
        context: Mapping[str, Any] | None = None,
        address: str | None = None,
    ) -> PolicyOutcome:
        if not address:
            return context_outcome(context)

        result = await self.data.velocity_stats(address)
        if isinstance(result, Err):
            outcome = context_outcome(context, suffix=FALLBACK_SUFFIX)
            logger.warning("velocity_fallback", address=address, score=outcome.score, reason=outcome.reason)
            return outcome
        stats = result.value
        if stats is None:
            return context_outcome(context)

        try:
            evaluation = evaluate_factors(VELOCITY_FACTORS, stats)
        except (ArithmeticError, TypeError, ValueError, AttributeError):
            logger.exception("velocity_evaluation_failed", address=address)
            return context_outcome(context, suffix=FALLBACK_SUFFIX)
        outcome = evaluation.outcome(default=REASON_NORMAL)
        logger.debug(
            "velocity_scored",
            address=address,
            score=outcome.score,
            hits=[h.to_dict() for h in evaluation.hits],
        )
        return outcome
