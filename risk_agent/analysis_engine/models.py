"""
Domain models for risk scoring.

Policy outcomes, the final risk score, and the statistics views the policies
consume (address history/stats, market and user stats, velocity stats).
All statistics objects are frozen: a refresh replaces them wholesale.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from risk_agent.analysis_engine.records import TransactionRecord

MIN_SCORE = 0
MAX_SCORE = 100


def clamp_score(value: float) -> int:
    """Clamp to [0, 100] and round half up to an int."""
    if value != value:  # NaN
        return MIN_SCORE
    bounded = max(float(MIN_SCORE), min(float(MAX_SCORE), float(value)))
    return int(bounded + 0.5)


class Recommendation(str, Enum):
    ALLOW = "allow"
    HOLD = "hold"
    ESCALATE = "escalate"
    DENY = "deny"


class VelocityTrend(str, Enum):
    DECREASING = "decreasing"
    STABLE = "stable"
    INCREASING = "increasing"
    RAPIDLY_INCREASING = "rapidly_increasing"


@dataclass(frozen=True)
class PolicyOutcome:
    """Bounded sub-score from one policy plus a short categorical reason tag."""

    score: int
    reason: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", clamp_score(self.score))

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "reason": self.reason}


@dataclass(frozen=True)
class RiskScore:
    """
    Final scoring result.

    reasons holds the reputation, amount and velocity reason tags in that order.
    """

    score: int
    reasons: tuple[str, ...]
    recommendation: Recommendation

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", clamp_score(self.score))
        object.__setattr__(self, "reasons", tuple(self.reasons))

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable payload; stable key order."""
        return {
            "score": self.score,
            "reasons": list(self.reasons),
            "recommendation": self.recommendation.value,
        }

    def canonical_json(self) -> str:
        """Deterministic serialization used for signing."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class AddressHistory:
    """
    Activity of one address across every tracked transaction category.

    Built fresh on each cache miss and never mutated.
    """

    address: str
    sent: tuple[TransactionRecord, ...] = ()
    received: tuple[TransactionRecord, ...] = ()
    claimed: tuple[TransactionRecord, ...] = ()
    refunded: tuple[TransactionRecord, ...] = ()
    group_contributions: tuple[TransactionRecord, ...] = ()
    pot_deposits: tuple[TransactionRecord, ...] = ()
    vault_positions: tuple[TransactionRecord, ...] = ()
    escrow_cases: tuple[TransactionRecord, ...] = ()
    total_transactions: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None

    def all_records(self) -> tuple[TransactionRecord, ...]:
        return (
            self.sent
            + self.received
            + self.claimed
            + self.refunded
            + self.group_contributions
            + self.pot_deposits
            + self.vault_positions
            + self.escrow_cases
        )

    @property
    def is_empty(self) -> bool:
        return self.total_transactions == 0


@dataclass(frozen=True)
class AddressStats:
    """Derived view of AddressHistory; recomputable from (history, now)."""

    age_days: int
    total_transactions: int
    failure_rate: float
    average_transaction_size: float
    """Mean of sent/received amounts in smallest units."""
    unique_venues: int
    has_unusual_patterns: bool
    risk_factors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "age_days": self.age_days,
            "total_transactions": self.total_transactions,
            "failure_rate": self.failure_rate,
            "average_transaction_size": self.average_transaction_size,
            "unique_venues": self.unique_venues,
            "has_unusual_patterns": self.has_unusual_patterns,
            "risk_factors": list(self.risk_factors),
        }


@dataclass(frozen=True)
class MarketStats:
    """Aggregate statistics over observed transactions, in human units."""

    total_transactions: int
    average_transaction_size: float
    median_transaction_size: float
    transaction_size_std_dev: float
    total_volume: float
    active_addresses: int
    large_transaction_threshold: float
    """95th percentile of observed sizes."""
    suspicious_pattern_count: int = 0


@dataclass(frozen=True)
class UserTransactionStats:
    """Per-address analogue of MarketStats."""

    total_transactions: int
    average_transaction_size: float
    median_transaction_size: float
    transaction_size_std_dev: float
    large_transaction_count: int
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    transaction_frequency: float = 0.0
    """Transactions per day over the observed span."""

    @property
    def large_transaction_ratio(self) -> float:
        if self.total_transactions <= 0:
            return 0.0
        return self.large_transaction_count / self.total_transactions


@dataclass(frozen=True)
class VelocityStats:
    """Time-windowed activity of one address."""

    transactions_last_hour: int
    transactions_last_day: int
    transactions_last_week: int
    average_hourly_rate: float
    """Mean hourly count over the last day."""
    average_daily_rate: float
    """Mean daily count over the last week."""
    peak_hourly_rate: int
    burst_detected: bool
    velocity_trend: VelocityTrend
    unusual_patterns: tuple[str, ...] = field(default_factory=tuple)
    analyzed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions_last_hour": self.transactions_last_hour,
            "transactions_last_day": self.transactions_last_day,
            "transactions_last_week": self.transactions_last_week,
            "average_hourly_rate": self.average_hourly_rate,
            "average_daily_rate": self.average_daily_rate,
            "peak_hourly_rate": self.peak_hourly_rate,
            "burst_detected": self.burst_detected,
            "velocity_trend": self.velocity_trend.value,
            "unusual_patterns": list(self.unusual_patterns),
            "analyzed_at": self.analyzed_at.isoformat() if self.analyzed_at else None,
        }
