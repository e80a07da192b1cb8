"""
Time-windowed velocity analysis for one address.

Counts activity in the last hour/day/week, computes mean and peak hourly
rates over the last day, and runs the burst, trend and pattern detectors.
Windows are half-open (start, end]. Records without a timestamp are ignored.

Detectors:
- burst: last 15 minutes vs the 15 minutes before (more than 5 and more than 5x).
- trend: three consecutive 1-hour buckets.
- regular-intervals: gaps between the last <=10 transactions vary by <10% of their mean.
- identical-amounts: >70% of the last <=10 amounts are equal.
- alternating-send-receive: the last 6 transactions strictly alternate direction.
- sudden-activity: activity in the last hour, none in the rest of the day,
  some earlier in the week.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Sequence

import numpy as np

from risk_agent.agent_logging import get_logger
from risk_agent.analysis_engine.models import VelocityStats, VelocityTrend
from risk_agent.analysis_engine.records import (
    CATEGORY_RECEIVED,
    CATEGORY_SENT,
    TransactionRecord,
)

logger = get_logger(__name__)

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)
WEEK = timedelta(days=7)
BURST_WINDOW = timedelta(minutes=15)

BURST_MIN_COUNT = 5
BURST_MULTIPLIER = 5
RAPID_TREND_MULTIPLIER = 3

PATTERN_WINDOW = 10
REGULAR_MIN_TRANSACTIONS = 5
REGULAR_MAX_VARIATION = 0.1
IDENTICAL_MIN_AMOUNTS = 3
IDENTICAL_SHARE = 0.7
ALTERNATING_WINDOW = 6

PATTERN_REGULAR_INTERVALS = "regular-intervals"
PATTERN_IDENTICAL_AMOUNTS = "identical-amounts"
PATTERN_ALTERNATING = "alternating-send-receive"
PATTERN_SUDDEN_ACTIVITY = "sudden-activity"


def count_in_window(times: Iterable[datetime], start: datetime, end: datetime) -> int:
    return sum(1 for t in times if start < t <= end)


def peak_hourly_rate(times: Iterable[datetime], start: datetime, end: datetime) -> int:
    """Largest clock-hour bucket count within (start, end]."""
    buckets = Counter(int(t.timestamp() // 3600) for t in times if start < t <= end)
    return max(buckets.values(), default=0)


def detect_burst(times: Sequence[datetime], now: datetime) -> bool:
    recent = count_in_window(times, now - BURST_WINDOW, now)
    previous = count_in_window(times, now - 2 * BURST_WINDOW, now - BURST_WINDOW)
    return recent > BURST_MIN_COUNT and recent > previous * BURST_MULTIPLIER


def analyze_trend(times: Sequence[datetime], now: datetime) -> VelocityTrend:
    recent = count_in_window(times, now - HOUR, now)
    previous = count_in_window(times, now - 2 * HOUR, now - HOUR)
    before = count_in_window(times, now - 3 * HOUR, now - 2 * HOUR)

    if recent > previous * RAPID_TREND_MULTIPLIER and previous >= before:
        return VelocityTrend.RAPIDLY_INCREASING
    if recent > previous >= before:
        return VelocityTrend.INCREASING
    if recent < previous <= before:
        return VelocityTrend.DECREASING
    return VelocityTrend.STABLE


def detect_regular_intervals(records: Sequence[TransactionRecord]) -> bool:
    """Bot-like cadence. records must be most-recent first."""
    if len(records) < REGULAR_MIN_TRANSACTIONS:
        return False
    recent = [r.timestamp.timestamp() for r in records[:PATTERN_WINDOW] if r.timestamp]
    gaps = np.abs(np.diff(np.array(recent, dtype=float)))
    if gaps.size == 0:
        return False
    mean_gap = float(gaps.mean())
    if mean_gap <= 0:
        return False
    return float(gaps.std()) / mean_gap < REGULAR_MAX_VARIATION


def detect_identical_amounts(records: Sequence[TransactionRecord]) -> bool:
    amounts = [r.amount for r in records if r.amount > 0][:PATTERN_WINDOW]
    if len(amounts) < IDENTICAL_MIN_AMOUNTS:
        return False
    most_common = Counter(amounts).most_common(1)[0][1]
    return most_common / len(amounts) > IDENTICAL_SHARE


def detect_alternating_directions(records: Sequence[TransactionRecord]) -> bool:
    if len(records) < ALTERNATING_WINDOW:
        return False
    directions = [r.category for r in records[:ALTERNATING_WINDOW]]
    if any(d not in (CATEGORY_SENT, CATEGORY_RECEIVED) for d in directions):
        return False
    return all(a != b for a, b in zip(directions, directions[1:]))


def detect_sudden_activity(times: Sequence[datetime], now: datetime) -> bool:
    last_hour = count_in_window(times, now - HOUR, now)
    rest_of_day = count_in_window(times, now - DAY, now - HOUR)
    earlier_week = count_in_window(times, now - WEEK, now - DAY)
    return last_hour > 0 and rest_of_day == 0 and earlier_week > 0


def detect_unusual_patterns(records: Sequence[TransactionRecord], now: datetime) -> tuple[str, ...]:
    times = [r.timestamp for r in records if r.timestamp is not None]
    patterns: list[str] = []
    if detect_regular_intervals(records):
        patterns.append(PATTERN_REGULAR_INTERVALS)
    if detect_identical_amounts(records):
        patterns.append(PATTERN_IDENTICAL_AMOUNTS)
    if detect_alternating_directions(records):
        patterns.append(PATTERN_ALTERNATING)
    if detect_sudden_activity(times, now):
        patterns.append(PATTERN_SUDDEN_ACTIVITY)
    return tuple(patterns)


def compute_velocity_stats(
    records: Iterable[TransactionRecord],
    now: datetime,
) -> VelocityStats | None:
    """
    Build VelocityStats as of now; None when no record carries a timestamp.
    """
    timed = sorted(
        (r for r in records if r.timestamp is not None),
        key=lambda r: r.timestamp,
        reverse=True,
    )
    if not timed:
        return None
    times = [r.timestamp for r in timed]

    last_hour = count_in_window(times, now - HOUR, now)
    last_day = count_in_window(times, now - DAY, now)
    last_week = count_in_window(times, now - WEEK, now)

    stats = VelocityStats(
        transactions_last_hour=last_hour,
        transactions_last_day=last_day,
        transactions_last_week=last_week,
        average_hourly_rate=last_day / 24,
        average_daily_rate=last_week / 7,
        peak_hourly_rate=peak_hourly_rate(times, now - DAY, now),
        burst_detected=detect_burst(times, now),
        velocity_trend=analyze_trend(times, now),
        unusual_patterns=detect_unusual_patterns(timed, now),
        analyzed_at=now,
    )
    if stats.burst_detected or stats.unusual_patterns:
        logger.info(
            "velocity_anomaly_detected",
            burst=stats.burst_detected,
            trend=stats.velocity_trend.value,
            patterns=list(stats.unusual_patterns),
        )
    return stats
