"""
Market-wide and per-user transaction size statistics.

Sizes are in human units. Median is the element at index n//2 of the sorted
sizes and the large-transaction threshold the element at int(0.95 * n);
standard deviation is the population value.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

import numpy as np

from risk_agent.analysis_engine.models import MarketStats, UserTransactionStats
from risk_agent.analysis_engine.records import TransactionRecord, parse_record

SECONDS_PER_DAY = 86400
LARGE_PERCENTILE = 0.95
USER_LARGE_THRESHOLD = 100.0

# Used when no positive-amount transactions have been observed
DEFAULT_MARKET_STATS = MarketStats(
    total_transactions=0,
    average_transaction_size=10.0,
    median_transaction_size=5.0,
    transaction_size_std_dev=5.0,
    total_volume=0.0,
    active_addresses=0,
    large_transaction_threshold=100.0,
)

_ADDRESS_FIELDS = ("sender", "recipient", "from", "to")


def _sorted_sizes(records: Iterable[TransactionRecord]) -> np.ndarray:
    sizes = np.array([r.amount_units for r in records if r.amount > 0], dtype=float)
    return np.sort(sizes)


def parse_market_records(raws: Iterable[Any]) -> list[TransactionRecord]:
    """Normalize market-wide raw records; category taken from their "type" field."""
    out: list[TransactionRecord] = []
    for raw in raws:
        if isinstance(raw, dict):
            out.append(parse_record(raw, str(raw.get("type") or "transfer")))
    return out


def count_active_addresses(raws: Iterable[Any]) -> int:
    addresses: set[str] = set()
    for raw in raws:
        if not isinstance(raw, dict):
            continue
        for key in _ADDRESS_FIELDS:
            value = raw.get(key)
            if value:
                addresses.add(str(value))
    return len(addresses)


def compute_market_stats(raws: list[Any]) -> MarketStats:
    """Aggregate statistics over a sample of raw market-wide records."""
    sizes = _sorted_sizes(parse_market_records(raws))
    active = count_active_addresses(raws)
    n = int(sizes.size)
    if n == 0:
        return replace(DEFAULT_MARKET_STATS, active_addresses=active)
    return MarketStats(
        total_transactions=n,
        average_transaction_size=float(sizes.mean()),
        median_transaction_size=float(sizes[n // 2]),
        transaction_size_std_dev=float(sizes.std()),
        total_volume=float(sizes.sum()),
        active_addresses=active,
        large_transaction_threshold=float(sizes[int(n * LARGE_PERCENTILE)]),
    )


def compute_user_transaction_stats(
    records: Iterable[TransactionRecord],
    *,
    large_threshold: float = USER_LARGE_THRESHOLD,
) -> UserTransactionStats | None:
    """
    Per-address size statistics; None when the address has no records at all.

    transaction_frequency is transactions per day between first and last
    timestamp, or the count itself when that span is zero.
    """
    records = list(records)
    if not records:
        return None

    sizes = _sorted_sizes(records)
    n = int(sizes.size)
    timestamps = sorted(r.timestamp for r in records if r.timestamp is not None)
    first_seen = timestamps[0] if timestamps else None
    last_seen = timestamps[-1] if timestamps else None

    frequency = 0.0
    if first_seen is not None and last_seen is not None:
        span_days = (last_seen - first_seen).total_seconds() / SECONDS_PER_DAY
        frequency = n / span_days if span_days > 0 else float(n)

    if n == 0:
        return UserTransactionStats(
            total_transactions=0,
            average_transaction_size=0.0,
            median_transaction_size=0.0,
            transaction_size_std_dev=0.0,
            large_transaction_count=0,
            first_seen=first_seen,
            last_seen=last_seen,
            transaction_frequency=frequency,
        )
    return UserTransactionStats(
        total_transactions=n,
        average_transaction_size=float(sizes.mean()),
        median_transaction_size=float(sizes[n // 2]),
        transaction_size_std_dev=float(sizes.std()),
        large_transaction_count=int(np.count_nonzero(sizes > large_threshold)),
        first_seen=first_seen,
        last_seen=last_seen,
        transaction_frequency=frequency,
    )
