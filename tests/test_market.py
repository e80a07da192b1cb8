"""
Tests for market-wide and per-user transaction statistics.
"""

from __future__ import annotations

import math
from datetime import timedelta

import pytest
from conftest import FIXED_NOW, iso, market_transactions

from risk_agent.analysis_engine.market import (
    DEFAULT_MARKET_STATS,
    compute_market_stats,
    compute_user_transaction_stats,
)
from risk_agent.analysis_engine.records import parse_records


def test_market_stats_values():
    raws = [
        {"type": "sent", "amount": "1000000", "sender": "a", "recipient": "b"},
        {"type": "sent", "amount": "2000000", "sender": "a", "recipient": "c"},
        {"type": "sent", "amount": {"amount": "3000000", "denom": "usei"}, "from": "d", "to": "b"},
        {"type": "received", "amount": "4000000", "sender": "e"},
        {"type": "sent", "amount": "0", "sender": "f"},
    ]
    stats = compute_market_stats(raws)
    assert stats.total_transactions == 4
    assert stats.average_transaction_size == pytest.approx(2.5)
    # Element at n // 2 of the sorted sizes
    assert stats.median_transaction_size == 3.0
    assert stats.transaction_size_std_dev == pytest.approx(math.sqrt(1.25))
    assert stats.total_volume == pytest.approx(10.0)
    # Element at int(0.95 * n)
    assert stats.large_transaction_threshold == 4.0
    assert stats.active_addresses == 6


def test_market_stats_defaults_without_data():
    stats = compute_market_stats([])
    assert stats == DEFAULT_MARKET_STATS
    assert stats.average_transaction_size == 10.0
    assert stats.median_transaction_size == 5.0
    assert stats.transaction_size_std_dev == 5.0
    assert stats.large_transaction_threshold == 100.0

    only_zero = compute_market_stats([{"amount": "0", "sender": "a"}, "junk"])
    assert only_zero.average_transaction_size == 10.0
    assert only_zero.active_addresses == 1


def test_market_stats_sample():
    stats = compute_market_stats(market_transactions(200))
    assert stats.total_transactions == 200
    assert stats.average_transaction_size == pytest.approx(10.5)
    assert stats.transaction_size_std_dev == pytest.approx(math.sqrt(399 / 12))
    assert stats.large_transaction_threshold == 20.0


def test_user_stats_absent_without_records():
    assert compute_user_transaction_stats([]) is None


def test_user_stats_values():
    raws = [
        {"amount": str(units * 1_000_000), "created_at": iso(FIXED_NOW - timedelta(days=day))}
        for units, day in ((50, 4), (150, 3), (250, 2), (100, 0))
    ]
    stats = compute_user_transaction_stats(parse_records(raws, "sent"))
    assert stats.total_transactions == 4
    assert stats.average_transaction_size == pytest.approx(137.5)
    assert stats.median_transaction_size == 150.0
    # Strictly above 100 units
    assert stats.large_transaction_count == 2
    assert stats.large_transaction_ratio == 0.5
    assert stats.first_seen == FIXED_NOW - timedelta(days=4)
    assert stats.last_seen == FIXED_NOW
    assert stats.transaction_frequency == pytest.approx(1.0)


def test_user_stats_same_instant_frequency():
    raws = [{"amount": "5000000", "created_at": iso(FIXED_NOW)}] * 3
    stats = compute_user_transaction_stats(parse_records(raws, "sent"))
    assert stats.transaction_frequency == 3.0
    assert stats.transaction_size_std_dev == 0.0


def test_user_stats_without_positive_amounts():
    raws = [{"amount": "0", "created_at": iso(FIXED_NOW)}]
    stats = compute_user_transaction_stats(parse_records(raws, "claimed"))
    assert stats is not None
    assert stats.total_transactions == 0
    assert stats.large_transaction_ratio == 0.0
