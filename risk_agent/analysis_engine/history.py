"""
Address history assembly and derived address statistics.

build_address_history() turns raw per-category indexer records into an
immutable AddressHistory. compute_address_stats() derives age, failure rate,
average size, venue diversity, an unusual-pattern flag and risk-factor tags.
Both are pure; "now" is passed in.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from risk_agent.agent_logging import get_logger
from risk_agent.analysis_engine.models import AddressHistory, AddressStats
from risk_agent.analysis_engine.records import (
    CATEGORIES,
    SMALLEST_UNITS_PER_UNIT,
    parse_records,
)

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400

# Unusual pattern: many small outgoing transfers (below 1 unit)
SMALL_TRANSFER_MAX = SMALLEST_UNITS_PER_UNIT
SMALL_TRANSFER_COUNT = 100
# Unusual pattern: balanced send/receive counts (possible wash trading)
WASH_MIN_EACH_SIDE = 10
WASH_BALANCE_RATIO = 0.8
# Risk factor: average size above 100 units
LARGE_AVERAGE_SIZE = 100 * SMALLEST_UNITS_PER_UNIT

FACTOR_NEW_ADDRESS = "new-address"
FACTOR_NO_HISTORY = "no-transaction-history"
FACTOR_SUSPICIOUS_PATTERNS = "suspicious-patterns"
FACTOR_LARGE_TRANSACTIONS = "large-transactions"
FACTOR_SINGLE_CONTRACT = "single-contract-interaction"


def build_address_history(address: str, raw: Mapping[str, Any]) -> AddressHistory:
    """
    Assemble AddressHistory from {category: [raw records]}.

    Unknown categories are ignored; missing ones are empty.
    """
    parsed = {category: parse_records(raw.get(category), category) for category in CATEGORIES}
    records = [r for group in parsed.values() for r in group]
    timestamps = [r.timestamp for r in records if r.timestamp is not None]
    history = AddressHistory(
        address=address,
        total_transactions=len(records),
        first_seen=min(timestamps) if timestamps else None,
        last_seen=max(timestamps) if timestamps else None,
        **parsed,
    )
    logger.debug(
        "address_history_built",
        address=address,
        total_transactions=history.total_transactions,
    )
    return history


def detect_unusual_patterns(history: AddressHistory) -> bool:
    """Many small outgoing transfers, or near-equal send/receive counts."""
    small_sent = sum(1 for r in history.sent if r.amount < SMALL_TRANSFER_MAX)
    if small_sent > SMALL_TRANSFER_COUNT:
        return True

    sent, received = len(history.sent), len(history.received)
    if sent > WASH_MIN_EACH_SIDE and received > WASH_MIN_EACH_SIDE:
        if min(sent, received) / max(sent, received) > WASH_BALANCE_RATIO:
            return True
    return False


def identify_risk_factors(
    *,
    age_days: int,
    total_transactions: int,
    average_transaction_size: float,
    has_unusual_patterns: bool,
    unique_venues: int,
) -> tuple[str, ...]:
    factors: list[str] = []
    if age_days == 0:
        factors.append(FACTOR_NEW_ADDRESS)
    if total_transactions == 0:
        factors.append(FACTOR_NO_HISTORY)
    if has_unusual_patterns:
        factors.append(FACTOR_SUSPICIOUS_PATTERNS)
    if average_transaction_size > LARGE_AVERAGE_SIZE:
        factors.append(FACTOR_LARGE_TRANSACTIONS)
    if unique_venues == 1:
        factors.append(FACTOR_SINGLE_CONTRACT)
    return tuple(factors)


def compute_address_stats(history: AddressHistory, now: datetime) -> AddressStats:
    """Derive AddressStats from history as of now."""
    if history.first_seen is not None:
        age_days = max(0, int((now - history.first_seen).total_seconds() // SECONDS_PER_DAY))
    else:
        age_days = 0

    records = history.all_records()
    failed = sum(1 for r in records if not r.succeeded)
    failure_rate = failed / len(records) if records else 0.0

    amounts = [r.amount for r in history.sent + history.received if r.amount > 0]
    average_size = sum(amounts) / len(amounts) if amounts else 0.0

    unique_venues = len({r.venue for r in records})
    unusual = detect_unusual_patterns(history)

    return AddressStats(
        age_days=age_days,
        total_transactions=history.total_transactions,
        failure_rate=failure_rate,
        average_transaction_size=average_size,
        unique_venues=unique_venues,
        has_unusual_patterns=unusual,
        risk_factors=identify_risk_factors(
            age_days=age_days,
            total_transactions=history.total_transactions,
            average_transaction_size=average_size,
            has_unusual_patterns=unusual,
            unique_venues=unique_venues,
        ),
    )
