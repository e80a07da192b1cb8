"""
Normalization of raw indexer records into TransactionRecord.

Indexer payloads are loosely shaped: amounts arrive as {"amount", "denom"}
objects, strings or ints; timestamps as ISO-8601 strings or epoch numbers in
seconds, milliseconds, microseconds or nanoseconds. Purely structural; no
scoring logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

# 1 unit = 1,000,000 smallest on-chain units
SMALLEST_UNITS_PER_UNIT = 1_000_000

CATEGORY_SENT = "sent"
CATEGORY_RECEIVED = "received"
CATEGORY_CLAIMED = "claimed"
CATEGORY_REFUNDED = "refunded"
CATEGORY_GROUP_CONTRIBUTIONS = "group_contributions"
CATEGORY_POT_DEPOSITS = "pot_deposits"
CATEGORY_VAULT_POSITIONS = "vault_positions"
CATEGORY_ESCROW_CASES = "escrow_cases"

CATEGORIES = (
    CATEGORY_SENT,
    CATEGORY_RECEIVED,
    CATEGORY_CLAIMED,
    CATEGORY_REFUNDED,
    CATEGORY_GROUP_CONTRIBUTIONS,
    CATEGORY_POT_DEPOSITS,
    CATEGORY_VAULT_POSITIONS,
    CATEGORY_ESCROW_CASES,
)

# Venue used when a record does not name its contract
DEFAULT_VENUES = {
    CATEGORY_SENT: "payments",
    CATEGORY_RECEIVED: "payments",
    CATEGORY_CLAIMED: "payments",
    CATEGORY_REFUNDED: "payments",
    CATEGORY_GROUP_CONTRIBUTIONS: "groups",
    CATEGORY_POT_DEPOSITS: "pots",
    CATEGORY_VAULT_POSITIONS: "vaults",
    CATEGORY_ESCROW_CASES: "escrow",
}

FAILED_STATUSES = frozenset({"failed", "error", "reverted"})


@dataclass(frozen=True)
class TransactionRecord:
    """One normalized on-chain action involving an address."""

    category: str
    amount: int
    """Amount in smallest units; 0 when the record carries none."""
    timestamp: datetime | None
    """UTC timestamp; None when the record has no usable time."""
    sender: str | None = None
    recipient: str | None = None
    venue: str = "payments"
    """Contract or venue the action touched."""
    succeeded: bool = True

    @property
    def amount_units(self) -> float:
        return to_units(self.amount)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "amount": self.amount,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "sender": self.sender,
            "recipient": self.recipient,
            "venue": self.venue,
            "succeeded": self.succeeded,
        }


def to_units(smallest: int | float) -> float:
    """Convert smallest on-chain units to human-facing units."""
    return float(smallest) / SMALLEST_UNITS_PER_UNIT


def parse_amount(value: Any) -> int:
    """
    Return an amount in smallest units from a raw field.

    Accepts {"amount": "123", "denom": "usei"}, numeric strings and numbers.
    Anything unparseable, negative or non-finite yields 0.
    """
    if isinstance(value, dict):
        value = value.get("amount", value.get("quantity"))
    if value is None or isinstance(value, bool):
        return 0
    try:
        dec = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return 0
    if not dec.is_finite() or dec <= 0:
        return 0
    return int(dec)


def _epoch_to_datetime(value: float) -> datetime:
    # Scale by magnitude: ns > 1e17, us > 1e14, ms > 1e11, else seconds
    if value > 1e17:
        value = value / 1e9
    elif value > 1e14:
        value = value / 1e6
    elif value > 1e11:
        value = value / 1e3
    return datetime.fromtimestamp(value, tz=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch number into an aware UTC datetime."""
    if value is None or isinstance(value, bool) or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return _epoch_to_datetime(float(value))
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if text.isdigit():
        try:
            return _epoch_to_datetime(float(text))
        except (OverflowError, OSError, ValueError):
            return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _succeeded(raw: dict[str, Any]) -> bool:
    status = str(raw.get("status") or "").strip().lower()
    if status in FAILED_STATUSES:
        return False
    if raw.get("success") is False:
        return False
    return not bool(raw.get("is_error"))


def parse_record(raw: dict[str, Any], category: str) -> TransactionRecord:
    """Normalize one raw indexer record of the given category."""
    ts_raw = raw.get("created_at")
    if ts_raw in (None, ""):
        ts_raw = raw.get("timestamp")
    venue = raw.get("contract") or raw.get("venue") or DEFAULT_VENUES.get(category, category)
    return TransactionRecord(
        category=category,
        amount=parse_amount(raw.get("amount")),
        timestamp=parse_timestamp(ts_raw),
        sender=raw.get("sender") or raw.get("from"),
        recipient=raw.get("recipient") or raw.get("to"),
        venue=str(venue),
        succeeded=_succeeded(raw),
    )


def parse_records(raws: Any, category: str) -> tuple[TransactionRecord, ...]:
    """Normalize a list of raw records; non-dict entries are skipped."""
    if not isinstance(raws, list):
        return ()
    return tuple(parse_record(r, category) for r in raws if isinstance(r, dict))
