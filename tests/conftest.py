"""
Pytest fixtures for risk agent tests. In-memory transaction sources, a fixed
clock and a failing provider; nothing touches the network.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from risk_agent.analysis_engine.cache import StatsCache
from risk_agent.chain_data.cached import CachedChainData
from risk_agent.chain_data.provider import SourceChainDataProvider
from risk_agent.chain_data.sources import FixtureTransactionSource
from risk_agent.core.exceptions import ProviderError

FIXED_NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)

_BECH32 = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
# sei1 + 38 data chars = 42
VALID_ADDRESS = "sei1" + (_BECH32 * 2)[:38]
VALID_ADDRESS_2 = "sei1" + (_BECH32[::-1] * 2)[:38]
UNKNOWN_ADDRESS = "sei1" + "q" * 38


def iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def transfer(amount_units: float, when: datetime, **extra: Any) -> dict[str, Any]:
    """Raw indexer-style transfer record."""
    raw: dict[str, Any] = {
        "amount": {"amount": str(int(amount_units * 1_000_000)), "denom": "usei"},
        "created_at": iso(when),
    }
    raw.update(extra)
    return raw


def established_activity(now: datetime = FIXED_NOW) -> dict[str, list[dict[str, Any]]]:
    """60 transfers over ~90 days ending a month ago, all succeeded, modest amounts."""
    start = now - timedelta(days=90)
    sent = [
        transfer(2 + (i % 7) + 0.25, start + timedelta(days=i, hours=(i * 7) % 11, minutes=(i * 13) % 50))
        for i in range(48)
    ]
    received = [
        transfer(3 + (i % 4) + 0.5, start + timedelta(days=i * 4, hours=(i * 5) % 9))
        for i in range(12)
    ]
    return {"sent": sent, "received": received}


def market_transactions(count: int = 200) -> list[dict[str, Any]]:
    return [
        {
            "type": "sent",
            "amount": str((1 + (i % 20)) * 1_000_000),
            "sender": f"sender-{i % 40}",
            "recipient": f"recipient-{i % 25}",
            "created_at": iso(FIXED_NOW - timedelta(minutes=i)),
        }
        for i in range(count)
    ]


class FakeClock:
    """Monotonic-style clock for cache tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingSource(FixtureTransactionSource):
    """Fixture source that counts fetches."""

    def __init__(self, data: dict[str, Any]) -> None:
        super().__init__(data)
        self.address_calls = 0
        self.market_calls = 0

    async def fetch_address_records(self, address: str):
        self.address_calls += 1
        return await super().fetch_address_records(address)

    async def fetch_market_records(self, limit: int):
        self.market_calls += 1
        return await super().fetch_market_records(limit)


class FailingProvider:
    """Every query raises."""

    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or ProviderError("indexer unavailable", operation="test")
        self.calls = 0

    async def _fail(self, *args: Any) -> Any:
        self.calls += 1
        raise self.exc

    get_address_history = _fail
    get_address_stats = _fail
    get_market_stats = _fail
    get_user_transaction_stats = _fail
    get_velocity_stats = _fail


def make_provider(
    data: dict[str, Any] | None = None,
    now: datetime = FIXED_NOW,
    cache: StatsCache | None = None,
) -> SourceChainDataProvider:
    source = CountingSource(data or {"addresses": {}, "transactions": market_transactions()})
    return SourceChainDataProvider(source, now=lambda: now, cache=cache)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fixture_data() -> dict[str, Any]:
    return {
        "addresses": {VALID_ADDRESS: established_activity()},
        "transactions": market_transactions(),
    }


@pytest.fixture
def provider(fixture_data) -> SourceChainDataProvider:
    return make_provider(fixture_data)


@pytest.fixture
def data(provider, fake_clock) -> CachedChainData:
    return CachedChainData(provider, StatsCache(clock=fake_clock))


@pytest.fixture
def failing_data(fake_clock) -> CachedChainData:
    return CachedChainData(FailingProvider(), StatsCache(clock=fake_clock))
