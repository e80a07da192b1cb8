"""
Tests for transaction sources and the source-backed chain data provider.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest
from conftest import (
    FIXED_NOW,
    VALID_ADDRESS,
    CountingSource,
    established_activity,
    make_provider,
    market_transactions,
)

from risk_agent.analysis_engine.cache import StatsCache
from risk_agent.chain_data.cached import CachedChainData
from risk_agent.chain_data.provider import SourceChainDataProvider
from risk_agent.chain_data.sources import FixtureTransactionSource, IndexerTransactionSource
from risk_agent.core.exceptions import ProviderError

BASE = "http://indexer.local/api"


def with_indexer(handler: Callable[[httpx.Request], httpx.Response], call: Callable[[IndexerTransactionSource], Any]):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await call(IndexerTransactionSource(BASE + "/", client, timeout=2.0))

    return asyncio.run(run())


def test_indexer_address_records():
    seen: list[httpx.Request] = []
    activity = {"sent": [{"amount": "1"}], "received": []}

    def handler(req: httpx.Request) -> httpx.Response:
        seen.append(req)
        return httpx.Response(200, json=activity)

    result = with_indexer(handler, lambda s: s.fetch_address_records(VALID_ADDRESS))
    assert result == activity
    assert seen[0].url.path == f"/api/addresses/{VALID_ADDRESS}/activity"


def test_indexer_market_records_shapes():
    rows = [{"amount": "1"}, {"amount": "2"}]
    seen: list[httpx.Request] = []

    def wrapped(req: httpx.Request) -> httpx.Response:
        seen.append(req)
        return httpx.Response(200, json={"transactions": rows})

    assert with_indexer(wrapped, lambda s: s.fetch_market_records(50)) == rows
    assert seen[0].url.params["limit"] == "50"

    def bare(req: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=rows)

    assert with_indexer(bare, lambda s: s.fetch_market_records(10)) == rows


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"error": "not found"}),
        httpx.Response(503),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json=["not", "a", "mapping"]),
    ],
)
def test_indexer_errors_become_provider_errors(response):
    with pytest.raises(ProviderError) as excinfo:
        with_indexer(lambda req: response, lambda s: s.fetch_address_records(VALID_ADDRESS))
    assert excinfo.value.operation == "address_records"
    assert excinfo.value.address == VALID_ADDRESS


def test_indexer_transport_error():
    def handler(req: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=req)

    with pytest.raises(ProviderError) as excinfo:
        with_indexer(handler, lambda s: s.fetch_market_records(5))
    assert excinfo.value.operation == "market_records"
    assert excinfo.value.to_dict()["address"] is None


def test_fixture_source_from_file(tmp_path):
    path = tmp_path / "fixture.json"
    path.write_text(json.dumps({"addresses": {VALID_ADDRESS: established_activity()}, "transactions": market_transactions(5)}))
    source = FixtureTransactionSource.from_file(path)
    records = asyncio.run(source.fetch_address_records(VALID_ADDRESS))
    assert len(records["sent"]) == 48
    assert asyncio.run(source.fetch_address_records("sei1unknown")) == {}
    assert len(asyncio.run(source.fetch_market_records(3))) == 3


def test_fixture_source_rejects_bad_files(tmp_path):
    with pytest.raises(ProviderError):
        FixtureTransactionSource.from_file(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("[]")
    with pytest.raises(ProviderError):
        FixtureTransactionSource.from_file(bad)
    wrong_sections = tmp_path / "wrong_sections.json"
    wrong_sections.write_text(json.dumps({"addresses": [], "transactions": []}))
    with pytest.raises(ProviderError):
        FixtureTransactionSource.from_file(wrong_sections)


@pytest.mark.parametrize(
    "payload",
    [
        {"addresses": [], "transactions": []},
        {"addresses": {}, "transactions": {}},
        {"addresses": None},
        {"transactions": ""},
    ],
)
def test_fixture_source_rejects_malformed_sections(payload):
    with pytest.raises(ProviderError):
        FixtureTransactionSource(payload)


def test_fixture_source_sections_are_optional():
    source = FixtureTransactionSource({})
    assert asyncio.run(source.fetch_address_records(VALID_ADDRESS)) == {}
    assert asyncio.run(source.fetch_market_records(10)) == []


def test_provider_builds_all_views(fixture_data):
    provider = make_provider(fixture_data)

    async def run():
        return await asyncio.gather(
            provider.get_address_history(VALID_ADDRESS),
            provider.get_address_stats(VALID_ADDRESS),
            provider.get_market_stats(),
            provider.get_user_transaction_stats(VALID_ADDRESS),
            provider.get_velocity_stats(VALID_ADDRESS),
        )

    history, stats, market, user, velocity = asyncio.run(run())
    assert history.total_transactions == 60
    assert stats.age_days == 90
    assert market.total_transactions == 200
    assert user.total_transactions == 60
    assert velocity.analyzed_at == FIXED_NOW
    assert velocity.transactions_last_week == 0


def test_concurrent_views_share_one_activity_fetch(fixture_data):
    provider = make_provider(fixture_data)

    async def run():
        return await asyncio.gather(
            provider.get_address_history(VALID_ADDRESS),
            provider.get_address_stats(VALID_ADDRESS),
            provider.get_user_transaction_stats(VALID_ADDRESS),
            provider.get_velocity_stats(VALID_ADDRESS),
        )

    history, stats, user, velocity = asyncio.run(run())
    assert provider.source.address_calls == 1
    assert stats.total_transactions == history.total_transactions == user.total_transactions


def test_views_reuse_cached_history(fixture_data, fake_clock):
    cache = StatsCache(clock=fake_clock)
    provider = make_provider(fixture_data, cache=cache)
    data = CachedChainData(provider, cache)

    asyncio.run(data.velocity_stats(VALID_ADDRESS))
    # velocity entry expires at 120s, history at 300s
    fake_clock.advance(121)
    asyncio.run(data.velocity_stats(VALID_ADDRESS))
    asyncio.run(data.address_stats(VALID_ADDRESS))
    assert provider.source.address_calls == 1

    fake_clock.advance(300)
    asyncio.run(data.velocity_stats(VALID_ADDRESS))
    assert provider.source.address_calls == 2


class FlakySource(CountingSource):
    """Fails the first address fetch, then behaves."""

    async def fetch_address_records(self, address: str):
        self.address_calls += 1
        if self.address_calls == 1:
            await asyncio.sleep(0)
            raise ProviderError("indexer hiccup", operation="address_records", address=address)
        return await FixtureTransactionSource.fetch_address_records(self, address)


def test_failed_shared_fetch_reaches_every_caller_and_is_retried(fixture_data):
    provider = SourceChainDataProvider(FlakySource(fixture_data), now=lambda: FIXED_NOW)

    async def run():
        return await asyncio.gather(
            provider.get_address_stats(VALID_ADDRESS),
            provider.get_velocity_stats(VALID_ADDRESS),
            return_exceptions=True,
        )

    results = asyncio.run(run())
    assert all(isinstance(r, ProviderError) for r in results)
    assert provider.source.address_calls == 1

    history = asyncio.run(provider.get_address_history(VALID_ADDRESS))
    assert history.total_transactions == 60
    assert provider.source.address_calls == 2
