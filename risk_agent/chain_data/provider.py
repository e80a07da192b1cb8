"""
Chain Data Provider — the read-only query contract the policies depend on.

SourceChainDataProvider implements it over a TransactionSource by running the
analysis_engine computations on the raw records. Address stats, user stats
and velocity stats are all derived from one AddressHistory per address:
concurrent loads of the same address share a single source fetch, and when a
StatsCache is given the loaded history is stored in (and served from) its
address-history category. Every method may raise; callers go through
CachedChainData, which turns failures into Err values.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Protocol

from risk_agent.analysis_engine.cache import CacheCategory, StatsCache
from risk_agent.analysis_engine.history import build_address_history, compute_address_stats
from risk_agent.analysis_engine.market import compute_market_stats, compute_user_transaction_stats
from risk_agent.analysis_engine.models import (
    AddressHistory,
    AddressStats,
    MarketStats,
    UserTransactionStats,
    VelocityStats,
)
from risk_agent.analysis_engine.velocity import compute_velocity_stats
from risk_agent.chain_data.sources import TransactionSource


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChainDataProvider(Protocol):
    async def get_address_history(self, address: str) -> AddressHistory: ...

    async def get_address_stats(self, address: str) -> AddressStats: ...

    async def get_market_stats(self) -> MarketStats: ...

    async def get_user_transaction_stats(self, address: str) -> UserTransactionStats | None: ...

    async def get_velocity_stats(self, address: str) -> VelocityStats | None: ...


class SourceChainDataProvider:
    """Provider backed by a TransactionSource; now is injectable for tests."""

    def __init__(
        self,
        source: TransactionSource,
        *,
        now: Callable[[], datetime] = utc_now,
        market_sample_limit: int = 1000,
        user_large_threshold: float = 100.0,
        cache: StatsCache | None = None,
    ) -> None:
        self.source = source
        self._now = now
        self.market_sample_limit = market_sample_limit
        self.user_large_threshold = user_large_threshold
        self.cache = cache
        self._pending: dict[str, asyncio.Future[AddressHistory]] = {}

    async def _fetch_history(self, address: str) -> AddressHistory:
        raw = await self.source.fetch_address_records(address)
        history = build_address_history(address, raw)
        if self.cache is not None:
            self.cache.put(CacheCategory.ADDRESS_HISTORY, address, history)
        return history

    def _forget(self, address: str, task: asyncio.Future[AddressHistory]) -> None:
        if self._pending.get(address) is task:
            del self._pending[address]
        # Retrieve the outcome so an abandoned load does not log as unhandled
        if not task.cancelled():
            task.exception()

    async def _load_history(self, address: str) -> AddressHistory:
        if self.cache is not None:
            cached = self.cache.get(CacheCategory.ADDRESS_HISTORY, address)
            if cached is not None:
                return cached
        task = self._pending.get(address)
        if task is None:
            task = asyncio.ensure_future(self._fetch_history(address))
            self._pending[address] = task
            task.add_done_callback(lambda t: self._forget(address, t))
        # One waiter timing out must not cancel the load the others share
        return await asyncio.shield(task)

    async def get_address_history(self, address: str) -> AddressHistory:
        return await self._load_history(address)

    async def get_address_stats(self, address: str) -> AddressStats:
        history = await self._load_history(address)
        return compute_address_stats(history, self._now())

    async def get_market_stats(self) -> MarketStats:
        raws = await self.source.fetch_market_records(self.market_sample_limit)
        return compute_market_stats(raws)

    async def get_user_transaction_stats(self, address: str) -> UserTransactionStats | None:
        history = await self._load_history(address)
        return compute_user_transaction_stats(
            history.all_records(),
            large_threshold=self.user_large_threshold,
        )

    async def get_velocity_stats(self, address: str) -> VelocityStats | None:
        history = await self._load_history(address)
        return compute_velocity_stats(history.all_records(), self._now())
