"""
Cache-first access to the Chain Data Provider, returning Ok / Err.

This is the data-fetch boundary: provider exceptions stop here and come back
as Err(ProviderError). Values are cached only after a fetch completes, and
absent results (no user stats, no velocity data) are not cached.
Task cancellation is not caught, so a caller-side timeout propagates.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from risk_agent.agent_logging import get_logger
from risk_agent.analysis_engine.cache import MARKET_KEY, CacheCategory, StatsCache
from risk_agent.analysis_engine.models import (
    AddressHistory,
    AddressStats,
    MarketStats,
    UserTransactionStats,
    VelocityStats,
)
from risk_agent.chain_data.provider import ChainDataProvider
from risk_agent.core.exceptions import ProviderError
from risk_agent.core.result import Err, FetchResult, Ok

logger = get_logger(__name__)


class CachedChainData:
    """Wraps a ChainDataProvider with a StatsCache; one method per provider query."""

    def __init__(self, provider: ChainDataProvider, cache: StatsCache) -> None:
        self.provider = provider
        self.cache = cache

    async def _fetch(
        self,
        category: CacheCategory,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        *,
        operation: str,
        address: str | None = None,
    ) -> FetchResult[Any]:
        cached = self.cache.get(category, key)
        if cached is not None:
            return Ok(cached)
        try:
            value = await loader()
        except ProviderError as e:
            logger.warning("chain_data_fetch_failed", operation=operation, address=address, error=str(e))
            return Err(e)
        except Exception as e:
            logger.warning(
                "chain_data_fetch_failed",
                operation=operation,
                address=address,
                error=str(e),
                error_type=type(e).__name__,
            )
            wrapped = ProviderError(str(e) or type(e).__name__, operation=operation, address=address)
            wrapped.__cause__ = e
            return Err(wrapped)
        if value is not None:
            self.cache.put(category, key, value)
        return Ok(value)

    async def address_history(self, address: str) -> FetchResult[AddressHistory]:
        return await self._fetch(
            CacheCategory.ADDRESS_HISTORY,
            address,
            lambda: self.provider.get_address_history(address),
            operation="address_history",
            address=address,
        )

    async def address_stats(self, address: str) -> FetchResult[AddressStats]:
        return await self._fetch(
            CacheCategory.ADDRESS_STATS,
            address,
            lambda: self.provider.get_address_stats(address),
            operation="address_stats",
            address=address,
        )

    async def market_stats(self) -> FetchResult[MarketStats]:
        return await self._fetch(
            CacheCategory.MARKET_STATS,
            MARKET_KEY,
            self.provider.get_market_stats,
            operation="market_stats",
        )

    async def user_transaction_stats(self, address: str) -> FetchResult[UserTransactionStats | None]:
        return await self._fetch(
            CacheCategory.USER_STATS,
            address,
            lambda: self.provider.get_user_transaction_stats(address),
            operation="user_transaction_stats",
            address=address,
        )

    async def velocity_stats(self, address: str) -> FetchResult[VelocityStats | None]:
        return await self._fetch(
            CacheCategory.VELOCITY_STATS,
            address,
            lambda: self.provider.get_velocity_stats(address),
            operation="velocity_stats",
            address=address,
        )
