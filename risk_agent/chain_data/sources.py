"""
Transaction sources — where raw chain records come from.

IndexerTransactionSource reads an indexer REST API over httpx;
FixtureTransactionSource serves a JSON file (local runs without an indexer).
Both raise ProviderError on any failure; no retries here.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

import httpx

from risk_agent.agent_logging import get_logger
from risk_agent.core.exceptions import ProviderError

logger = get_logger(__name__)


class TransactionSource(Protocol):
    async def fetch_address_records(self, address: str) -> dict[str, list[dict[str, Any]]]:
        """Return {category: [raw records]} for one address."""
        ...

    async def fetch_market_records(self, limit: int) -> list[dict[str, Any]]:
        """Return up to limit recent raw records across all addresses."""
        ...


class IndexerTransactionSource:
    """
    Chain indexer over HTTP.

    GET {base_url}/addresses/{address}/activity -> {category: [records]}
    GET {base_url}/transactions?limit=N         -> [records] or {"transactions": [records]}
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient, *, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout = timeout

    async def _get_json(self, path: str, *, operation: str, address: str | None = None, **params: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.client.get(url, params=params or None, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Indexer HTTP {e.response.status_code} for {path}",
                operation=operation,
                address=address,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Indexer request failed: {e}",
                operation=operation,
                address=address,
            ) from e
        except ValueError as e:
            raise ProviderError(
                f"Indexer returned invalid JSON for {path}",
                operation=operation,
                address=address,
            ) from e

    async def fetch_address_records(self, address: str) -> dict[str, list[dict[str, Any]]]:
        data = await self._get_json(
            f"/addresses/{address}/activity",
            operation="address_records",
            address=address,
        )
        if not isinstance(data, dict):
            raise ProviderError(
                "Unexpected indexer activity payload",
                operation="address_records",
                address=address,
            )
        return data

    async def fetch_market_records(self, limit: int) -> list[dict[str, Any]]:
        data = await self._get_json("/transactions", operation="market_records", limit=limit)
        if isinstance(data, dict):
            data = data.get("transactions")
        if not isinstance(data, list):
            raise ProviderError("Unexpected indexer transactions payload", operation="market_records")
        return data


class FixtureTransactionSource:
    """
    JSON-file source: {"addresses": {address: {category: [...]}}, "transactions": [...]}.

    Loaded once at construction. Unknown addresses have no activity.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        addresses = data.get("addresses", {})
        transactions = data.get("transactions", [])
        if not isinstance(addresses, dict) or not isinstance(transactions, list):
            raise ProviderError("Malformed fixture data", operation="fixture_load")
        self._addresses: dict[str, dict[str, list[dict[str, Any]]]] = addresses
        self._transactions: list[dict[str, Any]] = transactions

    @classmethod
    def from_file(cls, path: Path) -> "FixtureTransactionSource":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ProviderError(f"Cannot read fixture {path}: {e}", operation="fixture_load") from e
        if not isinstance(data, dict):
            raise ProviderError(f"Fixture {path} must be a JSON object", operation="fixture_load")
        source = cls(data)
        logger.info("fixture_source_loaded", path=str(path), addresses=len(source._addresses))
        return source

    async def fetch_address_records(self, address: str) -> dict[str, list[dict[str, Any]]]:
        return self._addresses.get(address, {})

    async def fetch_market_records(self, limit: int) -> list[dict[str, Any]]:
        return self._transactions[:limit]
