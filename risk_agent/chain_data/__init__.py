"""
Chain data package — transaction sources, the provider contract, and the
cache-first Result-returning boundary used by policies.
"""

from risk_agent.chain_data.cached import CachedChainData
from risk_agent.chain_data.provider import ChainDataProvider, SourceChainDataProvider
from risk_agent.chain_data.sources import (
    FixtureTransactionSource,
    IndexerTransactionSource,
    TransactionSource,
)

__all__ = [
    "CachedChainData",
    "ChainDataProvider",
    "SourceChainDataProvider",
    "TransactionSource",
    "IndexerTransactionSource",
    "FixtureTransactionSource",
]
