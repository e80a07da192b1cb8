"""
Analysis engine — record normalization, scoring requests, statistics,
velocity detectors, the statistics cache and risk aggregation.

The aggregator lives in risk_agent.analysis_engine.scorer and is imported
from there directly.
"""

from risk_agent.analysis_engine.cache import CacheCategory, StatsCache
from risk_agent.analysis_engine.models import (
    AddressHistory,
    AddressStats,
    MarketStats,
    PolicyOutcome,
    Recommendation,
    RiskScore,
    UserTransactionStats,
    VelocityStats,
    VelocityTrend,
)

__all__ = [
    "AddressHistory",
    "AddressStats",
    "CacheCategory",
    "MarketStats",
    "PolicyOutcome",
    "Recommendation",
    "RiskScore",
    "StatsCache",
    "UserTransactionStats",
    "VelocityStats",
    "VelocityTrend",
]
