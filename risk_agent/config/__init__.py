"""
Configuration package — typed settings loaded from environment and JSON.
"""

from risk_agent.config.settings import (
    AmountConfig,
    CacheTTLs,
    DecisionThresholds,
    PolicyWeights,
    ReputationConfig,
    Settings,
    get_settings,
    load_settings,
)

__all__ = [
    "AmountConfig",
    "CacheTTLs",
    "DecisionThresholds",
    "PolicyWeights",
    "ReputationConfig",
    "Settings",
    "get_settings",
    "load_settings",
]
