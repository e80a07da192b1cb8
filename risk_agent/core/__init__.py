"""
Core package — error taxonomy and result values shared across layers.
"""

from risk_agent.core.exceptions import ConfigurationError, ProviderError, RiskAgentError
from risk_agent.core.result import Err, FetchResult, Ok

__all__ = [
    "RiskAgentError",
    "ProviderError",
    "ConfigurationError",
    "Ok",
    "Err",
    "FetchResult",
]
