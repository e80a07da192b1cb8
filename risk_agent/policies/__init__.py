"""
Scoring policies — address reputation, amount anomaly, velocity / burst.

Each policy returns a PolicyOutcome and maps provider failures to a fixed
fallback outcome instead of raising.
"""

from risk_agent.policies.address_reputation import AddressReputationPolicy
from risk_agent.policies.amount_anomaly import AmountAnomalyPolicy
from risk_agent.policies.velocity import VelocityPolicy

__all__ = ["AddressReputationPolicy", "AmountAnomalyPolicy", "VelocityPolicy"]
