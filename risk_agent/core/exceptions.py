"""
Application-level exceptions.

- ProviderError: chain data could not be fetched or decoded. Raised by sources
  and providers, converted to an Err value at the cached data boundary, and
  never propagated past a policy.
- ConfigurationError: weights, thresholds or TTLs failed validation at load time.
"""

from __future__ import annotations


class RiskAgentError(Exception):
    """Base class for all risk agent errors."""


class ProviderError(RiskAgentError):
    """Chain data provider failed (transport, HTTP status, malformed payload)."""

    def __init__(self, message: str, *, operation: str, address: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.address = address

    def to_dict(self) -> dict[str, str | None]:
        return {
            "operation": self.operation,
            "address": self.address,
            "message": str(self),
        }


class ConfigurationError(RiskAgentError, ValueError):
    """Settings failed validation (e.g. thresholds not strictly ascending)."""
