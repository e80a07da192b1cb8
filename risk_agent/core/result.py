"""
Ok / Err values returned by the cached chain-data boundary.

Policies branch on the result type and map Err to their documented fallback
outcome, so provider failures never travel as exceptions past that layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from risk_agent.core.exceptions import ProviderError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful fetch; value may be None where the provider contract allows absence."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed fetch carrying the provider error."""

    error: ProviderError

    @property
    def ok(self) -> bool:
        return False


FetchResult = Union[Ok[T], Err]
