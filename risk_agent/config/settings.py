"""
Application settings: policy weights, decision thresholds, cache TTLs,
policy heuristics, data-source and server options.

Typed with pydantic and frozen. Thresholds must be strictly ascending
(allow < hold < escalate < deny); violations are rejected at load time
with ConfigurationError.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from risk_agent.config.env import read_env_overrides
from risk_agent.core.exceptions import ConfigurationError


class PolicyWeights(BaseModel):
    """Relative weight of each policy sub-score in the combined score."""

    model_config = ConfigDict(frozen=True)

    reputation: float = Field(default=0.45, ge=0)
    anomaly: float = Field(default=0.35, ge=0)
    velocity: float = Field(default=0.20, ge=0)

    @model_validator(mode="after")
    def _check_total(self) -> "PolicyWeights":
        if self.reputation + self.anomaly + self.velocity <= 0:
            raise ValueError("policy weights must not all be zero")
        return self

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.reputation, self.anomaly, self.velocity)


class DecisionThresholds(BaseModel):
    """
    Score thresholds for the recommendation bands.

    Scores below allow are allowed and scores from allow up to escalate are
    held; escalate and deny are the lowest scores of their bands. hold only
    takes part in the ordering check and does not move a band edge.
    """

    model_config = ConfigDict(frozen=True)

    allow: int = Field(default=25, ge=0, le=100)
    hold: int = Field(default=50, ge=0, le=100)
    escalate: int = Field(default=70, ge=0, le=100)
    deny: int = Field(default=85, ge=0, le=100)

    @model_validator(mode="after")
    def _check_ascending(self) -> "DecisionThresholds":
        if not (self.allow < self.hold < self.escalate < self.deny):
            raise ValueError(
                "thresholds must be strictly ascending: "
                f"allow={self.allow} hold={self.hold} escalate={self.escalate} deny={self.deny}"
            )
        return self


class CacheTTLs(BaseModel):
    """Time-to-live per cache category, in seconds."""

    model_config = ConfigDict(frozen=True)

    address_history_sec: float = Field(default=300.0, gt=0)
    address_stats_sec: float = Field(default=300.0, gt=0)
    market_stats_sec: float = Field(default=600.0, gt=0)
    user_stats_sec: float = Field(default=600.0, gt=0)
    velocity_stats_sec: float = Field(default=120.0, gt=0)


class ReputationConfig(BaseModel):
    """Address format and fixed scores for the reputation policy."""

    model_config = ConfigDict(frozen=True)

    address_prefix: str = "sei"
    # Total lengths including prefix and separator: account and contract addresses
    address_lengths: tuple[int, ...] = (42, 62)
    invalid_format_score: int = Field(default=75, ge=0, le=100)
    conservative_score: int = Field(default=50, ge=0, le=100)
    large_average_size: int = Field(default=100_000_000, gt=0)
    """Average transaction size (smallest units) above which +10 is added."""
    diverse_venue_count: int = Field(default=5, ge=0)


class AmountConfig(BaseModel):
    """
    Tunable amount heuristics. The frequent-large, round-number and
    micro-transaction constants have no calibration basis yet.
    """

    model_config = ConfigDict(frozen=True)

    invalid_amount_score: int = Field(default=50, ge=0, le=100)
    user_min_history: int = Field(default=5, ge=0)
    user_large_threshold: float = Field(default=100.0, gt=0)
    """Human-unit size above which a user transaction counts as large."""
    frequent_large_ratio: float = Field(default=0.5, ge=0, le=1)
    frequent_large_score: int = Field(default=20, ge=0, le=100)
    round_number_base: int = Field(default=10, gt=0)
    round_number_min: float = Field(default=10.0, ge=0)
    round_number_score: int = Field(default=5, ge=0, le=100)
    micro_threshold: float = Field(default=0.01, ge=0)
    micro_score: int = Field(default=30, ge=0, le=100)


class Settings(BaseModel):
    """Typed settings loaded from environment variables and an optional JSON file."""

    model_config = ConfigDict(frozen=True)

    service_name: str = "risk-agent"
    host: str = "0.0.0.0"
    port: int = Field(default=7001, gt=0, lt=65536)

    weights: PolicyWeights = Field(default_factory=PolicyWeights)
    thresholds: DecisionThresholds = Field(default_factory=DecisionThresholds)
    cache: CacheTTLs = Field(default_factory=CacheTTLs)
    reputation: ReputationConfig = Field(default_factory=ReputationConfig)
    amount: AmountConfig = Field(default_factory=AmountConfig)

    indexer_url: str | None = Field(default=None, description="Base URL of the chain indexer")
    indexer_timeout_sec: float = Field(default=10.0, gt=0)
    fixture_path: Path | None = Field(default=None, description="JSON fixture used instead of the indexer")
    market_sample_limit: int = Field(default=1000, gt=0)
    score_timeout_sec: float = Field(default=10.0, gt=0)

    api_url: str | None = Field(default=None, description="Internal API receiving signed risk hooks")
    internal_shared_secret: str | None = Field(default=None, repr=False)

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.api_url and self.internal_shared_secret)


def _deep_merge(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = _deep_merge(dict(out[key]), value)
        else:
            out[key] = value
    return out


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def load_settings(
    env: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> Settings:
    """
    Build Settings from a JSON config file (optional) overlaid by environment variables.

    Args:
        env: Environment mapping; defaults to os.environ after loading .env.
        config_path: JSON file with the same shape as Settings; defaults to RISK_CONFIG_PATH.

    Raises:
        ConfigurationError: on unreadable config or any validation failure.
    """
    overrides = read_env_overrides(env)
    if config_path is None:
        env_map = env if env is not None else os.environ
        raw_path = (env_map.get("RISK_CONFIG_PATH") or "").strip()
        config_path = Path(raw_path) if raw_path else None

    data: dict[str, Any] = _read_config_file(config_path) if config_path else {}
    data = _deep_merge(data, overrides)
    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid risk agent settings: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor."""
    return load_settings()
