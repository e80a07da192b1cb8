"""
Environment loading for Risk Agent.

- Loads .env from the project root when present (python-dotenv).
- Reads RISK_* / INDEXER_* / API_URL variables into a flat mapping that
  settings.load_settings() turns into typed, validated settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from risk_agent.agent_logging import configure_logging

# Project root: config is risk_agent/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_ROOT = _CONFIG_DIR.parent.parent
_ENV_PATH = _ROOT / ".env"

# env var -> (section, field); section None means top-level Settings field
ENV_FIELDS: dict[str, tuple[str | None, str]] = {
    "RISK_AGENT_HOST": (None, "host"),
    "RISK_AGENT_PORT": (None, "port"),
    "RISK_SERVICE_NAME": (None, "service_name"),
    "INDEXER_URL": (None, "indexer_url"),
    "INDEXER_TIMEOUT_SEC": (None, "indexer_timeout_sec"),
    "RISK_FIXTURE_PATH": (None, "fixture_path"),
    "MARKET_SAMPLE_LIMIT": (None, "market_sample_limit"),
    "RISK_SCORE_TIMEOUT_SEC": (None, "score_timeout_sec"),
    "API_URL": (None, "api_url"),
    "INTERNAL_SHARED_SECRET": (None, "internal_shared_secret"),
    "RISK_WEIGHT_REPUTATION": ("weights", "reputation"),
    "RISK_WEIGHT_ANOMALY": ("weights", "anomaly"),
    "RISK_WEIGHT_VELOCITY": ("weights", "velocity"),
    # allow starts the hold band; HOLD is validated for ordering only
    "RISK_THRESHOLD_ALLOW": ("thresholds", "allow"),
    "RISK_THRESHOLD_HOLD": ("thresholds", "hold"),
    "RISK_THRESHOLD_ESCALATE": ("thresholds", "escalate"),
    "RISK_THRESHOLD_DENY": ("thresholds", "deny"),
    "RISK_CACHE_HISTORY_TTL_SEC": ("cache", "address_history_sec"),
    "RISK_CACHE_STATS_TTL_SEC": ("cache", "address_stats_sec"),
    "RISK_CACHE_MARKET_TTL_SEC": ("cache", "market_stats_sec"),
    "RISK_CACHE_USER_TTL_SEC": ("cache", "user_stats_sec"),
    "RISK_CACHE_VELOCITY_TTL_SEC": ("cache", "velocity_stats_sec"),
    "RISK_ADDRESS_PREFIX": ("reputation", "address_prefix"),
}


def load_agent_env() -> None:
    """
    Load .env from project root, then re-apply LOG_LEVEL / LOG_FORMAT from it.

    Safe to call multiple times; never overrides variables already set.
    """
    load_dotenv(_ENV_PATH, override=False)
    configure_logging()


def read_env_overrides(env: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Collect settings overrides from environment variables.

    Returns a nested dict shaped like Settings (sections as sub-dicts). Empty
    values are ignored so an unset-but-exported variable keeps the default.
    """
    if env is None:
        load_agent_env()
        env = os.environ
    out: dict[str, Any] = {}
    for var, (section, field) in ENV_FIELDS.items():
        raw = (env.get(var) or "").strip()
        if not raw:
            continue
        if section is None:
            out[field] = raw
        else:
            out.setdefault(section, {})[field] = raw
    return out
