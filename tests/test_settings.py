"""
Tests for settings loading and validation.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from risk_agent.config.env import read_env_overrides
from risk_agent.config.settings import DecisionThresholds, PolicyWeights, load_settings
from risk_agent.core.exceptions import ConfigurationError


def test_defaults():
    settings = load_settings(env={})
    assert settings.weights.as_tuple() == (0.45, 0.35, 0.20)
    assert (settings.thresholds.allow, settings.thresholds.hold, settings.thresholds.escalate, settings.thresholds.deny) == (
        25,
        50,
        70,
        85,
    )
    assert settings.cache.velocity_stats_sec == 120
    assert settings.port == 7001
    assert settings.indexer_url is None
    assert settings.notifications_enabled is False


def test_env_overrides():
    settings = load_settings(
        env={
            "RISK_WEIGHT_VELOCITY": "0.5",
            "RISK_THRESHOLD_DENY": "90",
            "RISK_CACHE_VELOCITY_TTL_SEC": "30",
            "INDEXER_URL": "http://indexer.local",
            "RISK_AGENT_PORT": "8100",
            "API_URL": "http://api.local",
            "INTERNAL_SHARED_SECRET": "s3cret",
            "RISK_FIXTURE_PATH": "",
        }
    )
    assert settings.weights.velocity == 0.5
    assert settings.thresholds.deny == 90
    assert settings.cache.velocity_stats_sec == 30
    assert settings.indexer_url == "http://indexer.local"
    assert settings.port == 8100
    assert settings.fixture_path is None
    assert settings.notifications_enabled is True


def test_read_env_overrides_shape():
    overrides = read_env_overrides({"RISK_WEIGHT_ANOMALY": " 0.3 ", "INDEXER_URL": "", "UNRELATED": "x"})
    assert overrides == {"weights": {"anomaly": "0.3"}}


@pytest.mark.parametrize(
    "env",
    [
        {"RISK_THRESHOLD_ALLOW": "50"},
        {"RISK_THRESHOLD_HOLD": "80"},
        {"RISK_THRESHOLD_ESCALATE": "85"},
        {"RISK_THRESHOLD_ALLOW": "90", "RISK_THRESHOLD_DENY": "10"},
    ],
)
def test_non_ascending_thresholds_rejected(env):
    with pytest.raises(ConfigurationError):
        load_settings(env=env)


def test_threshold_model_rejects_order():
    with pytest.raises(ValidationError):
        DecisionThresholds(allow=50, hold=50, escalate=70, deny=85)
    with pytest.raises(ValueError):
        DecisionThresholds(allow=10, hold=60, escalate=50, deny=85)


def test_invalid_weights_rejected():
    with pytest.raises(ConfigurationError):
        load_settings(
            env={"RISK_WEIGHT_REPUTATION": "0", "RISK_WEIGHT_ANOMALY": "0", "RISK_WEIGHT_VELOCITY": "0"}
        )
    with pytest.raises(ValidationError):
        PolicyWeights(reputation=-1)


def test_invalid_ttl_rejected():
    with pytest.raises(ConfigurationError):
        load_settings(env={"RISK_CACHE_MARKET_TTL_SEC": "0"})
    with pytest.raises(ConfigurationError):
        load_settings(env={"RISK_CACHE_MARKET_TTL_SEC": "soon"})


def test_config_file_overlaid_by_env(tmp_path):
    path = tmp_path / "risk.json"
    path.write_text(
        json.dumps(
            {
                "thresholds": {"allow": 20, "hold": 40, "escalate": 60, "deny": 80},
                "amount": {"micro_threshold": 0.1},
                "reputation": {"address_prefix": "cosmos", "address_lengths": [45]},
            }
        )
    )
    settings = load_settings(env={"RISK_THRESHOLD_DENY": "95"}, config_path=path)
    assert settings.thresholds.allow == 20
    assert settings.thresholds.deny == 95
    assert settings.amount.micro_threshold == 0.1
    assert settings.reputation.address_lengths == (45,)

    via_env = load_settings(env={"RISK_CONFIG_PATH": str(path)})
    assert via_env.thresholds.deny == 80


def test_bad_config_file(tmp_path):
    path = tmp_path / "risk.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_settings(env={}, config_path=path)
    path.write_text("[1, 2]")
    with pytest.raises(ConfigurationError):
        load_settings(env={}, config_path=path)
    with pytest.raises(ConfigurationError):
        load_settings(env={}, config_path=tmp_path / "missing.json")


def test_settings_are_frozen():
    settings = load_settings(env={})
    with pytest.raises(ValidationError):
        settings.port = 1
