"""
Test that agent_logging can be imported without circular import and logger works.
"""

from __future__ import annotations

import logging


def test_logging_import():
    """Import get_logger from agent_logging and use the logger."""
    from risk_agent.agent_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_bind_address_logger():
    from risk_agent.agent_logging import bind_address

    logger = bind_address("sei1example")
    logger.info("test_bound_message", score=10)


def test_normalize_event_renames_event():
    from risk_agent.agent_logging.logger import _normalize_event

    out = _normalize_event(None, "info", {"event": "risk_score_computed", "score": 3})
    assert out == {"event_type": "risk_score_computed", "score": 3}


def test_secret_values_are_masked():
    from risk_agent.agent_logging.logger import REDACTED, _mask_secrets

    out = _mask_secrets(None, "info", {"secret": "s3cr3t", "signature": "ab12", "address": "sei1x", "authorization": ""})
    assert out["secret"] == REDACTED
    assert out["signature"] == REDACTED
    assert out["address"] == "sei1x"
    assert out["authorization"] == ""


def test_reconfigure_applies_to_existing_loggers(monkeypatch):
    from risk_agent.agent_logging import configure_logging, get_logger

    logger = get_logger("test_reconfigure")
    try:
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        configure_logging()
        assert not logger.bind().is_enabled_for(logging.INFO)
        assert logger.bind().is_enabled_for(logging.WARNING)

        configure_logging(level="debug")
        assert logger.bind().is_enabled_for(logging.DEBUG)
    finally:
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        configure_logging()


def test_unknown_level_means_info():
    from risk_agent.agent_logging import configure_logging, get_logger

    try:
        configure_logging(level="chatty")
        logger = get_logger("test_unknown_level").bind()
        assert logger.is_enabled_for(logging.INFO)
        assert not logger.is_enabled_for(logging.DEBUG)
    finally:
        configure_logging()
