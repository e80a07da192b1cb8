"""
Structured logging for Risk Agent.

JSON logs with timestamp, event_type and per-event context (address, scores,
recommendation). Use get_logger() in every module.
"""

from risk_agent.agent_logging.logger import bind_address, configure_logging, get_logger

__all__ = ["bind_address", "configure_logging", "get_logger"]
