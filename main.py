"""
Main entrypoint: risk agent HTTP server.

Env: RISK_AGENT_HOST, RISK_AGENT_PORT, INDEXER_URL or RISK_FIXTURE_PATH, LOG_LEVEL, etc.
See risk_agent.config for the full list.

Equivalent: uvicorn risk_agent.api_server.app:app --host 0.0.0.0 --port 7001
"""

import sys

import uvicorn

# Configure structured JSON logging before other imports that may log
from risk_agent.agent_logging import get_logger
from risk_agent.core.exceptions import ConfigurationError

logger = get_logger("main")


def main() -> None:
    """Load settings, build the app and serve it until interrupted."""
    from risk_agent.api_server.server import create_app
    from risk_agent.config import get_settings

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error("main_invalid_configuration", error=str(e))
        sys.exit(1)

    logger.info("main_api_starting", host=settings.host, port=settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
