"""
FastAPI/ASGI application entrypoint.

Run with: uvicorn risk_agent.api_server.app:app --host 0.0.0.0 --port 7001
"""

from risk_agent.api_server.server import create_app

app = create_app()

__all__ = ["app"]
