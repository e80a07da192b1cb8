"""
API server package — HTTP interface for risk scoring.

The app factory lives in server. Request models are shared with the
aggregator in risk_agent.analysis_engine.requests. Import the ASGI app from
risk_agent.api_server.app.
"""
