"""
FastAPI server — risk scoring boundary.

GET /health, POST /risk/score, POST /risk/batch. Scoring runs under a
caller-side timeout (504 on expiry); an exception from the aggregator
itself is the only 500. Policies never surface provider errors here.
When the risk hook is configured, each score is sent as a signed
notification in the background.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import httpx
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse

from risk_agent.agent_logging import get_logger
from risk_agent.analysis_engine.cache import StatsCache
from risk_agent.analysis_engine.scorer import RiskAggregator
from risk_agent.analysis_engine.requests import ScoringRequest
from risk_agent.chain_data.provider import SourceChainDataProvider
from risk_agent.chain_data.sources import (
    FixtureTransactionSource,
    IndexerTransactionSource,
    TransactionSource,
)
from risk_agent.config.settings import Settings, get_settings
from risk_agent.notifier.hook import RiskHookNotifier

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Wiring
# -----------------------------------------------------------------------------

def build_source(settings: Settings, client: httpx.AsyncClient) -> TransactionSource:
    """Fixture file if configured, else the indexer, else an empty fixture."""
    if settings.fixture_path is not None:
        return FixtureTransactionSource.from_file(settings.fixture_path)
    if settings.indexer_url:
        return IndexerTransactionSource(settings.indexer_url, client, timeout=settings.indexer_timeout_sec)
    logger.warning("no_transaction_source_configured", hint="set INDEXER_URL or RISK_FIXTURE_PATH")
    return FixtureTransactionSource({})


def build_aggregator(settings: Settings, client: httpx.AsyncClient) -> RiskAggregator:
    cache = StatsCache.from_config(settings.cache)
    provider = SourceChainDataProvider(
        build_source(settings, client),
        market_sample_limit=settings.market_sample_limit,
        user_large_threshold=settings.amount.user_large_threshold,
        cache=cache,
    )
    return RiskAggregator.from_settings(settings, provider, cache)


def _error(status_code: int, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code})


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

def create_app(
    settings: Settings | None = None,
    aggregator: RiskAggregator | None = None,
    notifier: RiskHookNotifier | None = None,
) -> FastAPI:
    """
    Build the ASGI app.

    aggregator and notifier are normally built in the lifespan from settings;
    tests pass them in directly.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient() as client:
            if app.state.aggregator is None:
                app.state.aggregator = build_aggregator(settings, client)
            if app.state.notifier is None and settings.notifications_enabled:
                app.state.notifier = RiskHookNotifier(
                    settings.api_url,
                    settings.internal_shared_secret,
                    client,
                )
            logger.info(
                "risk_agent_started",
                service=settings.service_name,
                notifications=app.state.notifier is not None,
            )
            yield
        logger.info("risk_agent_stopped", service=settings.service_name)

    app = FastAPI(
        title="Risk Agent",
        description="Real-time transaction risk scoring for on-chain payment actions.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.aggregator = aggregator
    app.state.notifier = notifier

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Liveness probe."""
        return {
            "ok": True,
            "service": settings.service_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/risk/score")
    async def score(body: ScoringRequest, request: Request, background: BackgroundTasks):
        agg: RiskAggregator = request.app.state.aggregator
        try:
            result = await asyncio.wait_for(agg.score(body), timeout=settings.score_timeout_sec)
        except asyncio.TimeoutError:
            logger.warning("risk_score_timeout", address=body.from_address, timeout_sec=settings.score_timeout_sec)
            return _error(504, "scoring-timeout")
        except Exception:
            logger.exception("risk_score_failed", address=body.from_address)
            return _error(500, "internal-server-error")

        hook: RiskHookNotifier | None = request.app.state.notifier
        if hook is not None:
            background.add_task(hook.notify, result)
        return result.to_dict()

    @app.post("/risk/batch")
    async def score_batch(body: list[ScoringRequest], request: Request):
        agg: RiskAggregator = request.app.state.aggregator
        try:
            results = await asyncio.wait_for(agg.score_batch(body), timeout=settings.score_timeout_sec)
        except asyncio.TimeoutError:
            logger.warning("risk_batch_timeout", size=len(body), timeout_sec=settings.score_timeout_sec)
            return _error(504, "batch-timeout")
        except Exception:
            logger.exception("risk_batch_failed", size=len(body))
            return _error(500, "batch-processing-failed")

        logger.info("risk_batch_scored", size=len(body))
        return [{"input": item.to_wire(), "result": res.to_dict()} for item, res in zip(body, results)]

    return app
