"""
FastAPI Application - Market Intelligence API

Serves liquidity, volatility, activity and health scores for Injective markets,
plus upstream call telemetry.

Endpoints:
    - GET /health, /ready, /live                  - Probes
    - GET /api/v1/metrics                         - Upstream call telemetry
    - GET /api/v1/markets                         - Market listing
    - GET /api/v1/markets/active                  - Markets ranked by activity
    - GET /api/v1/markets/{id}/summary            - All metric bundles + signals
    - GET /api/v1/markets/{id}/liquidity          - Liquidity bundle
    - GET /api/v1/markets/{id}/volatility         - Volatility bundle
    - GET /api/v1/markets/{id}/health             - Health bundle
    - GET /api/v1/markets/{id}/insights           - Signals as text lines

Error Mapping:
    MarketNotFound                          -> 404
    RateLimitExceeded                       -> 429 (Retry-After: 60)
    UpstreamTimeoutError / Unavailable      -> 503
    UpstreamError / DataFormatError         -> 502

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import psutil
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings, validate_configuration
from core.context import MarketIntelContext
from core.exceptions import (
    MarketDataError,
    MarketNotFound,
    RateLimitExceeded,
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnavailable,
)
from core.logging import logger
from core.utils.time import current_utc_datetime
from services.market_service import DEFAULT_LIMIT, DEFAULT_LOOKBACK, parse_positive_int, parse_window


API_PREFIX = "/api/v1"
VERSION = "0.1.0"


def _status_for(error: MarketDataError) -> int:
    if isinstance(error, MarketNotFound):
        return 404
    if isinstance(error, RateLimitExceeded):
        return 429
    if isinstance(error, (UpstreamTimeoutError, UpstreamUnavailable)):
        return 503
    if isinstance(error, UpstreamError):
        return 502
    return 500


async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    """Map acquisition failures to HTTP responses; the full error goes to the log."""
    status = _status_for(exc)
    if status == 404:
        logger.info(f"{request.url.path}: {exc}")
    else:
        logger.error(f"{request.url.path}: {type(exc).__name__}: {exc}")

    headers = {"Retry-After": "60"} if status == 429 else None
    return JSONResponse(
        status_code=status,
        content={"error": str(exc), "category": type(exc).__name__},
        headers=headers,
    )


def _memory_usage() -> dict:
    """Process RSS and system memory in MB."""
    rss = psutil.Process().memory_info().rss
    system = psutil.virtual_memory()
    mb = 1024 * 1024
    return {
        "used": (system.total - system.available) // mb,
        "total": system.total // mb,
        "rss": rss // mb,
    }


def _context(request: Request) -> MarketIntelContext:
    return request.app.state.context


# ============================================
# System Endpoints
# ============================================

system_router = APIRouter(tags=["System"])


@system_router.get("/health")
async def health_check(request: Request):
    """Process health and version information."""
    ctx = _context(request)
    return {
        "status": "healthy",
        "timestamp": current_utc_datetime(),
        "version": VERSION,
        "environment": ctx.settings.environment,
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "memory": _memory_usage(),
    }


@system_router.get("/ready")
async def readiness_check(request: Request):
    """Ready when the upstream market listing can be fetched."""
    ctx = _context(request)
    try:
        markets = await ctx.client.list_markets()
    except MarketDataError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "timestamp": current_utc_datetime().isoformat(),
                "checks": {"injective_api": "disconnected", "error": str(e)},
            },
        )
    return {
        "status": "ready",
        "timestamp": current_utc_datetime(),
        "checks": {"injective_api": "connected", "markets_available": len(markets) > 0},
    }


@system_router.get("/live")
async def liveness_check():
    return {"status": "alive", "timestamp": current_utc_datetime()}


@system_router.get(f"{API_PREFIX}/metrics")
async def api_metrics(request: Request):
    """Upstream call telemetry for the last five minutes and the latest failures."""
    client = _context(request).client
    return {
        "timestamp": current_utc_datetime(),
        "summary": client.get_call_metrics_summary(),
        "recent_failures": client.get_recent_failures(10),
    }


# ============================================
# Market Endpoints
# ============================================

markets_router = APIRouter(prefix=f"{API_PREFIX}/markets", tags=["Markets"])


@markets_router.get("")
async def list_markets(request: Request):
    markets = await _context(request).markets.list_markets()
    return {"items": markets, "count": len(markets)}


@markets_router.get("/active")
async def list_active_markets(
    request: Request,
    window: Optional[str] = Query(default=None, description="1m, 5m, 15m, 1h, 4h, 1d, 7d"),
    limit: Optional[str] = Query(default=None, description="Number of markets to return"),
):
    """
    Markets ranked by recent activity.

    Markets whose trades could not be fetched are listed under `failures`.
    """
    return await _context(request).markets.rank_active_markets(
        parse_window(window), parse_positive_int(limit, DEFAULT_LIMIT)
    )


@markets_router.get("/{market_id}/summary")
async def market_summary(
    request: Request,
    market_id: str,
    window: Optional[str] = Query(default=None),
    lookback: Optional[str] = Query(default=None),
):
    return await _context(request).markets.build_summary(
        market_id, parse_window(window), parse_positive_int(lookback, DEFAULT_LOOKBACK)
    )


async def _bundle(request: Request, market_id: str, bundle: str, window, lookback):
    return await _context(request).markets.get_metric(
        market_id, bundle, parse_window(window), parse_positive_int(lookback, DEFAULT_LOOKBACK)
    )


@markets_router.get("/{market_id}/liquidity")
async def market_liquidity(request: Request, market_id: str, window: Optional[str] = None, lookback: Optional[str] = None):
    return await _bundle(request, market_id, "liquidity", window, lookback)


@markets_router.get("/{market_id}/volatility")
async def market_volatility(request: Request, market_id: str, window: Optional[str] = None, lookback: Optional[str] = None):
    return await _bundle(request, market_id, "volatility", window, lookback)


@markets_router.get("/{market_id}/health")
async def market_health(request: Request, market_id: str, window: Optional[str] = None, lookback: Optional[str] = None):
    return await _bundle(request, market_id, "health", window, lookback)


@markets_router.get("/{market_id}/insights")
async def market_insights(request: Request, market_id: str, window: Optional[str] = None, lookback: Optional[str] = None):
    return await _context(request).markets.get_insights(
        market_id, parse_window(window), parse_positive_int(lookback, DEFAULT_LOOKBACK)
    )


# ============================================
# Application Factory
# ============================================

def create_app(context: Optional[MarketIntelContext] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        context: Pre-built context (tests inject one with a stubbed client);
            built from the global settings at startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=== Application Starting ===")
        ctx = context or MarketIntelContext(settings)
        validate_configuration(ctx.settings)
        await ctx.start()
        app.state.context = ctx
        app.state.started_at = time.monotonic()
        logger.info("=== Started Successfully ===")

        yield

        logger.info("=== Shutting Down ===")
        await ctx.stop()
        logger.info("=== Shutdown Complete ===")

    app = FastAPI(
        title="Injective Market Intelligence API",
        description="Liquidity, volatility, activity and health scores for Injective markets.",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MarketDataError, market_data_error_handler)
    app.include_router(system_router)
    app.include_router(markets_router)
    return app


app = create_app()
