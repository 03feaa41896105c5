"""
CoinWatch Backend - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coinwatch.core.config import settings
from coinwatch.core.logging_config import setup_logging
from coinwatch.api.v1 import router as api_v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging(settings.log_level)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    # Initialize cache (Redis if configured and reachable, else memory)
    from coinwatch.services.cache import init_cache, init_storage, RedisStorage
    cache = init_cache(init_storage())
    if isinstance(cache.storage, RedisStorage):
        logger.info("Redis cache connected")
    else:
        logger.info("Using in-memory cache")

    from coinwatch.services.refresh import (
        RefreshScheduler,
        close_orchestrator,
        get_orchestrator,
        get_session,
    )
    from coinwatch.services.overview import (
        close_market_overview_service,
        get_market_overview_service,
    )
    orchestrator = get_orchestrator()
    overview = get_market_overview_service()
    session = get_session()
    logger.info(f"Selection: {session.coin.id} on {session.timeframe.value}")

    # Keep the selected coin warm
    if settings.enable_scheduler:
        scheduler = RefreshScheduler(orchestrator, cache, session, overview)
        await scheduler.start()
    else:
        scheduler = None
        logger.info("Refresh scheduler disabled (enable_scheduler=false)")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if scheduler:
        await scheduler.stop()
    await close_orchestrator()
    await close_market_overview_service()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    CoinWatch Crypto Dashboard API

    ## Architecture
    - **Series Store**: Fetches OHLCV klines from Binance
    - **Indicator Engine**: RSI, MACD, SMA, EMA, Stochastic, Williams %R,
      Bollinger, ATR, CCI, ADX (pure Python/NumPy)
    - **Expiring Cache**: TTL cache over memory or Redis
    - **Refresh Orchestrator**: Stale-while-revalidate with ordered, cancellable fetches
    - **Market Overview**: Coin quotes, global stats and search from CoinGecko

    ## Core Principles
    - Every bundle says where its data came from (live, cached, synthetic)
    - Provider failures degrade, they never break the dashboard
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware - allow both frontend ports
cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]
# Add any additional origins from settings
if settings.allowed_origins:
    cors_origins.extend([o for o in settings.allowed_origins if o not in cors_origins])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "CoinWatch Backend API",
        "docs": "/docs",
        "health": "/health",
    }
