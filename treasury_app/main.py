"""
FastAPI Main Application
Treasury ledger API: accounts, treasury trades and yield curves
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from treasury_app.config import settings
from treasury_app.core.logging import setup_logging
from treasury_app.api.errors import register_exception_handlers
from treasury_app.api.routes import health, transactions, users, yields
from treasury_app.domain.services.ledger_service import LedgerService
from treasury_app.infrastructure.cache.yield_cache import YieldCache
from treasury_app.infrastructure.db.database import close_db, get_session_factory, init_db
from treasury_app.infrastructure.market_data.treasury_feed import TreasuryFeedClient
from treasury_app.services.account_service import AccountService
from treasury_app.services.yield_service import YieldService

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Builds the services once and tears them down on shutdown
    """
    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("Starting Treasury Ledger (%s)", settings.APP_ENV)
    logger.info("=" * 60)

    # 1. Database
    await init_db()
    session_factory = get_session_factory()
    logger.info("Database ready (auto create tables: %s)", settings.AUTO_CREATE_TABLES)

    # 2. Yield cache + feed (one cache per process)
    feed_client = TreasuryFeedClient(
        url_template=settings.TREASURY_FEED_URL,
        timeout=settings.TREASURY_FEED_TIMEOUT_SECONDS,
        multi_year_timeout=settings.TREASURY_FEED_MULTI_YEAR_TIMEOUT_SECONDS,
    )
    yield_cache = YieldCache(ttl_seconds=settings.YIELD_CACHE_TTL_SECONDS)
    yield_service = YieldService(yield_cache, feed_client)

    # 3. Services
    app.state.session_factory = session_factory
    app.state.ledger_service = LedgerService(session_factory)
    app.state.account_service = AccountService(session_factory)
    app.state.yield_service = yield_service

    # 4. Background cache warming (not awaited)
    if settings.WARM_YIELD_CACHE_ON_STARTUP:
        yield_service.warm_cache()
    else:
        logger.info("Yield cache warming disabled")

    logger.info("API Server: http://%s:%s", settings.API_HOST, settings.API_PORT)

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("Shutting down Treasury Ledger...")
    await yield_service.shutdown()
    await feed_client.aclose()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Treasury Ledger",
        description="Simulated treasury bills, notes and bonds on a cash ledger",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(users.router, prefix="/api/v1", tags=["Users"])
    app.include_router(transactions.router, prefix="/api/v1", tags=["Transactions"])
    app.include_router(yields.router, prefix="/api/yields", tags=["Yields"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("treasury_app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
