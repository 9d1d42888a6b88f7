"""Marketplace API — FastAPI application entry point.

Invariants:
    - Routers registered explicitly, one per resource
    - Global error handlers map MarketplaceError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Client runtime built on startup and closed on shutdown via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Startup attempts a wallet connection; without a wallet (or if the user
      declines) the app still serves the catalog read-only and /connect can retry
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.api.error_handlers import register_error_handlers
from marketplace.api.routes import health, market
from marketplace.config import get_settings
from marketplace.core.errors import (
    AuthorizationDeniedError, MarketplaceError, NoAgentError, NoSignerError,
)
from marketplace.infrastructure.observability import setup_logging
from marketplace.services.runtime import init_runtime, shutdown_runtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    client = init_runtime(settings).client
    try:
        await client.connect()
    except (NoAgentError, AuthorizationDeniedError, NoSignerError) as e:
        logger.warning(
            f"Starting without a wallet session: {e.message}",
            extra={"error_code": e.code},
        )
        await _initial_refresh(client)
    except MarketplaceError as e:
        logger.error(
            f"Initial connect failed: {e.message}", extra={"error_code": e.code},
        )
    logger.info("Marketplace API started", extra={"identity": client.identity})
    yield
    await shutdown_runtime()
    logger.info("Marketplace API shutting down")


async def _initial_refresh(client) -> None:
    try:
        await client.refresh()
    except MarketplaceError as e:
        logger.error(
            f"Initial catalog refresh failed: {e.message}",
            extra={"error_code": e.code},
        )


app = FastAPI(
    title="Ledger Marketplace API", version="1.0.0", lifespan=lifespan,
)

# CORS origins come from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health.router)
app.include_router(market.router)

register_error_handlers(app)
