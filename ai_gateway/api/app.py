"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ai_gateway.config.loader import load_pricing_config
from ai_gateway.config.logs import configure_logging
from ai_gateway.config.settings import Settings, get_settings
from ai_gateway.core.dispatcher import Dispatcher
from ai_gateway.core.errors import GatewayError, InternalError, RequestTooLargeError
from ai_gateway.core.pricing import PRICING_TABLE
from ai_gateway.core.recorder import UsageRecorder
from ai_gateway.storage.repository import AnalyticsStore

from . import analytics, chat

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[Dispatcher] = None,
    store: Optional[AnalyticsStore] = None,
) -> FastAPI:
    """Build the gateway application.

    Collaborators default to ones built from settings; tests pass their own.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    if not settings.API_SECRET:
        raise ValueError("API_SECRET environment variable is not set")

    pricing = load_pricing_config(settings.PRICING_FILE) if settings.PRICING_FILE else PRICING_TABLE
    dispatcher = dispatcher or Dispatcher.from_settings(settings)
    store = store or AnalyticsStore(settings.LOGS_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.ensure_directory()
        logger.info(f"Logs directory: {store.logs_dir}")
        for provider, configured in dispatcher.configured_providers().items():
            logger.info(f"{provider} API key: {'Set' if configured else 'NOT SET'}")
        yield
        logger.info("Shutting down: closing upstream HTTP client")
        await dispatcher.aclose()

    app = FastAPI(title="AI Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.dispatcher = dispatcher
    app.state.store = store
    app.state.recorder = UsageRecorder(store, pricing)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.MAX_REQUEST_BYTES:
            error = RequestTooLargeError(int(length), settings.MAX_REQUEST_BYTES)
            return JSONResponse(status_code=error.status_code, content=error.payload)
        return await call_next(request)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        if isinstance(exc, InternalError):
            logger.error(f"Internal error on {request.url.path}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content=exc.payload)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={"error": "Not Found", "message": "The requested endpoint does not exist"},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        error = InternalError(str(exc))
        return JSONResponse(status_code=error.status_code, content=error.payload)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "providers": dispatcher.configured_providers(),
            "hasAPISecret": bool(settings.API_SECRET),
        }

    app.include_router(chat.router)
    app.include_router(analytics.router)
    return app
