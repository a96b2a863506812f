"""Billing reconciler service: FastAPI app factory and process lifecycle."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import error_handler_middleware, register_exception_handlers
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.middleware.request_size import request_size_limit_middleware
from src.api.routes import health, payments, subscriptions, webhooks
from src.core.config import Settings, get_settings
from src.core.gateway import shutdown_gateway_client
from src.services.ownership_cache import init_ownership_cache, shutdown_ownership_cache

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _warn_on_missing_secrets(settings: Settings) -> None:
    if not settings.is_gateway_configured:
        logger.warning("Payment gateway credentials are not configured")
    if not settings.webhook_secret:
        logger.warning("Webhook secret is not configured; all webhooks will be rejected")
    if not settings.client_callback_secret:
        logger.warning("Client callback secret is not configured; all verifications will be rejected")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Warm the ownership cache on startup and close the gateway client on shutdown."""
    settings = get_settings()
    logger.info(
        "Starting %s in %s mode (application tag: %s)",
        settings.app_name,
        settings.app_env,
        settings.application_tag,
    )
    _warn_on_missing_secrets(settings)

    cache = await init_ownership_cache()
    logger.info("Ownership cache ready (enabled=%s)", cache.config.enabled)

    yield

    await shutdown_ownership_cache()
    await shutdown_gateway_client()
    logger.info("Stopped %s", settings.app_name)


def create_app() -> FastAPI:
    """Build the application with middleware and routers attached.

    Interactive docs are only served when ``DEBUG`` is set.
    """
    settings = get_settings()
    docs_enabled = settings.debug

    app = FastAPI(
        title="Billing Reconciler API",
        description="Payment reconciliation and subscription entitlement service",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Last added runs first: size limit, then latency, then error envelope
    for dispatch in (error_handler_middleware, latency_logging_middleware, request_size_limit_middleware):
        app.add_middleware(BaseHTTPMiddleware, dispatch=dispatch)

    register_exception_handlers(app)

    app.include_router(health.router)

    api_router = APIRouter(prefix=API_PREFIX)
    for module in (payments, webhooks, subscriptions):
        api_router.include_router(module.router)
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("src.main:app", host=settings.host, port=settings.port, reload=settings.debug)
