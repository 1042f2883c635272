"""ASGI entrypoint for the quote pricing engine."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quotebuilder.api.router import api_router
from quotebuilder.core.config import Settings, get_settings
from quotebuilder.core.logging_config import setup_logging

APP_VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _add_cors(app: FastAPI, settings: Settings) -> None:
    # The engine is stateless and only reads or posts whole quotes.
    if not settings.allowed_origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the pricing API; ``settings`` defaults to the cached environment settings."""

    settings = settings or get_settings()
    setup_logging(level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        version=APP_VERSION,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=None,
    )
    _add_cors(app, settings)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/", tags=["system"])
    def root() -> dict[str, str]:
        return {
            "service": settings.app_name,
            "version": APP_VERSION,
            "status": "running",
            "docs": f"{settings.api_prefix}/docs",
        }

    logger.info("Quote engine ready under %s (%s).", settings.api_prefix, settings.app_env)
    return app


app = create_app()
