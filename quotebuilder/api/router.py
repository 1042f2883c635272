"""Top-level API router."""

from fastapi import APIRouter

from quotebuilder.api.routes.health import router as health_router
from quotebuilder.api.routes.phase_templates import router as phase_templates_router
from quotebuilder.api.routes.quotes import router as quotes_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(quotes_router)
api_router.include_router(phase_templates_router)
