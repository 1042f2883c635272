"""Service dependencies for FastAPI endpoints."""

from quotebuilder.services.quote_service import QuoteEngineService


def get_quote_service() -> QuoteEngineService:
    """Build the stateless quote engine service."""

    return QuoteEngineService()
