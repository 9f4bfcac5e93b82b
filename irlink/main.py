"""
FastAPI application entrypoint for the iRacing account linking service.
"""

from __future__ import annotations

from fastapi import FastAPI

from irlink.api.routes import router as api_router
from irlink.core.config import get_settings
from irlink.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="irlink",
        version="0.1.0",
        description="Links Discord users to iRacing accounts and ranks their iRating.",
    )
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
