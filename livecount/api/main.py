"""FastAPI application entrypoint.

This service exposes HTTP endpoints for:
- recording viewer heartbeats (single and batched)
- live, cached and VOD viewer counts
- the stream page payload
- viewer room tokens
- watch sessions and VOD view stats
- health checks

Run locally with:

    uvicorn livecount.api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from livecount.config import settings
from livecount.core.constants import CORS_ALLOW_HEADERS
from livecount.core.logging import configure_logging
from livecount.database.session import create_all_tables

from .errors import register_exception_handlers
from .routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and make sure the schema exists on startup."""
    configure_logging()
    logger.info("Starting livecount (%s)", settings.app_env)
    create_all_tables()
    yield
    logger.info("Shutting down livecount")


def create_app() -> FastAPI:
    app = FastAPI(title="Livecount API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=list(CORS_ALLOW_HEADERS),
    )

    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/health")
    def health():
        """Health check endpoint.

        Returns:
            dict: `{"status": "ok", "service": "livecount"}`.
        """
        return {"status": "ok", "service": "livecount"}

    return app


app = create_app()
