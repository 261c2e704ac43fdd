"""
Social Graph Service - FastAPI application.

Serves user, relationship and notification endpoints under /api.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import settings
from ..shared_storage import (
    close_shared_storage,
    get_graph_client,
    get_shared_notification_log,
    initialize_shared_storage,
)
from .api import notifications, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Social Graph Service...")
    await initialize_shared_storage()

    yield

    logger.info("Shutting down Social Graph Service...")
    await close_shared_storage()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests are client errors (400), like every other validation failure."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


async def health_check():
    """Health check endpoint with graph statistics."""
    graph = get_graph_client()
    graph_stats = await graph.get_graph_stats() if graph is not None else {"status": "unavailable"}
    log_available = get_shared_notification_log() is not None

    status = "healthy"
    if graph_stats.get("status") != "operational" or not log_available:
        status = "degraded"

    return {
        "status": status,
        "service": "social-graph",
        "version": __version__,
        "timestamp": time.time(),
        "graph": graph_stats,
        "notification_log": "operational" if log_available else "unavailable",
    }


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title="Social Graph Service",
        description="Users, follow relationships and follow notifications",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.http.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(users.router, prefix="/api")
    app.include_router(notifications.router, prefix="/api")
    app.add_api_route("/api/health", health_check, methods=["GET"], tags=["health"])

    return app


app = create_app()


def main():
    """Run the HTTP server."""
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(app, host=settings.http.host, port=settings.http.port)


if __name__ == "__main__":
    main()
