"""Main entry point for the SMS sync service FastAPI application.

This module creates and configures the FastAPI app instance that serves the
conversation cache to the messaging UI and accepts packets from the device
bridge.

To run the development server:
    uv run uvicorn main:app --reload

To run in production:
    uv run uvicorn main:app --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import ValidationError

from api.dependencies import initialize_reconciler, shutdown_reconciler
from api.exceptions import (
    cache_persistence_handler,
    generic_exception_handler,
    thread_not_found_handler,
    validation_exception_handler,
    value_error_handler,
)
from api.routes import sync as sync_routes
from api.routes import threads as threads_routes
from models.config import SyncConfig
from models.exceptions import CachePersistenceError, ThreadNotFoundError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events.

    Loads the configuration, sets up logging and restores the cache snapshot
    at startup; detaches the sync engine at shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to FastAPI to handle requests.
    """
    config = SyncConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting SMS sync service")
    initialize_reconciler(config)

    yield

    logger.info("Shutting down SMS sync service")
    shutdown_reconciler()


app = FastAPI(
    title="SMS Sync Service",
    description="Conversation cache and incremental sync for a paired phone's SMS/MMS",
    version="0.1.0",
    lifespan=lifespan,
)

# Order matters: specific exceptions before general ones
app.add_exception_handler(ThreadNotFoundError, thread_not_found_handler)
app.add_exception_handler(CachePersistenceError, cache_persistence_handler)
app.add_exception_handler(ValidationError, validation_exception_handler)
app.add_exception_handler(ValueError, value_error_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(threads_routes.router)
app.include_router(sync_routes.router)


@app.get("/")
async def root():
    """Root endpoint - returns a welcome message.

    Returns:
        A dictionary with a welcome message.
    """
    return {
        "message": "Welcome to the SMS Sync Service API",
        "version": "0.1.0",
        "docs_url": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring.

    Returns:
        A dictionary indicating the service is healthy.
    """
    return {"status": "healthy"}
