"""Exception handlers for the sync service FastAPI application.

This module converts domain exceptions into consistent JSON responses.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from models.exceptions import CachePersistenceError, ThreadNotFoundError

logger = logging.getLogger(__name__)


async def thread_not_found_handler(request: Request, exc: ThreadNotFoundError):
    """Handle ThreadNotFoundError exceptions.

    Returns a 404 naming the thread that was requested.

    Args:
        request: The incoming request that triggered the error.
        exc: The ThreadNotFoundError exception.

    Returns:
        JSONResponse with 404 status.
    """
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "Thread Not Found",
            "detail": str(exc),
            "thread_id": exc.thread_id,
        },
    )


async def cache_persistence_handler(request: Request, exc: CachePersistenceError):
    """Handle CachePersistenceError exceptions.

    The batch was merged in memory; only the snapshot write failed.

    Args:
        request: The incoming request that triggered the error.
        exc: The CachePersistenceError exception.

    Returns:
        JSONResponse with 500 status.
    """
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Cache Write Failed",
            "detail": exc.message,
            "path": exc.path,
            "type": "CachePersistenceError",
        },
    )


async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors raised inside handlers.

    Args:
        request: The incoming request that triggered the error.
        exc: The ValidationError exception.

    Returns:
        JSONResponse with validation error details.
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "detail": "The request data failed validation",
            "validation_errors": exc.errors(include_url=False),
        },
    )


async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions.

    Args:
        request: The incoming request that triggered the error.
        exc: The ValueError exception.

    Returns:
        JSONResponse with error details.
    """
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid Value",
            "detail": str(exc),
            "type": "ValueError",
        },
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle any unhandled exceptions.

    Args:
        request: The incoming request that triggered the error.
        exc: The exception that was raised.

    Returns:
        JSONResponse with generic error message.
    """
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred",
            "type": type(exc).__name__,
        },
    )
