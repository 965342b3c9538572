"""SMS sync API client library.

A typed Python client for the SMS sync service REST API.

Example:
    Usage::

        from client import SMSSyncClient

        with SMSSyncClient(base_url="http://localhost:8000") as client:
            result = client.sync.push_messages(records)
            page = client.threads.messages(result.thread_ids[0])

Exports:
    SMSSyncClient: Client for the SMS sync REST API.

    Exceptions:
        SyncClientError: Base exception for all client errors.
        ConnectionError: Failed to connect to the server.
        TimeoutError: Request timed out.
        APIError: Server returned an error response.
        BadRequestError: Value rejected (HTTP 400).
        NotFoundError: Resource not found (HTTP 404).
        ValidationError: Request validation failed (HTTP 422).
        ServerError: Server-side error (HTTP 5xx).
"""

from client._sync import SyncClient
from client._threads import ThreadsClient
from client.client import SMSSyncClient
from client.exceptions import (
    APIError,
    BadRequestError,
    ConnectionError,
    NotFoundError,
    ServerError,
    SyncClientError,
    TimeoutError,
    ValidationError,
)
from client.models import (
    ErrorResponse,
    HealthResponse,
    MessagePageResponse,
    OutboxResponse,
    PacketResponse,
    ReconcileResult,
    SyncStatusResponse,
    ThreadListResponse,
    ThreadSummary,
    UpstreamRequestModel,
)

__all__ = [
    # Main client
    "SMSSyncClient",
    # Sub-clients
    "SyncClient",
    "ThreadsClient",
    # Exceptions
    "APIError",
    "BadRequestError",
    "ConnectionError",
    "NotFoundError",
    "ServerError",
    "SyncClientError",
    "TimeoutError",
    "ValidationError",
    # Models
    "ErrorResponse",
    "HealthResponse",
    "MessagePageResponse",
    "OutboxResponse",
    "PacketResponse",
    "ReconcileResult",
    "SyncStatusResponse",
    "ThreadListResponse",
    "ThreadSummary",
    "UpstreamRequestModel",
]
