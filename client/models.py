"""Client response models for the SMS sync API client.

This module re-exports the response models from the API layer and defines
client-specific response models that don't exist in the API layer.
"""

from pydantic import BaseModel, Field

# Re-export response models from API layer for client convenience
from api.models import (
    ErrorResponse,
    MessagePageResponse,
    OutboxResponse,
    PacketResponse,
    SyncStatusResponse,
    ThreadListResponse,
    ThreadSummary,
    UpstreamRequestModel,
)
from models.reconciler import ReconcileResult

__all__ = [
    # Re-exported from api.models
    "ErrorResponse",
    "MessagePageResponse",
    "OutboxResponse",
    "PacketResponse",
    "ReconcileResult",
    "SyncStatusResponse",
    "ThreadListResponse",
    "ThreadSummary",
    "UpstreamRequestModel",
    # Client-specific models
    "HealthResponse",
]


class HealthResponse(BaseModel):
    """Response model for API health check.

    Attributes:
        status: Health status ("healthy").
    """

    status: str = Field(..., description="Health status")
