"""Request and response models shared by the route modules."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from models.message import Address, Message
from models.reconciler import ReconcileResult
from models.thread import Thread


class ThreadSummary(BaseModel):
    """One conversation as listed to the UI.

    Attributes:
        thread_id: Conversation key.
        has_more_messages: Whether older history may exist on the device.
        oldest_cached_timestamp: Smallest cached date, or -1.
        newest_cached_timestamp: Largest cached date, or -1.
        message_count: Number of cached messages.
        unread_count: Number of cached unread messages.
        addresses: Participants, from the newest message.
        latest_message: The newest cached message.
    """

    thread_id: str
    has_more_messages: bool
    oldest_cached_timestamp: int
    newest_cached_timestamp: int
    message_count: int
    unread_count: int
    addresses: list[Address] = Field(default_factory=list)
    latest_message: Optional[Message] = None

    @classmethod
    def from_thread(cls, thread: Thread) -> "ThreadSummary":
        return cls(
            thread_id=thread.id,
            has_more_messages=thread.has_more_messages,
            oldest_cached_timestamp=thread.oldest_cached_timestamp,
            newest_cached_timestamp=thread.newest_cached_timestamp,
            message_count=thread.message_count,
            unread_count=thread.unread_count,
            addresses=thread.addresses,
            latest_message=thread.latest_message,
        )


class ThreadListResponse(BaseModel):
    """Response model for the thread listing.

    Attributes:
        threads: Summaries, most recently active first.
        total_count: Number of cached threads.
        last_updated: Digest watermark.
    """

    threads: list[ThreadSummary]
    total_count: int
    last_updated: int


class MessagePageResponse(BaseModel):
    """Response model for a page query.

    Attributes:
        thread_id: Thread that was paged.
        messages: Cached messages, ascending by date.
        returned_count: Number of messages returned.
        has_more_messages: Whether older history may exist on the device.
        fetch_requested: Whether the device was asked for more history.
        next_before: Boundary to pass for the next older page, if any.
    """

    thread_id: str
    messages: list[Message]
    returned_count: int
    has_more_messages: bool
    fetch_requested: bool
    next_before: Optional[int] = None


class MessageBatchRequest(BaseModel):
    """Request model for an inbound batch of message records.

    Records are kept raw so that malformed ones can be skipped individually
    instead of failing the whole batch.

    Attributes:
        messages: Message records as received from the device.
    """

    messages: list[dict[str, Any]] = Field(description="Raw message records")


class PacketRequest(BaseModel):
    """Request model for a whole packet received from the device.

    Attributes:
        type: Packet type, e.g. "kdeconnect.sms.messages".
        body: Packet body.
    """

    type: str = Field(description="Packet type")
    body: dict[str, Any] = Field(default_factory=dict, description="Packet body")


class SendMessageBody(BaseModel):
    """Request model for sending an SMS through the device.

    Attributes:
        addresses: Recipient addresses.
        body: Message text.
    """

    addresses: list[str] = Field(min_length=1, description="Recipient addresses")
    body: str = Field(description="Message text")


class UpstreamRequestModel(BaseModel):
    """An upstream request as handed to the device bridge.

    Attributes:
        type: Packet type to send.
        body: Packet body to send.
    """

    type: str
    body: dict[str, Any]


class OutboxResponse(BaseModel):
    """Response model for draining the outbox.

    Attributes:
        requests: Pending requests, oldest first.
        count: Number of requests returned.
    """

    requests: list[UpstreamRequestModel]
    count: int


class SyncStatusResponse(BaseModel):
    """Response model for the sync status endpoint.

    Attributes:
        last_updated: Digest watermark, or -1 before the first digest.
        thread_count: Number of cached threads.
        message_count: Number of cached messages across all threads.
        pending_requests: Requests waiting in the outbox.
        cache_path: Snapshot file, if persistence is enabled.
    """

    last_updated: int
    thread_count: int
    message_count: int
    pending_requests: int
    cache_path: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Short error category.
        detail: Human-readable description.
    """

    error: str
    detail: str


class PacketResponse(BaseModel):
    """Response model for an inbound packet.

    Attributes:
        handled: Whether the packet type is one this service consumes.
        result: Reconciliation summary when handled.
    """

    handled: bool
    result: Optional[ReconcileResult] = None
