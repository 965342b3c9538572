"""Backward paging over a cached thread."""

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field

from models.message import Message
from models.requests import ConversationRequest

if TYPE_CHECKING:
    from models.store import ThreadStore


class MessagePage(BaseModel):
    """Result of a page query.

    Args:
        thread_id: Thread that was paged.
        messages: Cached messages in the page, ascending by date.
        has_more_messages: The thread's flag at query time.
        fetch_request: The upstream request emitted because the cache came
            up short, if any.
    """

    thread_id: str
    messages: list[Message] = Field(default_factory=list)
    has_more_messages: bool = True
    fetch_request: Optional[ConversationRequest] = None

    @property
    def fetch_requested(self) -> bool:
        return self.fetch_request is not None


class ThreadCursor:
    """Walks one thread from newest to oldest, a page at a time.

    Each call to next_older_page() returns the page just before the last one
    handed out. When the cache runs short the store asks the peer for more;
    those messages land asynchronously, so a later call picks them up.

    Args:
        store: Store that owns the thread.
        thread_id: Thread to walk.
        page_size: Messages per page.
    """

    def __init__(self, store: "ThreadStore", thread_id: str, page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._store = store
        self.thread_id = str(thread_id)
        self.page_size = page_size
        self._boundary: Optional[int] = None

    @property
    def boundary(self) -> Optional[int]:
        """Date of the oldest message handed out so far."""
        return self._boundary

    def next_older_page(self) -> list[Message]:
        """Return the next page of older messages.

        Returns:
            Up to page_size messages, ascending; empty when nothing older is
            cached yet.

        Raises:
            ThreadNotFoundError: If the thread has been pruned.
        """
        page = self._store.get_page(self.thread_id, self.page_size, self._boundary)
        if page.messages:
            self._boundary = page.messages[0].date
        return page.messages

    def has_more(self) -> bool:
        """Whether another call could yield messages, now or after a fetch."""
        thread = self._store.get_thread(self.thread_id)
        if thread is None:
            return False
        if self._boundary is None:
            return not thread.is_empty or thread.has_more_messages
        return (
            thread.oldest_cached_timestamp < self._boundary
            or thread.has_more_messages
        )

    def reset(self) -> None:
        """Start again from the newest message."""
        self._boundary = None
