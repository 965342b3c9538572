"""Conversation cache: every thread for one paired device."""

import logging
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from models.cursor import MessagePage, ThreadCursor
from models.events import (
    EventEmitter,
    MessagesAdded,
    MessagesRemoved,
    StoreEvent,
    ThreadAdded,
    ThreadRemoved,
)
from models.exceptions import ThreadNotFoundError
from models.message import Address, Message
from models.requests import ConversationRequest
from models.thread import NO_TIMESTAMP, MessageRecord, Thread, now_ms

logger = logging.getLogger(__name__)


class ThreadStore(BaseModel):
    """Keyed collection of threads plus the digest watermark.

    The store owns every Thread. Mutations go through the methods here so
    that subscribers are told about them; readers use get_page or
    get_messages_for_thread.

    Args:
        last_updated: Time of the last successful full digest sync, or -1.
        threads: Threads keyed by id.
    """

    model_config = ConfigDict(populate_by_name=True)

    last_updated: int = Field(
        default=NO_TIMESTAMP,
        alias="lastUpdated",
        description="Watermark of the last full digest sync",
    )
    threads: dict[str, Thread] = Field(
        default_factory=dict,
        description="Threads keyed by id",
    )

    _events: EventEmitter[StoreEvent] = PrivateAttr(default_factory=EventEmitter)
    _requests: EventEmitter[ConversationRequest] = PrivateAttr(
        default_factory=EventEmitter
    )

    @model_validator(mode="after")
    def check_thread_keys(self) -> "ThreadStore":
        mismatched = [key for key, thread in self.threads.items() if key != thread.id]
        if mismatched:
            logger.warning(f"Re-keying threads stored under the wrong id: {mismatched}")
            self.threads = {thread.id: thread for thread in self.threads.values()}
        return self

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "ThreadStore":
        """Rehydrate a store from the cache file shape.

        Args:
            data: Parsed snapshot.

        Returns:
            A new store.

        Raises:
            pydantic.ValidationError: If the snapshot is malformed.
        """
        return cls.model_validate(data)

    def to_snapshot(self) -> dict[str, Any]:
        """Serialize to the cache file shape."""
        return self.model_dump(by_alias=True, mode="json")

    # Subscriptions

    def subscribe(self, callback: Callable[[StoreEvent], None]) -> Callable[[], None]:
        """Register for thread/message change notifications.

        Returns:
            A function that cancels the subscription.
        """
        return self._events.subscribe(callback)

    def subscribe_requests(
        self, callback: Callable[[ConversationRequest], None]
    ) -> Callable[[], None]:
        """Register for history fetch requests raised by page queries.

        Returns:
            A function that cancels the subscription.
        """
        return self._requests.subscribe(callback)

    # Lookup

    @property
    def thread_count(self) -> int:
        return len(self.threads)

    def __contains__(self, thread_id: object) -> bool:
        return str(thread_id) in self.threads

    def get_thread(self, thread_id: Any) -> Optional[Thread]:
        return self.threads.get(str(thread_id))

    def require_thread(self, thread_id: Any) -> Thread:
        """Like get_thread, but missing threads are an error.

        Raises:
            ThreadNotFoundError: If no thread has this id.
        """
        thread = self.get_thread(thread_id)
        if thread is None:
            raise ThreadNotFoundError(str(thread_id))
        return thread

    def threads_by_recency(self) -> list[Thread]:
        """All threads, most recently active first."""
        return sorted(
            self.threads.values(),
            key=lambda t: t.newest_cached_timestamp,
            reverse=True,
        )

    def find_thread_for_addresses(self, addresses: list[Address]) -> Optional[Thread]:
        """Find the conversation with exactly these participants.

        Args:
            addresses: Participant addresses, in any order.

        Returns:
            The first matching thread, or None.
        """
        for thread in self.threads.values():
            if thread.has_participants(addresses):
                return thread
        return None

    # Mutation

    def add_thread(self, thread: Thread) -> Thread:
        """Insert an already-built thread.

        Raises:
            ValueError: If a thread with the same id exists.
        """
        if thread.id in self.threads:
            raise ValueError(f"Thread {thread.id} already exists")
        self.threads[thread.id] = thread
        self._events.emit(ThreadAdded(thread=thread))
        return thread

    def create_thread(self, messages: Iterable[MessageRecord]) -> Thread:
        """Create a thread from its first batch of messages.

        The thread id is taken from the first message.

        Args:
            messages: At least one message for the new thread.

        Returns:
            The new thread.

        Raises:
            ValueError: If no message has a valid type, or the thread
                already exists.
        """
        batch = [m if isinstance(m, Message) else Message.model_validate(m) for m in messages]
        if not batch:
            raise ValueError("Cannot create a thread without messages")

        thread = Thread(id=batch[0].thread_id)
        thread.update(batch)
        if thread.is_empty:
            raise ValueError(f"No valid messages to create thread {thread.id} from")
        logger.debug(f"Created thread {thread.id} with {thread.message_count} messages")
        return self.add_thread(thread)

    def add_messages_to_thread(
        self,
        thread_id: Any,
        messages: Iterable[MessageRecord],
        detect_history_end: bool = False,
        mark_read: bool = False,
    ) -> bool:
        """Merge messages into an existing thread and notify subscribers.

        Args:
            thread_id: Target thread.
            messages: Records to merge.
            detect_history_end: Passed through to Thread.update.
            mark_read: Mark every cached message read before merging, for a
                read receipt that covers the whole conversation.

        Returns:
            True if the thread changed.

        Raises:
            ThreadNotFoundError: If the thread doesn't exist.
        """
        thread = self.require_thread(thread_id)
        was_placeholder = thread.is_placeholder

        changed = thread.mark_all_read() if mark_read else False
        merged = thread.update(messages, detect_history_end=detect_history_end)
        if merged and was_placeholder:
            self._events.emit(MessagesRemoved(thread=thread))
        if changed or merged:
            self._events.emit(MessagesAdded(thread=thread))
        return changed or merged

    def add_message_to_thread(self, thread_id: Any, message: MessageRecord) -> bool:
        return self.add_messages_to_thread(thread_id, [message])

    def remove_thread(self, thread_id: Any) -> Thread:
        """Drop a thread.

        Raises:
            ThreadNotFoundError: If the thread doesn't exist.
        """
        thread = self.require_thread(thread_id)
        del self.threads[thread.id]
        self._events.emit(ThreadRemoved(thread_id=thread.id))
        return thread

    def prune(self, keep_ids: Iterable[str]) -> list[str]:
        """Remove every thread whose id isn't in keep_ids.

        Returns:
            The removed ids.
        """
        keep = {str(i) for i in keep_ids}
        removed = [thread_id for thread_id in self.threads if thread_id not in keep]
        for thread_id in removed:
            self.remove_thread(thread_id)
        if removed:
            logger.info(f"Pruned {len(removed)} threads no longer on the device")
        return removed

    def clear(self) -> None:
        """Drop every thread and reset the watermark."""
        for thread_id in list(self.threads):
            self.remove_thread(thread_id)
        self.last_updated = NO_TIMESTAMP

    # Paging

    def get_page(
        self,
        thread_id: Any,
        max_count: Optional[int] = None,
        before_timestamp: Optional[int] = None,
    ) -> MessagePage:
        """Read a page of a thread, asking the peer for more if it comes up short.

        When max_count is given and fewer messages are cached below the
        boundary, and the thread may still have older history, a
        ConversationRequest is emitted to request subscribers. Its range
        starts one millisecond before the oldest message returned, so the
        reply doesn't repeat what is already cached.

        Args:
            thread_id: Thread to read.
            max_count: Page size.
            before_timestamp: Exclusive upper bound on message date.

        Returns:
            The page, including the emitted request if there was one.

        Raises:
            ThreadNotFoundError: If the thread doesn't exist.
        """
        thread = self.require_thread(thread_id)
        messages = thread.get_messages(max_count, before_timestamp)

        request = None
        if (
            max_count is not None
            and len(messages) < max_count
            and thread.has_more_messages
        ):
            if messages:
                range_start = messages[0].date - 1
            else:
                boundary = before_timestamp if before_timestamp is not None else now_ms()
                range_start = boundary - 1

            logger.debug(
                f"Thread {thread.id}: only {len(messages)} of {max_count} cached, "
                f"requesting more before {range_start}"
            )
            request = ConversationRequest(
                thread_id=thread.id,
                number_to_request=max_count,
                range_start_timestamp=range_start,
            )
            self._requests.emit(request)

        return MessagePage(
            thread_id=thread.id,
            messages=messages,
            has_more_messages=thread.has_more_messages,
            fetch_request=request,
        )

    def get_messages_for_thread(
        self,
        thread_id: Any,
        max_count: Optional[int] = None,
        before_timestamp: Optional[int] = None,
    ) -> list[Message]:
        """Same as get_page, returning only the messages."""
        return self.get_page(thread_id, max_count, before_timestamp).messages

    def cursor(self, thread_id: Any, page_size: int) -> ThreadCursor:
        """Open a backward pager over one thread.

        Raises:
            ThreadNotFoundError: If the thread doesn't exist.
        """
        self.require_thread(thread_id)
        return ThreadCursor(self, str(thread_id), page_size)
