"""Change notifications published by the thread store.

Consumers subscribe a plain callback and receive one of four event types,
distinguished by their ``kind`` field. The UI re-reads thread contents
through the paging API rather than receiving per-field updates.
"""

import logging
from typing import Annotated, Callable, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, Field

from models.thread import Thread

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ThreadAdded(BaseModel):
    """A thread was created in the store."""

    kind: Literal["thread-added"] = "thread-added"
    thread: Thread


class ThreadRemoved(BaseModel):
    """A thread was pruned from the store."""

    kind: Literal["thread-removed"] = "thread-removed"
    thread_id: str


class MessagesAdded(BaseModel):
    """Messages were added to, or updated in, an existing thread."""

    kind: Literal["messages-added"] = "messages-added"
    thread: Thread


class MessagesRemoved(BaseModel):
    """Messages were discarded from a thread (placeholder replacement)."""

    kind: Literal["messages-removed"] = "messages-removed"
    thread: Thread


StoreEvent = Annotated[
    Union[ThreadAdded, ThreadRemoved, MessagesAdded, MessagesRemoved],
    Field(discriminator="kind"),
]


class EventEmitter(Generic[T]):
    """Synchronous fan-out of events to registered callbacks.

    Callbacks run in subscription order on the emitting thread. A callback
    that raises is logged and the remaining callbacks still run.
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback.

        Args:
            callback: Called with each emitted event.

        Returns:
            A function that removes this subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        """Remove a callback; unknown callbacks are ignored."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, event: T) -> None:
        """Deliver an event to every subscriber."""
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    f"Subscriber {callback!r} failed handling {type(event).__name__}"
                )

    def clear(self) -> None:
        self._subscribers.clear()
