"""Conversation thread: an ordered, date-deduplicated message log."""

import logging
import time
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.message import Address, Message, MessageBox, MessageStatus

logger = logging.getLogger(__name__)

NO_TIMESTAMP = -1

MessageRecord = Union[Message, dict[str, Any]]


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Thread(BaseModel):
    """One conversation's cached messages.

    Messages are kept sorted by date, oldest first, with at most one message
    per date. The cached extremes are recomputed after every mutation.

    Args:
        id: Conversation key.
        has_more_messages: Whether the peer may hold older history.
        oldest_cached_timestamp: Smallest cached date, or -1 when empty.
        newest_cached_timestamp: Largest cached date, or -1 when empty.
        messages: Cached messages, ascending by date.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Conversation key")
    has_more_messages: bool = Field(
        default=True,
        alias="hasMoreMessages",
        description="Whether older history may exist on the peer",
    )
    oldest_cached_timestamp: int = Field(
        default=NO_TIMESTAMP,
        alias="oldestCachedTimestamp",
        description="Smallest cached date",
    )
    newest_cached_timestamp: int = Field(
        default=NO_TIMESTAMP,
        alias="newestCachedTimestamp",
        description="Largest cached date",
    )
    messages: list[Message] = Field(
        default_factory=list,
        description="Cached messages, ascending by date",
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @model_validator(mode="after")
    def restore_invariants(self) -> "Thread":
        # Snapshot extremes are advisory; the messages are the source of truth.
        if len({m.date for m in self.messages}) != len(self.messages):
            by_date = {m.date: m for m in self.messages}
            self.messages = list(by_date.values())
        self._refresh()
        return self

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def is_empty(self) -> bool:
        return not self.messages

    @property
    def is_placeholder(self) -> bool:
        """True while the thread holds only the stub announcing it."""
        return len(self.messages) == 1 and self.messages[0].is_placeholder

    @property
    def first_message(self) -> Optional[Message]:
        return self.messages[0] if self.messages else None

    @property
    def latest_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    @property
    def addresses(self) -> list[Address]:
        """Participants, taken from the newest message."""
        latest = self.latest_message
        return list(latest.addresses) if latest else []

    @property
    def unread_count(self) -> int:
        return sum(1 for m in self.messages if not m.is_read)

    def has_participants(self, addresses: list[Address]) -> bool:
        """Check whether this thread is with exactly these participants.

        Args:
            addresses: Participant addresses to look for.

        Returns:
            True if counts agree and every address matches a participant.
        """
        ours = self.addresses
        if not ours or len(ours) != len(addresses):
            return False
        return all(any(a.matches(b) for b in ours) for a in addresses)

    def get_messages(
        self,
        max_count: Optional[int] = None,
        before_timestamp: Optional[int] = None,
    ) -> list[Message]:
        """Slice the timeline by count and time boundary.

        With neither argument the whole ordered log is returned. Otherwise
        only messages strictly older than ``before_timestamp`` (default: now)
        are kept, and of those the newest ``max_count``, still ascending.

        This never triggers a fetch; see ThreadStore.get_page for that.

        Args:
            max_count: Maximum number of messages to return.
            before_timestamp: Exclusive upper bound on message date.

        Returns:
            A new list of messages in ascending date order.
        """
        if max_count is None and before_timestamp is None:
            return list(self.messages)

        boundary = before_timestamp if before_timestamp is not None else now_ms()
        filtered = [m for m in self.messages if m.date < boundary]

        if max_count is not None:
            if max_count <= 0:
                return []
            filtered = filtered[-max_count:]
        return filtered

    def update(
        self,
        records: Iterable[MessageRecord],
        detect_history_end: bool = False,
    ) -> bool:
        """Merge a batch of message records into the thread.

        Records with an unknown message box are dropped. A record whose date
        is already cached overwrites the fields it carries on the cached
        message; everything else is appended. A lone placeholder message is
        discarded before real data goes in.

        Args:
            records: Messages or raw record dicts for this thread.
            detect_history_end: When True and the batch both brings new dates
                and starts at the oldest cached date, mark the thread as fully
                synced.

        Returns:
            True if the set of messages or any message field changed.

        Raises:
            ValueError: If a record belongs to a different thread.
        """
        incoming = [
            r if isinstance(r, Message) else Message.model_validate(r)
            for r in records
        ]
        if not incoming:
            return False

        for message in incoming:
            if message.thread_id != self.id:
                raise ValueError(
                    f"Message {message.date} belongs to thread {message.thread_id}, "
                    f"not {self.id}"
                )

        valid = [m for m in incoming if MessageBox.is_valid(m.type)]
        dropped = len(incoming) - len(valid)
        if dropped:
            logger.debug(f"Thread {self.id}: dropped {dropped} records with invalid type")
        if not valid:
            return False

        changed = False
        placeholder: Optional[Message] = None
        if self.is_placeholder:
            placeholder = self.messages[0]
            self.messages = []
            changed = True
        elif detect_history_end and self.messages and self.has_more_messages:
            # A batch of dates we already hold is a redelivery, not an answer.
            cached_dates = {m.date for m in self.messages}
            brings_new = any(m.date not in cached_dates for m in valid)
            earliest = min(m.date for m in valid)
            if brings_new and earliest == self.oldest_cached_timestamp:
                logger.debug(f"Thread {self.id}: no more messages on peer")
                self.has_more_messages = False
                changed = True

        cached = {m.date: m for m in self.messages}
        staged: dict[int, Message] = {}
        for message in valid:
            existing = cached.get(message.date) or staged.get(message.date)
            if existing is not None:
                if existing.merge_from(message):
                    changed = True
            else:
                staged[message.date] = message

        if staged:
            self.messages.extend(staged.values())
            changed = True

        self._refresh()

        if (
            placeholder is not None
            and len(self.messages) == 1
            and self.messages[0].model_dump() == placeholder.model_dump()
        ):
            # The stub was re-announced unchanged.
            changed = False

        return changed

    def mark_all_read(self) -> bool:
        """Propagate a read receipt to every cached message.

        Returns:
            True if any message was unread.
        """
        changed = False
        for message in self.messages:
            if not message.is_read:
                message.read = MessageStatus.READ
                changed = True
        return changed

    def to_snapshot(self) -> dict[str, Any]:
        """Serialize to the cache file shape."""
        return self.model_dump(by_alias=True, mode="json")

    def _refresh(self) -> None:
        self.messages.sort(key=lambda m: m.date)
        if self.messages:
            self.oldest_cached_timestamp = self.messages[0].date
            self.newest_cached_timestamp = self.messages[-1].date
        else:
            self.oldest_cached_timestamp = NO_TIMESTAMP
            self.newest_cached_timestamp = NO_TIMESTAMP
