"""Sync protocol: merges device batches into the store and asks for more.

The paired device answers requests with ``kdeconnect.sms.messages`` packets
carrying a list of message records. A batch whose records all share one
thread id is a page of that thread's history (or a newly arrived message);
a batch spanning several threads is a digest holding the latest message of
every conversation the device still has.
"""

import logging
import threading
from typing import Any, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from models.config import SyncConfig
from models.cursor import MessagePage, ThreadCursor
from models.exceptions import CachePersistenceError
from models.message import Address, Message, MessageBox, is_real_address
from models.persistence import SnapshotFile
from models.requests import (
    ConversationRequest,
    ConversationsRequest,
    SendMessageRequest,
)
from models.store import ThreadStore
from models.thread import now_ms
from models.transport import Transport

logger = logging.getLogger(__name__)

MESSAGES_PACKET = "kdeconnect.sms.messages"


class ReconcileResult(BaseModel):
    """What a reconciliation did.

    Args:
        kind: "empty", "page" or "digest".
        thread_ids: Threads the batch touched, in first-seen order.
        created: Threads created by this batch.
        pruned: Threads removed because the digest no longer lists them.
        changed: Whether any thread changed.
        skipped: Records dropped because they failed validation.
    """

    kind: Literal["empty", "page", "digest"]
    thread_ids: list[str] = Field(default_factory=list)
    created: list[str] = Field(default_factory=list)
    pruned: list[str] = Field(default_factory=list)
    changed: bool = False
    skipped: int = 0


class SyncReconciler:
    """Single entry point for everything that mutates the cache.

    Calls are serialized, so one batch is fully merged, and the snapshot
    written, before the next is looked at. Requests for more history raised
    by page queries are forwarded to the transport as they happen.

    Args:
        store: The cache to reconcile into.
        transport: Where upstream requests go.
        config: Engine settings.
        snapshot: Cache file, or None for an in-memory cache.
    """

    def __init__(
        self,
        store: ThreadStore,
        transport: Transport,
        config: Optional[SyncConfig] = None,
        snapshot: Optional[SnapshotFile] = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.config = config or SyncConfig()
        self.snapshot = snapshot
        self._lock = threading.RLock()
        self._unsubscribe_requests = store.subscribe_requests(self._on_conversation_requested)

    def close(self) -> None:
        """Detach from the store."""
        self._unsubscribe_requests()

    # Inbound

    def handle_packet(self, packet: dict[str, Any]) -> Optional[ReconcileResult]:
        """Route a received packet.

        Args:
            packet: A decoded packet with ``type`` and ``body``.

        Returns:
            The reconciliation result, or None for packets this engine
            doesn't handle.
        """
        packet_type = packet.get("type")
        if packet_type != MESSAGES_PACKET:
            logger.debug(f"Ignoring packet of type {packet_type}")
            return None

        body = packet.get("body") or {}
        return self.reconcile(body.get("messages") or [])

    def reconcile(self, records: Iterable[Union[Message, dict[str, Any]]]) -> ReconcileResult:
        """Merge one batch from the device into the store.

        Args:
            records: Raw message records (or Messages) from one packet.

        Returns:
            Summary of what changed.

        Raises:
            CachePersistenceError: If the snapshot couldn't be written. The
                merge has already been applied in memory when this is raised.
        """
        with self._lock:
            messages, skipped = self._normalize(records)
            if not messages:
                return ReconcileResult(kind="empty", skipped=skipped)

            thread_ids = list(dict.fromkeys(m.thread_id for m in messages))
            if len(thread_ids) == 1:
                result = self._handle_thread(messages)
            else:
                result = self._handle_digest(messages, thread_ids)
            result.skipped = skipped

            self._persist()
            return result

    def _normalize(
        self, records: Iterable[Union[Message, dict[str, Any]]]
    ) -> tuple[list[Message], int]:
        messages = []
        skipped = 0
        for raw in records:
            if isinstance(raw, Message):
                real = [a for a in raw.addresses if is_real_address(a)]
                if len(real) != len(raw.addresses):
                    raw.addresses = real
                messages.append(raw)
                continue

            if not isinstance(raw, dict):
                logger.warning(f"Skipping non-object message record: {raw!r}")
                skipped += 1
                continue

            data = dict(raw)
            if isinstance(data.get("addresses"), list):
                data["addresses"] = [a for a in data["addresses"] if is_real_address(a)]
            try:
                messages.append(Message.model_validate(data))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed message record "
                    f"(thread {raw.get('thread_id')}, date {raw.get('date')}): "
                    f"{e.error_count()} errors"
                )
                skipped += 1
        return messages, skipped

    def _handle_thread(self, messages: list[Message]) -> ReconcileResult:
        thread_id = messages[0].thread_id
        result = ReconcileResult(kind="page", thread_ids=[thread_id])

        if thread_id in self.store:
            result.changed = self.store.add_messages_to_thread(
                thread_id,
                messages,
                detect_history_end=self.config.detect_history_end,
            )
        else:
            self._create_thread(messages, result)

        logger.debug(
            f"Merged page of {len(messages)} messages into thread {thread_id} "
            f"(changed={result.changed})"
        )
        return result

    def _handle_digest(self, messages: list[Message], thread_ids: list[str]) -> ReconcileResult:
        result = ReconcileResult(kind="digest", thread_ids=thread_ids)
        result.pruned = self.store.prune(thread_ids)

        for message in messages:
            if message.thread_id in self.store:
                if self.store.add_messages_to_thread(
                    message.thread_id,
                    [message],
                    mark_read=message.is_read,
                ):
                    result.changed = True
            else:
                self._create_thread([message], result)

        if result.pruned:
            result.changed = True

        self.store.last_updated = now_ms()
        logger.info(
            f"Digest of {len(thread_ids)} threads: {len(result.created)} new, "
            f"{len(result.pruned)} pruned"
        )
        return result

    def _create_thread(self, messages: list[Message], result: ReconcileResult) -> None:
        thread_id = messages[0].thread_id
        if not any(MessageBox.is_valid(m.type) for m in messages):
            logger.debug(f"Not creating thread {thread_id}: no records with a valid type")
            return
        self.store.create_thread(messages)
        result.created.append(thread_id)
        result.changed = True

    def _persist(self) -> None:
        if self.snapshot is None:
            return
        try:
            self.snapshot.save(self.store)
        except CachePersistenceError as e:
            logger.error(f"{e}; keeping in-memory cache")
            raise

    # Outbound

    def connect(self) -> ConversationsRequest:
        """Ask the device for conversations changed since the last digest.

        Called when the device connects.

        Returns:
            The request handed to the transport.
        """
        request = ConversationsRequest(range_start_timestamp=self.store.last_updated)
        logger.info(f"Requesting conversations newer than {self.store.last_updated}")
        self.transport.send(request)
        return request

    def request_conversation(
        self,
        thread_id: Any,
        number_to_request: Optional[int] = None,
        range_start_timestamp: Optional[int] = None,
    ) -> ConversationRequest:
        """Ask the device for a page of one thread.

        Args:
            thread_id: Thread to fetch.
            number_to_request: Page size (defaults to config.fetch_number).
            range_start_timestamp: Only older messages are wanted (defaults
                to now).

        Returns:
            The request handed to the transport.
        """
        request = ConversationRequest(
            thread_id=thread_id,
            number_to_request=number_to_request or self.config.fetch_number,
            range_start_timestamp=(
                range_start_timestamp if range_start_timestamp is not None else now_ms()
            ),
        )
        self.transport.send(request)
        return request

    def _on_conversation_requested(self, request: ConversationRequest) -> None:
        logger.debug(
            f"Requesting {request.number_to_request} messages of thread "
            f"{request.thread_id} before {request.range_start_timestamp}"
        )
        self.transport.send(request)

    def send_message(
        self, addresses: list[Union[Address, str]], body: str
    ) -> SendMessageRequest:
        """Ask the device to send an SMS.

        Args:
            addresses: Recipients, as Address objects or plain strings.
            body: Message text.

        Returns:
            The request handed to the transport.
        """
        recipients = [a if isinstance(a, Address) else Address(address=a) for a in addresses]
        request = SendMessageRequest(addresses=recipients, body=body)
        self.transport.send(request)
        return request

    def clear_cache(self) -> ConversationsRequest:
        """Forget every cached thread and start a full resync.

        The resync request is sent even when the emptied snapshot can't be
        written.

        Returns:
            The full-digest request handed to the transport.

        Raises:
            CachePersistenceError: If the emptied snapshot couldn't be written.
        """
        with self._lock:
            self.store.clear()
            logger.info("Cleared conversation cache")
            try:
                self._persist()
            finally:
                request = self.connect()
            return request

    # Reading

    def get_page(
        self,
        thread_id: Any,
        max_count: Optional[int] = None,
        before_timestamp: Optional[int] = None,
    ) -> MessagePage:
        """Page a thread, defaulting the page size to config.fetch_number.

        Raises:
            ThreadNotFoundError: If the thread doesn't exist.
        """
        with self._lock:
            count = max_count if max_count is not None else self.config.fetch_number
            return self.store.get_page(thread_id, count, before_timestamp)

    def cursor(self, thread_id: Any, page_size: Optional[int] = None) -> ThreadCursor:
        """Open a backward pager over one thread.

        Raises:
            ThreadNotFoundError: If the thread doesn't exist.
        """
        return self.store.cursor(thread_id, page_size or self.config.fetch_number)
