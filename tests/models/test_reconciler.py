"""Unit tests for the SyncReconciler.

These cover batch classification, digest pruning and read propagation,
snapshot writes, and the requests handed to the transport.
"""

from unittest.mock import MagicMock

import pytest

from models.config import SyncConfig
from models.exceptions import CachePersistenceError
from models.message import ADDRESS_TOKEN_SENTINEL, MessageBox, MessageStatus
from models.persistence import SnapshotFile
from models.reconciler import MESSAGES_PACKET, SyncReconciler
from models.requests import ConversationRequest, ConversationsRequest, SendMessageRequest
from models.store import ThreadStore
from models.thread import NO_TIMESTAMP
from tests.fixtures.messages import (
    create_message,
    create_message_record,
    create_placeholder,
    create_store,
)


@pytest.fixture
def reconciler(transport):
    """Reconciler over an empty store with a recording transport."""
    return SyncReconciler(ThreadStore(), transport)


def page(thread_id, dates, **kwargs):
    return [create_message_record(thread_id=thread_id, date=d, **kwargs) for d in dates]


class TestReconcileClassification:
    """Test how batches are told apart."""

    def test_empty_batch(self, reconciler):
        result = reconciler.reconcile([])

        assert result.kind == "empty"
        assert result.changed is False

    def test_single_thread_creates_thread(self, reconciler):
        """Verify a page for an unknown thread creates it."""
        result = reconciler.reconcile(page(42, [10, 20]))

        assert result.kind == "page"
        assert result.thread_ids == ["42"]
        assert result.created == ["42"]
        assert result.changed is True
        assert [m.date for m in reconciler.store.get_thread("42").messages] == [10, 20]

    def test_single_thread_merges_into_existing(self, reconciler):
        reconciler.reconcile(page(1, [10]))

        result = reconciler.reconcile(page(1, [20]))

        assert result.created == []
        assert result.changed is True
        assert reconciler.store.get_thread("1").message_count == 2

    def test_numeric_and_string_ids_are_one_thread(self, reconciler):
        """Verify 7 and "7" are classified as the same thread."""
        batch = [
            create_message_record(thread_id=7, date=10),
            create_message_record(thread_id="7", date=20),
        ]

        result = reconciler.reconcile(batch)

        assert result.kind == "page"
        assert reconciler.store.thread_count == 1

    def test_redelivered_page_is_no_change(self, reconciler):
        reconciler.reconcile(page(1, [10, 20]))

        result = reconciler.reconcile(page(1, [10, 20]))

        assert result.changed is False

    def test_sentinel_addresses_stripped(self, reconciler):
        record = create_message_record(
            thread_id=1, addresses=["+15551234567", ADDRESS_TOKEN_SENTINEL]
        )
        record["addresses"].append({"address": None})

        reconciler.reconcile([record])

        stored = reconciler.store.get_thread("1").messages[0]
        assert [a.address for a in stored.addresses] == ["+15551234567"]

    def test_sentinel_addresses_stripped_from_message_objects(self, reconciler):
        message = create_message(thread_id=1, addresses=[ADDRESS_TOKEN_SENTINEL])

        reconciler.reconcile([message])

        assert reconciler.store.get_thread("1").messages[0].addresses == []

    def test_non_list_addresses_skipped(self, reconciler):
        """Verify a record with a scalar address field doesn't sink the batch."""
        batch = page(1, [10]) + [{"thread_id": 1, "date": 20, "type": 1, "addresses": 7}]

        result = reconciler.reconcile(batch)

        assert result.skipped == 1
        assert reconciler.store.get_thread("1").message_count == 1

    def test_only_invalid_types_creates_nothing(self, reconciler):
        result = reconciler.reconcile(page(1, [10, 20], type=9))

        assert result.kind == "page"
        assert result.created == []
        assert result.changed is False
        assert "1" not in reconciler.store

    def test_malformed_records_skipped(self, reconciler):
        batch = page(1, [10]) + [{"thread_id": 1, "date": "soon"}, "junk"]

        result = reconciler.reconcile(batch)

        assert result.skipped == 2
        assert reconciler.store.get_thread("1").message_count == 1

    def test_history_end_detection_follows_config(self, transport):
        store = create_store({"1": [10, 20, 30]})
        enabled = SyncReconciler(
            store, transport, config=SyncConfig(detect_history_end=True)
        )
        enabled.reconcile(page("1", [10, 15]))
        assert store.get_thread("1").has_more_messages is False

        store = create_store({"1": [10, 20, 30]})
        disabled = SyncReconciler(
            store, transport, config=SyncConfig(detect_history_end=False)
        )
        disabled.reconcile(page("1", [10, 15]))
        assert store.get_thread("1").has_more_messages is True


class TestRedeliveredReplies:
    """Test that duplicate answers to history requests are harmless."""

    @pytest.mark.parametrize("detect_history_end", [False, True])
    def test_duplicate_reply_keeps_paging(self, transport, detect_history_end):
        """Verify a reply delivered twice leaves the thread pageable."""
        store = create_store({"1": [100, 110, 120]})
        reconciler = SyncReconciler(
            store, transport, config=SyncConfig(detect_history_end=detect_history_end)
        )

        reconciler.get_page("1", 25)
        reconciler.get_page("1", 25)
        assert [r.range_start_timestamp for r in transport.sent] == ["99", "99"]

        reply = page("1", [50, 60, 70])
        reconciler.reconcile(reply)
        second = reconciler.reconcile(reply)

        thread = store.get_thread("1")
        assert second.changed is False
        assert thread.has_more_messages is True
        assert reconciler.get_page("1", 25).fetch_request is not None

    def test_repushed_lone_message_keeps_paging(self, transport):
        store = create_store({"1": [100]})
        reconciler = SyncReconciler(
            store, transport, config=SyncConfig(detect_history_end=True)
        )

        reconciler.reconcile(page("1", [100], body="m100"))

        assert store.get_thread("1").has_more_messages is True

    def test_default_config_never_ends_history(self, transport):
        store = create_store({"1": [10, 20, 30]})
        reconciler = SyncReconciler(store, transport, config=SyncConfig(_env_file=None))

        reconciler.reconcile(page("1", [10, 15]))

        assert store.get_thread("1").has_more_messages is True


class TestDigest:
    """Test multi-thread digests."""

    def test_prune_threads_missing_from_digest(self, transport):
        """Verify threads absent from the digest are removed."""
        store = create_store()
        reconciler = SyncReconciler(store, transport)
        removed = []
        store.subscribe(lambda e: removed.append(e.thread_id) if e.kind == "thread-removed" else None)

        result = reconciler.reconcile(
            [
                create_message_record(thread_id="A", date=30, body="m30"),
                create_message_record(thread_id="C", date=55, body="m55"),
            ]
        )

        assert result.kind == "digest"
        assert result.pruned == ["B"]
        assert set(store.threads) == {"A", "C"}
        assert removed == ["B"]

    def test_digest_skips_new_thread_with_invalid_type(self, reconciler):
        result = reconciler.reconcile(
            [
                create_message_record(thread_id="A", date=10),
                create_message_record(thread_id="B", date=20, type=9),
            ]
        )

        assert result.created == ["A"]
        assert "B" not in reconciler.store

    def test_digest_creates_new_threads(self, reconciler):
        result = reconciler.reconcile(
            [
                create_message_record(thread_id=1, date=100),
                create_message_record(thread_id=2, date=200),
            ]
        )

        assert result.created == ["1", "2"]
        assert reconciler.store.get_thread("2").has_more_messages is True

    def test_read_receipt_propagates_to_whole_thread(self, transport):
        store = create_store({"A": [10, 20, 30], "B": [15]})
        reconciler = SyncReconciler(store, transport)

        reconciler.reconcile(
            [
                create_message_record(thread_id="A", date=40, read=MessageStatus.READ),
                create_message_record(thread_id="B", date=15, body="m15"),
            ]
        )

        assert store.get_thread("A").unread_count == 0
        assert store.get_thread("A").message_count == 4
        assert store.get_thread("B").unread_count == 1

    def test_unread_entry_still_merged(self, transport):
        store = create_store({"A": [10], "B": [15]})
        reconciler = SyncReconciler(store, transport)

        reconciler.reconcile(
            [
                create_message_record(thread_id="A", date=50, body="new"),
                create_message_record(thread_id="B", date=15, body="m15"),
            ]
        )

        assert store.get_thread("A").latest_message.body == "new"

    def test_digest_advances_watermark(self, reconciler):
        assert reconciler.store.last_updated == NO_TIMESTAMP

        reconciler.reconcile(
            [
                create_message_record(thread_id=1, date=100),
                create_message_record(thread_id=2, date=200),
            ]
        )

        assert reconciler.store.last_updated > 0

    def test_page_leaves_watermark(self, reconciler):
        reconciler.reconcile(page(1, [10]))

        assert reconciler.store.last_updated == NO_TIMESTAMP

    def test_placeholder_digest_then_real_page(self, reconciler):
        """Verify a digest stub is replaced by the first real page."""
        reconciler.reconcile([create_placeholder(thread_id=1), create_placeholder(thread_id=2)])
        assert reconciler.store.get_thread("1").is_placeholder

        reconciler.reconcile(page(1, [100, 200]))

        thread = reconciler.store.get_thread("1")
        assert [m.date for m in thread.messages] == [100, 200]
        assert all(m.type != MessageBox.ALL for m in thread.messages)


class TestPersistence:
    """Test snapshot writes after reconciliation."""

    def test_snapshot_written_after_reconcile(self, tmp_path, transport):
        snapshot = SnapshotFile(tmp_path / "cache.json")
        reconciler = SyncReconciler(ThreadStore(), transport, snapshot=snapshot)

        reconciler.reconcile(page(1, [10, 20]))

        restored = snapshot.load()
        assert restored.get_thread("1").message_count == 2

    def test_write_failure_keeps_merge(self, transport):
        """Verify a failed write surfaces without undoing the merge."""
        snapshot = MagicMock(spec=SnapshotFile)
        snapshot.save.side_effect = CachePersistenceError("/cache.json", "disk full")
        reconciler = SyncReconciler(ThreadStore(), transport, snapshot=snapshot)

        with pytest.raises(CachePersistenceError):
            reconciler.reconcile(page(1, [10]))

        assert reconciler.store.get_thread("1").message_count == 1

    def test_empty_batch_not_persisted(self, transport):
        snapshot = MagicMock(spec=SnapshotFile)
        reconciler = SyncReconciler(ThreadStore(), transport, snapshot=snapshot)

        reconciler.reconcile([])

        snapshot.save.assert_not_called()


class TestPackets:
    """Test routing of whole packets."""

    def test_messages_packet(self, reconciler):
        result = reconciler.handle_packet(
            {"type": MESSAGES_PACKET, "body": {"messages": page(1, [10])}}
        )

        assert result is not None
        assert result.kind == "page"

    def test_other_packets_ignored(self, reconciler):
        assert reconciler.handle_packet({"type": "kdeconnect.ping", "body": {}}) is None
        assert reconciler.store.thread_count == 0

    def test_packet_without_messages(self, reconciler):
        result = reconciler.handle_packet({"type": MESSAGES_PACKET, "body": {}})

        assert result.kind == "empty"


class TestOutbound:
    """Test requests handed to the transport."""

    def test_connect_requests_since_watermark(self, reconciler, transport):
        reconciler.store.last_updated = 1234

        request = reconciler.connect()

        assert isinstance(request, ConversationsRequest)
        assert request.range_start_timestamp == 1234
        assert transport.sent == [request]

    def test_first_connect_requests_everything(self, reconciler, transport):
        reconciler.connect()

        assert transport.sent[0].range_start_timestamp == NO_TIMESTAMP

    def test_short_page_forwarded_to_transport(self, reconciler, transport):
        reconciler.reconcile(page(1, [10, 20, 30]))

        result = reconciler.get_page("1")

        assert result.fetch_requested
        assert len(transport.sent) == 1
        request = transport.sent[0]
        assert isinstance(request, ConversationRequest)
        assert request.number_to_request == 25
        assert int(request.range_start_timestamp) < 10

    def test_page_size_from_config(self, transport):
        reconciler = SyncReconciler(ThreadStore(), transport, config=SyncConfig(fetch_number=2))
        reconciler.reconcile(page(1, [10, 20, 30]))

        result = reconciler.get_page("1")

        assert [m.date for m in result.messages] == [20, 30]
        assert transport.sent == []

    def test_request_conversation(self, reconciler, transport):
        request = reconciler.request_conversation(5, 10, 1000)

        assert request.to_body() == {
            "threadID": "5",
            "numberToRequest": 10,
            "rangeStartTimestamp": "1000",
        }
        assert transport.sent == [request]

    def test_send_message(self, reconciler, transport):
        request = reconciler.send_message(["+15551234567"], "On my way")

        assert isinstance(request, SendMessageRequest)
        assert request.to_body()["phoneNumber"] == "+15551234567"
        assert transport.sent == [request]

    def test_clear_cache(self, transport):
        store = create_store()
        store.last_updated = 999
        reconciler = SyncReconciler(store, transport)

        request = reconciler.clear_cache()

        assert store.thread_count == 0
        assert request.range_start_timestamp == NO_TIMESTAMP

    def test_clear_cache_resyncs_when_write_fails(self, transport):
        """Verify the full resync goes out even if the emptied cache can't be saved."""
        snapshot = MagicMock(spec=SnapshotFile)
        snapshot.save.side_effect = CachePersistenceError("/cache.json", "disk full")
        reconciler = SyncReconciler(create_store(), transport, snapshot=snapshot)

        with pytest.raises(CachePersistenceError):
            reconciler.clear_cache()

        assert reconciler.store.thread_count == 0
        assert len(transport.sent) == 1
        assert isinstance(transport.sent[0], ConversationsRequest)
        assert transport.sent[0].range_start_timestamp == NO_TIMESTAMP

    def test_close_stops_forwarding(self, reconciler, transport):
        reconciler.reconcile(page(1, [10]))
        reconciler.close()

        reconciler.get_page("1")

        assert transport.sent == []

    def test_cursor_uses_fetch_number(self, transport):
        reconciler = SyncReconciler(ThreadStore(), transport, config=SyncConfig(fetch_number=2))
        reconciler.reconcile(page(1, [10, 20, 30]))

        cursor = reconciler.cursor("1")

        assert cursor.page_size == 2
        assert [m.date for m in cursor.next_older_page()] == [20, 30]
