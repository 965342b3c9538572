"""Unit tests for backward paging with ThreadCursor."""

import pytest

from models.cursor import MessagePage, ThreadCursor
from models.exceptions import ThreadNotFoundError
from tests.fixtures.messages import create_message_record, create_store


def dates(messages):
    return [m.date for m in messages]


@pytest.fixture
def paged_store():
    """Store with thread "1" holding seven messages."""
    return create_store({"1": [10, 20, 30, 40, 50, 60, 70]})


class TestThreadCursor:
    """Test walking a thread from newest to oldest."""

    def test_pages_walk_backwards(self, paged_store):
        cursor = paged_store.cursor("1", 3)

        assert dates(cursor.next_older_page()) == [50, 60, 70]
        assert dates(cursor.next_older_page()) == [20, 30, 40]
        assert dates(cursor.next_older_page()) == [10]
        assert cursor.boundary == 10

    def test_exhausted_cache_returns_empty_and_requests_more(self, paged_store):
        requests = []
        paged_store.subscribe_requests(requests.append)
        cursor = paged_store.cursor("1", 7)

        cursor.next_older_page()
        assert requests == []

        assert cursor.next_older_page() == []
        assert len(requests) == 1
        assert requests[0].range_start_timestamp == "9"

    def test_picks_up_history_that_arrives_later(self, paged_store):
        cursor = paged_store.cursor("1", 7)
        cursor.next_older_page()
        assert cursor.next_older_page() == []

        paged_store.add_messages_to_thread(
            "1", [create_message_record(thread_id="1", date=d) for d in (3, 6)]
        )

        assert dates(cursor.next_older_page()) == [3, 6]

    def test_has_more(self, paged_store):
        cursor = paged_store.cursor("1", 4)
        assert cursor.has_more()

        paged_store.get_thread("1").has_more_messages = False
        cursor.next_older_page()
        assert cursor.has_more()
        cursor.next_older_page()
        assert not cursor.has_more()

    def test_has_more_false_after_prune(self, paged_store):
        cursor = paged_store.cursor("1", 4)
        paged_store.remove_thread("1")

        assert not cursor.has_more()
        with pytest.raises(ThreadNotFoundError):
            cursor.next_older_page()

    def test_reset(self, paged_store):
        cursor = paged_store.cursor("1", 2)
        cursor.next_older_page()
        cursor.next_older_page()

        cursor.reset()

        assert cursor.boundary is None
        assert dates(cursor.next_older_page()) == [60, 70]

    def test_page_size_validated(self, paged_store):
        with pytest.raises(ValueError):
            ThreadCursor(paged_store, "1", 0)

    def test_cursor_for_missing_thread(self, paged_store):
        with pytest.raises(ThreadNotFoundError):
            paged_store.cursor("nope", 5)


class TestMessagePage:
    """Test the page result model."""

    def test_fetch_requested(self):
        assert not MessagePage(thread_id="1").fetch_requested
