"""Conversation sub-client for the SMS sync API.

This module provides ThreadsClient for reading the conversation cache
(/threads/*).

This is an internal module. Import from `client` instead.
"""

from typing import Iterator

from client._base import BaseClient
from client.models import MessagePageResponse, ThreadListResponse, ThreadSummary


class ThreadsClient(BaseClient):
    """Client for the conversation endpoints (/threads/*).

    Example:
        with SMSSyncClient() as client:
            for summary in client.threads.list_threads().threads:
                print(summary.thread_id, summary.unread_count)

            page = client.threads.messages("42", max_count=20)
            if page.fetch_requested:
                print("Older history requested from the phone")
    """

    _BASE_PATH = "/threads"

    def list_threads(self) -> ThreadListResponse:
        """List cached conversations, most recently active first.

        Returns:
            Thread summaries and the digest watermark.
        """
        data = self._get(self._BASE_PATH)
        return ThreadListResponse(**data)

    def get(self, thread_id: str) -> ThreadSummary:
        """Get one conversation's summary.

        Args:
            thread_id: Conversation key.

        Returns:
            The thread summary.

        Raises:
            NotFoundError: If the thread isn't cached.
        """
        data = self._get(f"{self._BASE_PATH}/{thread_id}")
        return ThreadSummary(**data)

    def lookup(self, addresses: list[str]) -> ThreadSummary:
        """Find the conversation with exactly these participants.

        Args:
            addresses: Participant phone numbers or addresses.

        Returns:
            The matching thread summary.

        Raises:
            NotFoundError: If no cached thread has these participants.
        """
        data = self._get(f"{self._BASE_PATH}/lookup", params={"address": addresses})
        return ThreadSummary(**data)

    def messages(
        self,
        thread_id: str,
        max_count: int | None = None,
        before: int | None = None,
    ) -> MessagePageResponse:
        """Read one page of a conversation.

        Args:
            thread_id: Conversation key.
            max_count: Page size (server default when None).
            before: Exclusive upper bound on message date in ms (now when None).

        Returns:
            The page. fetch_requested is set when the service asked the phone
            for more history; poll again once it has arrived.

        Raises:
            NotFoundError: If the thread isn't cached.
        """
        data = self._get(
            f"{self._BASE_PATH}/{thread_id}/messages",
            params={"max_count": max_count, "before": before},
        )
        return MessagePageResponse(**data)

    def iter_pages(
        self, thread_id: str, max_count: int | None = None
    ) -> Iterator[MessagePageResponse]:
        """Walk a conversation backwards from the newest cached message.

        Stops at the first empty page, which happens when the cache is
        exhausted, whether or not the phone has been asked for more.

        Args:
            thread_id: Conversation key.
            max_count: Page size.

        Yields:
            Pages, newest first.
        """
        before = None
        while True:
            page = self.messages(thread_id, max_count=max_count, before=before)
            if not page.messages:
                return
            yield page
            before = page.next_before
