"""Main SMS sync client class.

SMSSyncClient provides namespaced access to the API through sub-client
properties (client.threads, client.sync).

Example:
    Usage::

        from client import SMSSyncClient

        with SMSSyncClient(base_url="http://localhost:8000") as client:
            client.sync.connect()
            threads = client.threads.list_threads()
"""

from typing import Any

from client._http import HTTPClient
from client._sync import SyncClient
from client._threads import ThreadsClient
from client.models import HealthResponse


class SMSSyncClient:
    """Client for the SMS sync REST API.

    Supports the context manager protocol for automatic resource cleanup.

    Example:
        Manual lifecycle management::

            client = SMSSyncClient()
            try:
                page = client.threads.messages("42")
            finally:
                client.close()
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: The base URL of the sync service.
            timeout: Request timeout in seconds.
            retry_enabled: Whether to automatically retry on transient failures.
                Retries on connection errors, timeouts, and HTTP 502/503/504
                with exponential backoff.
            max_retries: Maximum number of retry attempts when retry is enabled.
            transport: Custom HTTP transport (e.g., MockTransport for testing).
        """
        self._base_url = base_url
        self._http = HTTPClient(
            base_url=base_url,
            timeout=timeout,
            retry_enabled=retry_enabled,
            max_retries=max_retries,
            transport=transport,
        )

        self._threads: ThreadsClient | None = None
        self._sync: SyncClient | None = None

    def __enter__(self) -> "SMSSyncClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the client and release resources."""
        self._http.close()

    @property
    def base_url(self) -> str:
        """The base URL of the sync service."""
        return self._base_url

    @property
    def threads(self) -> ThreadsClient:
        """Access conversation endpoints (/threads/*)."""
        if self._threads is None:
            self._threads = ThreadsClient(self._http)
        return self._threads

    @property
    def sync(self) -> SyncClient:
        """Access device bridge endpoints (/sync/*)."""
        if self._sync is None:
            self._sync = SyncClient(self._http)
        return self._sync

    def health(self) -> HealthResponse:
        """Check that the service is up."""
        return HealthResponse(**self._http.get("/health"))
