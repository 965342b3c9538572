"""Seam between the sync engine and whatever talks to the paired device."""

import logging
import threading
from collections import deque
from typing import Protocol

from models.requests import AnyUpstreamRequest

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can take an upstream request off the engine's hands.

    ``send`` must not block on a reply; responses come back later through
    SyncReconciler.reconcile, or never.
    """

    def send(self, request: AnyUpstreamRequest) -> None: ...


class Outbox:
    """Transport that queues requests until a device bridge drains them.

    Used by the HTTP service: the bridge process polls the drain endpoint and
    forwards each request to the device.

    Args:
        maxlen: Oldest requests are dropped beyond this many pending.
    """

    def __init__(self, maxlen: int = 1000) -> None:
        self._pending: deque[AnyUpstreamRequest] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def send(self, request: AnyUpstreamRequest) -> None:
        with self._lock:
            if len(self._pending) == self._pending.maxlen:
                logger.warning("Outbox full, dropping oldest pending request")
            self._pending.append(request)
        logger.debug(f"Queued {request.packet_type}")

    def drain(self) -> list[AnyUpstreamRequest]:
        """Remove and return every pending request, oldest first."""
        with self._lock:
            requests = list(self._pending)
            self._pending.clear()
        return requests
