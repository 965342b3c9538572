"""Device bridge sub-client for the SMS sync API.

This module provides SyncClient for feeding device packets into the service
and collecting the requests it wants sent back (/sync/*).

This is an internal module. Import from `client` instead.
"""

from typing import Any

from client._base import BaseClient
from client.models import (
    OutboxResponse,
    PacketResponse,
    ReconcileResult,
    SyncStatusResponse,
    UpstreamRequestModel,
)


class SyncClient(BaseClient):
    """Client for the sync endpoints (/sync/*).

    Example:
        with SMSSyncClient() as client:
            client.sync.connect()
            for request in client.sync.drain_outbox().requests:
                bridge.send(request.type, request.body)

            client.sync.push_packet("kdeconnect.sms.messages", {"messages": records})
    """

    _BASE_PATH = "/sync"

    def push_messages(self, messages: list[dict[str, Any]]) -> ReconcileResult:
        """Reconcile a batch of raw message records.

        Args:
            messages: Message records as received from the phone.

        Returns:
            What the batch changed.

        Raises:
            ServerError: If the cache couldn't be written (error_type
                "CachePersistenceError"); the batch was still merged.
        """
        data = self._post(f"{self._BASE_PATH}/messages", json={"messages": messages})
        return ReconcileResult(**data)

    def push_packet(self, packet_type: str, body: dict[str, Any]) -> PacketResponse:
        """Hand a whole received packet to the service.

        Args:
            packet_type: Packet type, e.g. "kdeconnect.sms.messages".
            body: Packet body.

        Returns:
            Whether the packet was handled, and the result if so.
        """
        data = self._post(
            f"{self._BASE_PATH}/packet", json={"type": packet_type, "body": body}
        )
        return PacketResponse(**data)

    def connect(self) -> UpstreamRequestModel:
        """Report that the phone connected.

        Returns:
            The conversations request queued for the phone.
        """
        data = self._post(f"{self._BASE_PATH}/connect")
        return UpstreamRequestModel(**data)

    def clear(self) -> UpstreamRequestModel:
        """Drop the cache and request a full resync.

        Returns:
            The full-digest request queued for the phone.
        """
        data = self._post(f"{self._BASE_PATH}/clear")
        return UpstreamRequestModel(**data)

    def send(self, addresses: list[str], body: str) -> UpstreamRequestModel:
        """Ask the phone to send an SMS.

        Args:
            addresses: Recipients.
            body: Message text.

        Returns:
            The send request queued for the phone.
        """
        data = self._post(
            f"{self._BASE_PATH}/send", json={"addresses": addresses, "body": body}
        )
        return UpstreamRequestModel(**data)

    def status(self) -> SyncStatusResponse:
        """Get the watermark and cache sizes."""
        data = self._get(f"{self._BASE_PATH}/status")
        return SyncStatusResponse(**data)

    def drain_outbox(self) -> OutboxResponse:
        """Take every request waiting to go to the phone.

        Returns:
            The pending requests, oldest first.
        """
        data = self._post(f"{self._BASE_PATH}/outbox/drain")
        return OutboxResponse(**data)
