"""Device-facing sync endpoints.

The device bridge posts what it receives from the paired device here, and
drains the outbox to learn what to send back.
"""

from fastapi import APIRouter

from api.dependencies import OutboxDep, ReconcilerDep
from api.models import (
    MessageBatchRequest,
    OutboxResponse,
    PacketRequest,
    PacketResponse,
    SendMessageBody,
    SyncStatusResponse,
    UpstreamRequestModel,
)
from models.reconciler import ReconcileResult
from models.requests import UpstreamRequest

router = APIRouter(
    prefix="/sync",
    tags=["sync"],
)


def _to_response(request: UpstreamRequest) -> UpstreamRequestModel:
    packet = request.to_packet()
    return UpstreamRequestModel(type=packet["type"], body=packet["body"])


@router.post("/messages", response_model=ReconcileResult)
async def receive_messages(
    request: MessageBatchRequest, reconciler: ReconcilerDep
) -> ReconcileResult:
    """Reconcile a batch of message records from the device.

    Args:
        request: The raw records.
        reconciler: The sync engine dependency.

    Returns:
        What the batch changed.
    """
    return reconciler.reconcile(request.messages)


@router.post("/packet", response_model=PacketResponse)
async def receive_packet(
    request: PacketRequest, reconciler: ReconcilerDep
) -> PacketResponse:
    """Handle a whole packet from the device.

    Packets other than kdeconnect.sms.messages are accepted and ignored.

    Args:
        request: The packet.
        reconciler: The sync engine dependency.

    Returns:
        Whether the packet was handled, and the reconciliation summary.
    """
    result = reconciler.handle_packet(request.model_dump())
    return PacketResponse(handled=result is not None, result=result)


@router.post("/connect", response_model=UpstreamRequestModel)
async def device_connected(reconciler: ReconcilerDep) -> UpstreamRequestModel:
    """Signal that the device connected; requests conversations changed since the last sync.

    Args:
        reconciler: The sync engine dependency.

    Returns:
        The request queued for the device.
    """
    return _to_response(reconciler.connect())


@router.post("/clear", response_model=UpstreamRequestModel)
async def clear_cache(reconciler: ReconcilerDep) -> UpstreamRequestModel:
    """Drop every cached thread and request a full resync.

    Args:
        reconciler: The sync engine dependency.

    Returns:
        The full-digest request queued for the device.
    """
    return _to_response(reconciler.clear_cache())


@router.post("/send", response_model=UpstreamRequestModel)
async def send_message(
    request: SendMessageBody, reconciler: ReconcilerDep
) -> UpstreamRequestModel:
    """Ask the device to send an SMS.

    Args:
        request: Recipients and text.
        reconciler: The sync engine dependency.

    Returns:
        The request queued for the device.
    """
    return _to_response(reconciler.send_message(request.addresses, request.body))


@router.get("/status", response_model=SyncStatusResponse)
async def get_status(reconciler: ReconcilerDep, outbox: OutboxDep) -> SyncStatusResponse:
    """Get the cache watermark and sizes.

    Args:
        reconciler: The sync engine dependency.
        outbox: The outbox dependency.

    Returns:
        Sync status.
    """
    store = reconciler.store
    snapshot = reconciler.snapshot
    return SyncStatusResponse(
        last_updated=store.last_updated,
        thread_count=store.thread_count,
        message_count=sum(t.message_count for t in store.threads.values()),
        pending_requests=outbox.pending_count,
        cache_path=str(snapshot.path) if snapshot else None,
    )


@router.post("/outbox/drain", response_model=OutboxResponse)
async def drain_outbox(outbox: OutboxDep) -> OutboxResponse:
    """Take every request waiting to be sent to the device.

    Args:
        outbox: The outbox dependency.

    Returns:
        The pending requests, oldest first. They are removed from the outbox.
    """
    requests = [_to_response(r) for r in outbox.drain()]
    return OutboxResponse(requests=requests, count=len(requests))
