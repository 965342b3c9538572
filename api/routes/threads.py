"""Conversation read endpoints.

Provides the UI-facing view of the cache: thread listing, thread lookup by
participants, and backward paging through a thread's messages.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Query

from api.dependencies import ReconcilerDep
from api.models import (
    ErrorResponse,
    MessagePageResponse,
    ThreadListResponse,
    ThreadSummary,
)
from models.message import Address

router = APIRouter(
    prefix="/threads",
    tags=["threads"],
)


@router.get("", response_model=ThreadListResponse)
async def list_threads(reconciler: ReconcilerDep) -> ThreadListResponse:
    """List cached conversations, most recently active first.

    Args:
        reconciler: The sync engine dependency.

    Returns:
        Summaries of every cached thread.
    """
    store = reconciler.store
    return ThreadListResponse(
        threads=[ThreadSummary.from_thread(t) for t in store.threads_by_recency()],
        total_count=store.thread_count,
        last_updated=store.last_updated,
    )


@router.get(
    "/lookup",
    response_model=ThreadSummary,
    responses={404: {"model": ErrorResponse}},
)
async def lookup_thread(
    reconciler: ReconcilerDep,
    address: Annotated[list[str], Query(min_length=1)],
) -> ThreadSummary:
    """Find the conversation with exactly the given participants.

    Phone numbers match loosely, ignoring formatting and country prefix.

    Args:
        reconciler: The sync engine dependency.
        address: Participant addresses (repeat the parameter for groups).

    Returns:
        Summary of the matching thread.
    """
    addresses = [Address(address=a) for a in address]
    thread = reconciler.store.find_thread_for_addresses(addresses)
    if thread is None:
        raise HTTPException(
            status_code=404,
            detail=f"No thread with participants {', '.join(address)}",
        )
    return ThreadSummary.from_thread(thread)


@router.get(
    "/{thread_id}",
    response_model=ThreadSummary,
    responses={404: {"model": ErrorResponse}},
)
async def get_thread(thread_id: str, reconciler: ReconcilerDep) -> ThreadSummary:
    """Get the summary of one conversation.

    Args:
        thread_id: Conversation key.
        reconciler: The sync engine dependency.

    Returns:
        The thread summary.
    """
    return ThreadSummary.from_thread(reconciler.store.require_thread(thread_id))


@router.get(
    "/{thread_id}/messages",
    response_model=MessagePageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_thread_messages(
    thread_id: str,
    reconciler: ReconcilerDep,
    max_count: Annotated[Optional[int], Query(ge=1, le=1000)] = None,
    before: Annotated[Optional[int], Query()] = None,
) -> MessagePageResponse:
    """Read a page of a conversation, newest first in time, ascending within.

    When fewer than max_count messages are cached before the boundary, the
    device is asked for more history; the caller should poll again later.

    Args:
        thread_id: Conversation key.
        reconciler: The sync engine dependency.
        max_count: Page size (defaults to the configured fetch number).
        before: Exclusive upper bound on message date (defaults to now).

    Returns:
        The page, and whether more history was requested.
    """
    page = reconciler.get_page(thread_id, max_count, before)
    return MessagePageResponse(
        thread_id=page.thread_id,
        messages=page.messages,
        returned_count=len(page.messages),
        has_more_messages=page.has_more_messages,
        fetch_requested=page.fetch_requested,
        next_before=page.messages[0].date if page.messages else None,
    )
