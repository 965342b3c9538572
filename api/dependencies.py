"""Dependency injection providers for the FastAPI application.

This module defines dependencies that can be injected into route handlers,
providing access to the shared SyncReconciler and the outbox the device
bridge drains.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends

from models.config import SyncConfig
from models.persistence import SnapshotFile
from models.reconciler import SyncReconciler
from models.store import ThreadStore
from models.transport import Outbox

logger = logging.getLogger(__name__)


# One cache per service process, i.e. per paired device.
_reconciler: SyncReconciler | None = None
_outbox: Outbox | None = None


def get_reconciler() -> SyncReconciler:
    """Get the shared SyncReconciler instance.

    This function is a FastAPI dependency.

    Returns:
        The shared SyncReconciler instance.

    Raises:
        RuntimeError: If the reconciler hasn't been initialized yet.
    """
    if _reconciler is None:
        raise RuntimeError(
            "SyncReconciler not initialized. Call initialize_reconciler() first."
        )
    return _reconciler


def get_outbox() -> Outbox:
    """Get the outbox that queues requests for the device bridge.

    Raises:
        RuntimeError: If the reconciler hasn't been initialized yet.
    """
    if _outbox is None:
        raise RuntimeError(
            "SyncReconciler not initialized. Call initialize_reconciler() first."
        )
    return _outbox


def build_reconciler(
    config: SyncConfig, outbox: Outbox, store: Optional[ThreadStore] = None
) -> SyncReconciler:
    """Wire a reconciler to its store, snapshot file and outbox.

    Args:
        config: Engine settings; cache_path selects the snapshot file.
        outbox: Transport the reconciler sends through.
        store: Existing store to use instead of loading the snapshot.

    Returns:
        A ready SyncReconciler.
    """
    snapshot = SnapshotFile(config.cache_path) if config.cache_path else None
    if store is None:
        store = snapshot.load() if snapshot else ThreadStore()
    return SyncReconciler(store=store, transport=outbox, config=config, snapshot=snapshot)


def initialize_reconciler(config: Optional[SyncConfig] = None) -> SyncReconciler:
    """Initialize the shared reconciler.

    This should be called once when the FastAPI app starts up. Loads the
    cache snapshot when one is configured.

    Args:
        config: Engine settings (defaults to SyncConfig.from_env()).

    Returns:
        The newly created SyncReconciler.
    """
    global _reconciler, _outbox

    config = config or SyncConfig.from_env()
    _outbox = Outbox()
    _reconciler = build_reconciler(config, _outbox)
    logger.info(
        f"Sync engine ready with {_reconciler.store.thread_count} cached threads"
    )
    return _reconciler


def shutdown_reconciler() -> None:
    """Release the shared reconciler.

    This should be called when the FastAPI app shuts down.
    """
    global _reconciler, _outbox

    if _reconciler is not None:
        _reconciler.close()
    _reconciler = None
    _outbox = None


# Type aliases for dependency injection
ReconcilerDep = Annotated[SyncReconciler, Depends(get_reconciler)]
OutboxDep = Annotated[Outbox, Depends(get_outbox)]
