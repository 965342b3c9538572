"""Conversation cache models package.

This package contains the message and thread models, the thread store that
caches every conversation for a paired device, and the sync reconciler that
merges device batches into it and requests more history when needed.
"""

from models.config import SyncConfig
from models.cursor import MessagePage, ThreadCursor
from models.events import (
    EventEmitter,
    MessagesAdded,
    MessagesRemoved,
    StoreEvent,
    ThreadAdded,
    ThreadRemoved,
)
from models.exceptions import CachePersistenceError, ThreadNotFoundError
from models.message import Address, Message, MessageBox, MessageStatus
from models.persistence import SnapshotFile
from models.reconciler import ReconcileResult, SyncReconciler
from models.requests import ConversationRequest, ConversationsRequest, SendMessageRequest
from models.store import ThreadStore
from models.thread import Thread
from models.transport import Outbox, Transport

__all__ = [
    "Address",
    "CachePersistenceError",
    "ConversationRequest",
    "ConversationsRequest",
    "EventEmitter",
    "Message",
    "MessageBox",
    "MessagePage",
    "MessageStatus",
    "MessagesAdded",
    "MessagesRemoved",
    "Outbox",
    "ReconcileResult",
    "SendMessageRequest",
    "SnapshotFile",
    "StoreEvent",
    "SyncConfig",
    "SyncReconciler",
    "Thread",
    "ThreadAdded",
    "ThreadCursor",
    "ThreadNotFoundError",
    "ThreadRemoved",
    "ThreadStore",
    "Transport",
]
