# =============================================================================
# caretrack_core/offline/__init__.py
# Offline Capture and Sync for CareTrack
# =============================================================================
"""
Offline Module

Sessions logged while the remote store is unreachable are kept in a durable
local queue and written out, in order, once connectivity returns.

Architecture:
------------
    SessionService ──online──► RemoteStore (Supabase)
          │                         ▲
       offline                      │
          ▼                         │
    PendingQueue ◄──► LocalDatabase (SQLite)
          │                         │
          └────────► SyncEngine ────┘
                        ▲
             ConnectionManager (offline -> online edge)

Usage:
------
from caretrack_core.bootstrap import build_app

app = build_app()
app.start()
app.service.submit(session)     # queued automatically when offline
print(app.service.pending_count)
"""

from caretrack_core.offline.connection_manager import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    make_default_probe,
)

from caretrack_core.offline.local_database import LocalDatabase

from caretrack_core.offline.pending_queue import (
    PendingQueue,
    PendingQueueEntry,
    QueueStorage,
)

from caretrack_core.offline.sync_engine import (
    SyncEngine,
    SyncOutcome,
    SyncState,
)

__all__ = [
    # Connection Management
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "make_default_probe",
    # Local Storage
    "LocalDatabase",
    # Pending Queue
    "PendingQueue",
    "PendingQueueEntry",
    "QueueStorage",
    # Sync Engine
    "SyncEngine",
    "SyncOutcome",
    "SyncState",
]
