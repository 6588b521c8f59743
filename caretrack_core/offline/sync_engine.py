# =============================================================================
# caretrack_core/offline/sync_engine.py
# Pending Queue -> Remote Store Synchronization
# =============================================================================
"""
SyncEngine - drains the pending queue into the remote store.

One pass:
1. snapshot the queue
2. create each entry remotely, strictly in enqueue order, one at a time,
   stamping logged_by with the identity signed in at sync time
3. on success swap the temporary-id session in the live set for the durable
   one and record it as delivered, so a refresh running during the pass
   shows the durable session once; on failure keep the entry, unmodified,
   for the next pass
4. after the whole pass, replace the queue with the failures (plus anything
   enqueued while the pass was running)

Delivery is at-least-once. If the process dies after a remote create
succeeded but before step 4, that entry is created again on the next pass;
the remote store has no idempotency key to catch the duplicate.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from caretrack_core.data.audit import ACTION_CREATE, AuditEvent, AuditSink, emit_audit
from caretrack_core.data.session_set import SessionSet
from caretrack_core.data.supabase_client import RemoteStore
from caretrack_core.logging import LogContext, get_logger
from caretrack_core.offline.pending_queue import PendingQueue, PendingQueueEntry

logger = get_logger(__name__)


@dataclass
class SyncOutcome:
    """Aggregate result of one sync pass."""
    succeeded: int = 0
    failed: int = 0
    already_running: bool = False

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    @property
    def message(self) -> str:
        """User-facing confirmation; per-entry failures are not reported."""
        if self.succeeded == 1:
            return "Synced 1 session"
        return f"Synced {self.succeeded} sessions"


@dataclass
class SyncState:
    """Current sync state."""
    is_syncing: bool = False
    last_sync: Optional[datetime] = None
    last_sync_success: Optional[datetime] = None
    failed_count: int = 0
    total_synced: int = 0


class SyncEngine:
    """
    Drains the PendingQueue against a RemoteStore.

    Usage:
        engine = SyncEngine(queue, remote, sessions, current_user=lambda: name)
        outcome = engine.sync()
        print(outcome.message)
    """

    def __init__(
        self,
        queue: PendingQueue,
        remote: RemoteStore,
        sessions: SessionSet,
        current_user: Optional[Callable[[], Optional[str]]] = None,
        audit: Optional[AuditSink] = None,
    ):
        self._queue = queue
        self._remote = remote
        self._sessions = sessions
        self._current_user = current_user or (lambda: None)
        self._audit = audit
        self._pass_lock = threading.Lock()
        self._state = SyncState()

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._state.is_syncing

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    def sync(self) -> SyncOutcome:
        """
        Run one sync pass.

        A call made while another pass is running returns immediately with
        already_running set; passes are never re-entrant.
        """
        if not self._pass_lock.acquire(blocking=False):
            logger.debug("Sync pass already running")
            return SyncOutcome(already_running=True)

        try:
            self._state.is_syncing = True
            self._state.last_sync = datetime.now()
            return self._run_pass()
        finally:
            self._state.is_syncing = False
            self._pass_lock.release()

    def _run_pass(self) -> SyncOutcome:
        with self._queue.locked():
            self._queue.clear_delivered()
            snapshot = self._queue.list()
        if not snapshot:
            self._state.last_sync_success = datetime.now()
            return SyncOutcome()

        actor = self._current_user()
        outcome = SyncOutcome()
        retry: List[PendingQueueEntry] = []

        with LogContext(logger, f"Syncing {len(snapshot)} pending session(s)"):
            for entry in snapshot:
                if self._sync_entry(entry, actor):
                    outcome.succeeded += 1
                else:
                    retry.append(entry)
                    outcome.failed += 1

            snapshot_ids = {entry.temp_id for entry in snapshot}
            with self._queue.locked():
                # Entries queued during this pass wait for the next one
                late = [e for e in self._queue.list() if e.temp_id not in snapshot_ids]
                self._queue.replace_all(retry + late)

        self._state.total_synced += outcome.succeeded
        self._state.failed_count = outcome.failed
        if outcome.failed == 0:
            self._state.last_sync_success = datetime.now()

        logger.info(f"Sync complete: {outcome.succeeded} success, {outcome.failed} failed")
        return outcome

    def _sync_entry(self, entry: PendingQueueEntry, actor: Optional[str]) -> bool:
        """Create one queued session remotely; True on success."""
        payload = replace(
            entry.session,
            id=None,
            logged_by=actor or entry.session.logged_by,
        )
        try:
            durable = self._remote.create(payload)
        except Exception as e:
            logger.warning(f"Pending session {entry.temp_id} not synced: {e}")
            return False

        with self._queue.locked():
            self._queue.mark_delivered(entry.temp_id, durable)
            self._sessions.swap(entry.temp_id, durable)

        emit_audit(self._audit, AuditEvent(
            action=ACTION_CREATE,
            actor=durable.logged_by,
            details={
                "session_id": durable.id,
                "temp_id": entry.temp_id,
                "queued_at": entry.queued_at,
                "date": durable.date,
                "hospital": durable.hospital,
                "location": durable.location,
                "offline": True,
            },
        ))
        logger.debug(f"Pending session {entry.temp_id} synced as {durable.id}")
        return True

    def get_status_display(self) -> Dict[str, Any]:
        """Get sync status for UI display."""
        return {
            "is_syncing": self._state.is_syncing,
            "last_sync": self._state.last_sync.isoformat() if self._state.last_sync else None,
            "last_success": self._state.last_sync_success.isoformat() if self._state.last_sync_success else None,
            "pending_count": self.pending_count,
            "failed_count": self._state.failed_count,
            "total_synced": self._state.total_synced,
            "queue_warning": self._queue.warning,
        }
