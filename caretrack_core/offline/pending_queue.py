# =============================================================================
# caretrack_core/offline/pending_queue.py
# Local Pending-Write Queue
# =============================================================================
"""
PendingQueue - sessions created while the remote store is unreachable.

Entries are kept in enqueue order and written through to a QueueStorage so
they survive a restart. If the storage cannot be read or written the queue
switches to degraded mode and a single warning is raised to the caller.

- load failed: the queue is memory-only for the rest of the run and never
  writes, so the unreadable store is left as it was
- save failed: every later change retries the save; the first one that
  succeeds rewrites the whole queue and leaves degraded mode
"""

from __future__ import annotations
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Protocol

from caretrack_core.data.session_model import Session, mint_temp_id, utc_now_iso
from caretrack_core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PendingQueueEntry:
    """A queued session plus queue metadata."""
    temp_id: str
    queued_at: float  # epoch seconds
    session: Session


class QueueStorage(Protocol):
    """Durable backing store for the pending queue."""

    def load(self) -> List[PendingQueueEntry]:
        ...

    def save(self, entries: List[PendingQueueEntry]) -> None:
        ...


class PendingQueue:
    """
    Ordered, durable list of sessions waiting to be synced.

    Usage:
        queue = PendingQueue(LocalDatabase(path))
        entry = queue.enqueue(session)      # never touches the network
        for entry in queue.list(): ...
        queue.replace_all(failed_entries)   # after a sync pass
    """

    def __init__(
        self,
        storage: Optional[QueueStorage],
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        self._storage = storage
        self._on_warning = on_warning
        self._lock = threading.RLock()
        self._entries: List[PendingQueueEntry] = []
        self._warning: Optional[str] = None
        self._load_failed = False
        self._delivered: Dict[str, Session] = {}
        self._load()

    # -------------------------------------------------------------------------
    # Degraded mode
    # -------------------------------------------------------------------------

    @property
    def degraded(self) -> bool:
        """True once persistence failed; entries are then memory-only."""
        return self._warning is not None

    @property
    def warning(self) -> Optional[str]:
        return self._warning

    def _degrade(self, reason: str) -> None:
        if self._warning is not None:
            return
        self._warning = (
            f"Offline queue is not persistent ({reason}). "
            "Pending sessions will be lost if the app is closed before they sync."
        )
        logger.warning(self._warning)
        if self._on_warning:
            try:
                self._on_warning(self._warning)
            except Exception as e:
                logger.error(f"Error in queue warning callback: {e}")

    def _load(self) -> None:
        if self._storage is None:
            self._load_failed = True
            self._degrade("no storage configured")
            return
        try:
            self._entries = list(self._storage.load())
        except Exception as e:
            # Never overwrite a store we could not read
            self._load_failed = True
            self._degrade(str(e))
            return
        if self._entries:
            logger.info(f"Loaded {len(self._entries)} pending session(s) from local storage")

    def _persist(self) -> None:
        if self._load_failed:
            return
        try:
            self._storage.save(list(self._entries))
        except Exception as e:
            self._degrade(str(e))
            return
        if self._warning is not None:
            self._warning = None
            logger.info("Offline queue storage recovered, pending sessions are persistent again")

    # -------------------------------------------------------------------------
    # Queue operations
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @contextmanager
    def locked(self) -> Iterator[PendingQueue]:
        """Hold the queue lock across several operations."""
        with self._lock:
            yield self

    def enqueue(self, session: Session) -> PendingQueueEntry:
        """
        Queue a session under a fresh temporary id.

        The session is kept even if persistence fails (degraded mode).

        Returns:
            The new entry; entry.session carries the temporary id
        """
        with self._lock:
            temp_id = mint_temp_id({e.temp_id for e in self._entries})
            queued = replace(
                session,
                id=temp_id,
                created_at=session.created_at or utc_now_iso(),
            )
            entry = PendingQueueEntry(temp_id=temp_id, queued_at=time.time(), session=queued)
            self._entries.append(entry)
            self._persist()

        logger.info(f"Queued session {temp_id} for sync ({len(self)} pending)")
        return entry

    def list(self) -> List[PendingQueueEntry]:
        """Entries in enqueue order (oldest first)."""
        with self._lock:
            return list(self._entries)

    def remove(self, temp_id: str) -> None:
        """Drop one entry; removing an unknown id is a no-op."""
        with self._lock:
            remaining = [e for e in self._entries if e.temp_id != temp_id]
            if len(remaining) == len(self._entries):
                return
            self._entries = remaining
            self._persist()

    def replace_all(self, entries: Iterable[PendingQueueEntry]) -> None:
        """Atomically overwrite the whole queue."""
        with self._lock:
            self._entries = list(entries)
            self._persist()

    # -------------------------------------------------------------------------
    # Delivered entries (current sync pass)
    # -------------------------------------------------------------------------

    def mark_delivered(self, temp_id: str, session: Session) -> None:
        """
        Record the durable session an entry was created as.

        The entry itself stays queued until the pass rewrites the queue; a
        reader merging the queue into a fresh fetch uses this to show the
        durable session instead of the stale pending one.
        """
        with self._lock:
            self._delivered[temp_id] = session

    def delivered(self) -> Dict[str, Session]:
        """{temp id: durable session} for entries delivered since the last pass began."""
        with self._lock:
            return dict(self._delivered)

    def clear_delivered(self) -> None:
        with self._lock:
            self._delivered.clear()
