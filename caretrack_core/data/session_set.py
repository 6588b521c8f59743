# =============================================================================
# caretrack_core/data/session_set.py
# In-Memory Session Collection
# =============================================================================
"""
SessionSet - the live collection of sessions shown to the user.

Holds remotely fetched sessions, sessions created online during this run and
pending (queued) sessions side by side. The aggregation engine always reads a
snapshot of this set.
"""

from __future__ import annotations
import threading
from typing import Iterable, List, Optional

from caretrack_core.data.session_model import Session


class SessionSet:
    """Thread-safe ordered collection of sessions keyed by id."""

    def __init__(self, sessions: Optional[Iterable[Session]] = None):
        self._lock = threading.RLock()
        self._sessions: List[Session] = list(sessions or [])

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def snapshot(self) -> List[Session]:
        """Copy of the current sessions in insertion order."""
        with self._lock:
            return list(self._sessions)

    def pending(self) -> List[Session]:
        """Sessions still carrying a temporary id."""
        with self._lock:
            return [s for s in self._sessions if s.is_pending]

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            for session in self._sessions:
                if session.id == session_id:
                    return session
        return None

    def add(self, session: Session) -> None:
        with self._lock:
            self._sessions.append(session)

    def replace(self, session_id: str, session: Session) -> bool:
        """
        Swap the session carrying session_id for a new object in place.

        Returns:
            True if a session was replaced, False if the id was not present
        """
        with self._lock:
            for index, existing in enumerate(self._sessions):
                if existing.id == session_id:
                    self._sessions[index] = session
                    return True
        return False

    def swap(self, temp_id: str, durable: Session) -> None:
        """
        Put a synced session in place of its pending copy.

        Any session already carrying either id is dropped first, so the
        durable session appears exactly once whether or not a refresh got to
        it before the sync did. Position is that of the first match, or the
        end when neither id was present.
        """
        with self._lock:
            position = None
            kept = []
            for session in self._sessions:
                if session.id in (temp_id, durable.id):
                    if position is None:
                        position = len(kept)
                    continue
                kept.append(session)
            kept.insert(len(kept) if position is None else position, durable)
            self._sessions = kept

    def remove(self, session_id: str) -> bool:
        with self._lock:
            before = len(self._sessions)
            self._sessions = [s for s in self._sessions if s.id != session_id]
            return len(self._sessions) != before

    def reset(self, sessions: Iterable[Session]) -> None:
        """Replace the whole collection (e.g. after a fresh remote fetch)."""
        with self._lock:
            self._sessions = list(sessions)
