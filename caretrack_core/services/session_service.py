# =============================================================================
# caretrack_core/services/session_service.py
# Session Submission, Edit and Delete
# =============================================================================
"""
SessionService - the write path used by the UI.

- submit(): online -> remote create; offline or remote failure -> pending
  queue, shown immediately with its temporary id
- edit() / delete(): online only, durable ids only
- refresh(): reload from the remote store and merge in queued sessions
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Callable, List, Mapping, Optional

from caretrack_core.data.audit import (
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_EDIT,
    AuditEvent,
    AuditSink,
    diff_sessions,
    emit_audit,
)
from caretrack_core.data.session_model import (
    MUTABLE_FIELDS,
    Session,
    is_temporary_id,
    validate_session,
)
from caretrack_core.data.session_set import SessionSet
from caretrack_core.data.supabase_client import RemoteStore
from caretrack_core.errors import OfflineOperationError, RemoteStoreError, SessionValidationError
from caretrack_core.offline.connection_manager import ConnectionManager
from caretrack_core.offline.pending_queue import PendingQueue
from caretrack_core.services.base_service import BaseService, ServiceResult


class SessionService(BaseService):
    """Creates, edits and deletes sessions and keeps the live set current."""

    def __init__(
        self,
        remote: RemoteStore,
        queue: PendingQueue,
        monitor: ConnectionManager,
        sessions: SessionSet,
        current_user: Optional[Callable[[], Optional[str]]] = None,
        audit: Optional[AuditSink] = None,
    ):
        super().__init__()
        self._remote = remote
        self._queue = queue
        self._monitor = monitor
        self._sessions = sessions
        self._current_user = current_user or (lambda: None)
        self._audit = audit

    @property
    def sessions(self) -> List[Session]:
        """Snapshot of every session currently shown (synced and pending)."""
        return self._sessions.snapshot()

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    def status_message(self) -> str:
        count = self.pending_count
        if count == 0:
            return "All sessions synced"
        if count == 1:
            return "1 session pending"
        return f"{count} sessions pending"

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def submit(self, draft: Session) -> Session:
        """
        Submit a new session.

        Raises:
            SessionValidationError: before anything is written or queued

        Returns:
            The durable session when written online, otherwise the queued
            session carrying its temporary id
        """
        validate_session(draft)
        actor = self._current_user()
        session = replace(draft, id=None, created_at=None, logged_by=actor or draft.logged_by)

        if self._monitor.is_online:
            try:
                created = self._remote.create(session)
            except RemoteStoreError as e:
                self.logger.warning(f"Online create failed, queueing session instead: {e}")
            else:
                self._sessions.add(created)
                emit_audit(self._audit, AuditEvent(
                    action=ACTION_CREATE,
                    actor=created.logged_by,
                    details={
                        "session_id": created.id,
                        "date": created.date,
                        "hospital": created.hospital,
                        "location": created.location,
                        "offline": False,
                    },
                ))
                self.logger.info(f"Session {created.id} saved")
                return created

        entry = self._queue.enqueue(session)
        self._sessions.add(entry.session)
        return entry.session

    # -------------------------------------------------------------------------
    # Edit / delete (require connectivity)
    # -------------------------------------------------------------------------

    def _require_online(self, operation: str, session_id: str) -> None:
        if is_temporary_id(session_id):
            raise OfflineOperationError(
                f"Cannot {operation} a session that has not synced yet",
                operation=operation,
                session_id=session_id,
            )
        if not self._monitor.is_online:
            raise OfflineOperationError(
                f"Cannot {operation} sessions while offline",
                operation=operation,
                session_id=session_id,
            )

    def _existing(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionValidationError("Unknown session", field="id", value=session_id)
        return session

    def edit(self, session_id: str, draft: Session) -> Session:
        """
        Replace every mutable field of a session with the draft's values.

        Last write wins; the audit event carries a diff against the pre-edit
        snapshot.
        """
        self._require_online("edit", session_id)
        before = self._existing(session_id)
        validate_session(draft)

        after = replace(before, **{name: getattr(draft, name) for name in MUTABLE_FIELDS})
        changes = diff_sessions(before, after)

        saved = self._remote.update(after)
        self._sessions.replace(session_id, saved)

        emit_audit(self._audit, AuditEvent(
            action=ACTION_EDIT,
            actor=self._current_user(),
            details={"session_id": session_id, "changes": changes},
        ))
        self.logger.info(f"Session {session_id} edited ({len(changes)} field(s) changed)")
        return saved

    def delete(self, session_id: str) -> None:
        self._require_online("delete", session_id)
        existing = self._existing(session_id)

        self._remote.delete(session_id)
        self._sessions.remove(session_id)

        emit_audit(self._audit, AuditEvent(
            action=ACTION_DELETE,
            actor=self._current_user(),
            details={
                "session_id": session_id,
                "date": existing.date,
                "hospital": existing.hospital,
                "location": existing.location,
            },
        ))
        self.logger.info(f"Session {session_id} deleted")

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------

    def _fetch_and_merge(self, filters: Optional[Mapping[str, Any]]) -> List[Session]:
        fetched = self._remote.fetch(filters)
        fetched_ids = {s.id for s in fetched}

        # Held against a running sync pass so its swaps land either wholly
        # before or wholly after this merge
        with self._queue.locked():
            delivered = self._queue.delivered()
            merged = list(fetched)
            for entry in self._queue.list():
                if entry.temp_id not in delivered:
                    merged.append(entry.session)
            for durable in delivered.values():
                if durable.id not in fetched_ids:
                    merged.append(durable)
            self._sessions.reset(merged)
        return merged

    def refresh(self, filters: Optional[Mapping[str, Any]] = None) -> ServiceResult:
        """
        Reload the live set from the remote store plus the pending queue.

        Args:
            filters: Field-equality filters, e.g. {"hospital": ["A", "B"]} to
                fetch only the viewer's hospitals

        Returns:
            ServiceResult with the merged session list; on a remote failure
            the previous live set is kept
        """
        return self.safe_execute("Fetching sessions", self._fetch_and_merge, filters)

    def fetch_benchmark_population(self) -> ServiceResult:
        """Unfiltered cross-tenant fetch used as the external benchmark."""
        return self.safe_execute("Fetching benchmark population", self._remote.fetch, None)
