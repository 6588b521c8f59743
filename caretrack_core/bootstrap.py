# =============================================================================
# caretrack_core/bootstrap.py
# Composition Root
# =============================================================================
"""
Wires the remote store, pending queue, connectivity monitor, sync engine and
session service together. Every collaborator is injectable so tests can run
the whole stack against in-memory fakes.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from caretrack_core.config import AppConfig, load_config
from caretrack_core.data.audit import AuditSink, SupabaseAuditSink
from caretrack_core.data.session_set import SessionSet
from caretrack_core.data.supabase_client import (
    RemoteStore,
    SupabaseSessionStore,
    create_supabase_client,
)
from caretrack_core.logging import get_logger
from caretrack_core.offline.connection_manager import ConnectionManager, make_default_probe
from caretrack_core.offline.local_database import LocalDatabase
from caretrack_core.offline.pending_queue import PendingQueue, QueueStorage
from caretrack_core.offline.sync_engine import SyncEngine, SyncOutcome
from caretrack_core.services.session_service import SessionService

logger = get_logger(__name__)


class SignedInUser:
    """
    Display name of whoever is signed in on this device.

    The UI sets it on every run; the sync engine reads it from the
    connectivity monitor thread, which cannot see Streamlit session state.
    """

    def __init__(self, name: Optional[str] = None):
        self._lock = threading.Lock()
        self._name: Optional[str] = None
        self.set(name)

    def set(self, name: Optional[str]) -> None:
        with self._lock:
            self._name = (name or "").strip() or None

    def __call__(self) -> Optional[str]:
        with self._lock:
            return self._name


@dataclass
class CareTrackApp:
    """Everything one running app instance needs."""
    config: AppConfig
    sessions: SessionSet
    queue: PendingQueue
    monitor: ConnectionManager
    sync_engine: SyncEngine
    service: SessionService
    user: SignedInUser

    def set_current_user(self, name: Optional[str]) -> None:
        """Identity stamped on sessions submitted or synced from now on."""
        self.user.set(name)

    def start(self, start_monitoring: bool = False) -> None:
        """
        Read the initial connectivity state and drain anything left in the
        queue from a previous run.
        """
        self.monitor.initialize(start_monitoring=start_monitoring)
        if self.monitor.is_online and len(self.queue) > 0:
            logger.info(f"{len(self.queue)} session(s) left from a previous run, syncing")
            self.monitor.request_sync()

    def stop(self) -> None:
        self.monitor.stop_monitoring()

    def sync_now(self) -> SyncOutcome:
        """Manual sync trigger (the UI's "Sync now" button)."""
        return self.sync_engine.sync()


def build_app(
    config: Optional[AppConfig] = None,
    remote: Optional[RemoteStore] = None,
    queue_storage: Optional[QueueStorage] = None,
    audit: Optional[AuditSink] = None,
    probe: Optional[Callable[[], bool]] = None,
    current_user: Optional[str] = None,
) -> CareTrackApp:
    """
    Build a CareTrackApp.

    Args:
        config: Configuration (loaded from secrets/env when omitted)
        remote: Remote store; a SupabaseSessionStore is built when omitted
        queue_storage: Queue persistence; a LocalDatabase at
            config.queue_db_path when omitted
        audit: Audit sink; Supabase audit table when a client is built
        probe: Reachability probe; default DNS + Supabase host check
        current_user: Initial signed-in display name (see
            CareTrackApp.set_current_user)

    Raises:
        ConfigurationError: remote omitted and Supabase not configured
    """
    config = config or load_config()

    if remote is None:
        client = create_supabase_client(config)
        remote = SupabaseSessionStore(client, table_name=config.sessions_table)
        if audit is None:
            audit = SupabaseAuditSink(client, table_name=config.audit_table)

    if queue_storage is None:
        queue_storage = LocalDatabase(config.queue_db_path)

    if probe is None:
        probe = make_default_probe(config.supabase_url)

    user = SignedInUser(current_user)
    sessions = SessionSet()
    queue = PendingQueue(queue_storage)
    # Queued sessions from a previous run are shown before the first fetch
    for entry in queue.list():
        sessions.add(entry.session)

    monitor = ConnectionManager(
        probe=probe,
        check_interval_online=config.check_interval_online,
        check_interval_offline=config.check_interval_offline,
    )
    engine = SyncEngine(queue, remote, sessions, current_user=user, audit=audit)
    monitor.set_sync_handler(engine.sync)

    service = SessionService(
        remote=remote,
        queue=queue,
        monitor=monitor,
        sessions=sessions,
        current_user=user,
        audit=audit,
    )

    return CareTrackApp(
        config=config,
        sessions=sessions,
        queue=queue,
        monitor=monitor,
        sync_engine=engine,
        service=service,
        user=user,
    )
