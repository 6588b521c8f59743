# =============================================================================
# caretrack_core/offline/connection_manager.py
# Connection Status Detection and Management
# =============================================================================
"""
ConnectionManager - tracks online/offline state and starts a sync on the
offline -> online edge.

Features:
- Initial state from a reachability probe
- Edge-triggered transitions from platform events (set_online) or probes
- At most one sync run at a time; triggers during a run are dropped
- Optional background polling thread

The online signal is advisory. A write can still fail while "online" and the
sync engine handles that per entry.
"""

from __future__ import annotations
import socket
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

from caretrack_core.logging import get_logger

logger = get_logger(__name__)

# Well-known DNS resolvers used to test raw internet reachability
INTERNET_HOSTS = (
    ("8.8.8.8", 53),
    ("1.1.1.1", 53),
    ("208.67.222.222", 53),
)


class ConnectionStatus(Enum):
    """Connection status states."""
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class ConnectionState:
    """Current connection state with metadata."""
    status: ConnectionStatus = ConnectionStatus.OFFLINE
    last_check: Optional[datetime] = None
    last_online: Optional[datetime] = None
    last_change: Optional[datetime] = None
    consecutive_failures: int = 0
    error_message: Optional[str] = None


def _can_connect(host: str, port: int, timeout: float) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def make_default_probe(
    supabase_url: Optional[str] = None,
    timeout: float = 5.0,
) -> Callable[[], bool]:
    """
    Build the platform reachability probe.

    Online means some public resolver answers and, when a Supabase URL is
    configured, its host accepts a TCP connection.
    """
    parsed = urlparse(supabase_url) if supabase_url else None
    supabase_host = parsed.hostname if parsed else None
    supabase_port = (parsed.port or 443) if parsed else 443

    def probe() -> bool:
        if not any(_can_connect(host, port, timeout) for host, port in INTERNET_HOSTS):
            return False
        if supabase_host:
            return _can_connect(supabase_host, supabase_port, timeout)
        return True

    return probe


class ConnectionManager:
    """
    Online/offline state machine.

    Usage:
        manager = ConnectionManager(probe=make_default_probe(url))
        manager.set_sync_handler(sync_engine.sync)
        manager.initialize()
        manager.set_online(True)   # platform "online" event
    """

    # Configuration
    CHECK_INTERVAL_ONLINE = 30      # Seconds between checks when online
    CHECK_INTERVAL_OFFLINE = 10     # Seconds between checks when offline

    def __init__(
        self,
        probe: Optional[Callable[[], bool]] = None,
        check_interval_online: Optional[int] = None,
        check_interval_offline: Optional[int] = None,
    ):
        self._probe = probe
        self._state = ConnectionState()
        self._state_lock = threading.Lock()
        self._sync_guard = threading.Lock()
        self._sync_handler: Optional[Callable[[], Any]] = None
        self._monitor_thread: Optional[threading.Thread] = None
        self._stop_monitoring = threading.Event()
        self._initialized = False
        self.check_interval_online = check_interval_online or self.CHECK_INTERVAL_ONLINE
        self.check_interval_offline = check_interval_offline or self.CHECK_INTERVAL_OFFLINE

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_online(self) -> bool:
        return self._state.status == ConnectionStatus.ONLINE

    @property
    def is_syncing(self) -> bool:
        return self._sync_guard.locked()

    def set_sync_handler(self, handler: Optional[Callable[[], Any]]) -> None:
        """Function run on every offline -> online transition."""
        self._sync_handler = handler

    def initialize(self, start_monitoring: bool = False) -> None:
        """
        Read the initial state from the probe.

        The initial reading never triggers a sync; only later transitions do.

        Args:
            start_monitoring: Whether to start background polling
        """
        if self._initialized:
            return

        online = self._run_probe()
        with self._state_lock:
            self._state.status = ConnectionStatus.ONLINE if online else ConnectionStatus.OFFLINE
            self._state.last_check = datetime.now()
            if online:
                self._state.last_online = self._state.last_check

        if start_monitoring:
            self.start_monitoring()

        self._initialized = True
        logger.info(f"ConnectionManager initialized. Status: {self._state.status.value}")

    def _run_probe(self) -> bool:
        if self._probe is None:
            # No probe: assume reachable and rely on set_online events
            return True
        try:
            return bool(self._probe())
        except Exception as e:
            self._state.error_message = str(e)
            logger.debug(f"Connectivity probe failed: {e}")
            return False

    def check_connection(self) -> ConnectionState:
        """Probe now and apply the result as a connectivity event."""
        online = self._run_probe()
        with self._state_lock:
            self._state.last_check = datetime.now()
            if online:
                self._state.consecutive_failures = 0
                self._state.error_message = None
            else:
                self._state.consecutive_failures += 1
        self.set_online(online)
        return self._state

    def set_online(self, online: bool) -> bool:
        """
        Apply a platform connectivity event.

        Returns:
            True if the status changed
        """
        new_status = ConnectionStatus.ONLINE if online else ConnectionStatus.OFFLINE
        with self._state_lock:
            old_status = self._state.status
            if old_status == new_status:
                return False
            self._state.status = new_status
            self._state.last_change = datetime.now()
            if online:
                self._state.last_online = self._state.last_change

        logger.info(f"Connection status changed: {old_status.value} -> {new_status.value}")

        if old_status == ConnectionStatus.OFFLINE and new_status == ConnectionStatus.ONLINE:
            self.request_sync()
        return True

    def request_sync(self) -> bool:
        """
        Run the sync handler unless a run is already in progress.

        Returns:
            True if the handler ran
        """
        if self._sync_handler is None:
            return False
        if not self._sync_guard.acquire(blocking=False):
            logger.debug("Sync already in progress, trigger ignored")
            return False
        try:
            logger.info("Connection restored, triggering sync")
            self._sync_handler()
            return True
        except Exception as e:
            logger.error(f"Error in sync handler: {e}", exc_info=True)
            return True
        finally:
            self._sync_guard.release()

    # -------------------------------------------------------------------------
    # Background monitoring
    # -------------------------------------------------------------------------

    def start_monitoring(self) -> None:
        """Start background connection monitoring."""
        if self._monitor_thread is not None and self._monitor_thread.is_alive():
            return

        self._stop_monitoring.clear()
        self._monitor_thread = threading.Thread(
            target=self._monitoring_loop,
            daemon=True,
            name="ConnectionMonitor",
        )
        self._monitor_thread.start()
        logger.debug("Connection monitoring started")

    def stop_monitoring(self) -> None:
        """Stop background connection monitoring."""
        self._stop_monitoring.set()
        if self._monitor_thread:
            self._monitor_thread.join(timeout=5)
        logger.debug("Connection monitoring stopped")

    def _monitoring_loop(self) -> None:
        while not self._stop_monitoring.is_set():
            interval = (
                self.check_interval_online
                if self.is_online
                else self.check_interval_offline
            )

            # Wait for interval or stop signal
            if self._stop_monitoring.wait(timeout=interval):
                break

            try:
                self.check_connection()
            except Exception as e:
                logger.error(f"Error in connection check: {e}")

    def get_status_display(self) -> Dict[str, Any]:
        """Get status information for UI display."""
        return {
            "status": self._state.status.value,
            "is_online": self.is_online,
            "is_syncing": self.is_syncing,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "last_online": self._state.last_online.isoformat() if self._state.last_online else None,
            "failures": self._state.consecutive_failures,
            "error": self._state.error_message,
        }
