# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest
from dataclasses import replace
from typing import Dict, List, Optional
from unittest.mock import MagicMock

from caretrack_core.data.session_model import Ratio, Session
from caretrack_core.errors import RemoteStoreError
from caretrack_core.offline.local_database import LocalDatabase


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeRemoteStore:
    """In-memory RemoteStore that assigns durable ids on create."""

    def __init__(self):
        self.rows: Dict[str, Session] = {}
        self.created: List[Session] = []
        self.fail_creates_for: set = set()   # session notes that make create fail
        self.fail_all = False
        self._next_id = 1

    def _check(self, operation: str):
        if self.fail_all:
            raise RemoteStoreError(f"{operation} failed: network down", operation=operation)

    def create(self, session: Session) -> Session:
        self._check("create")
        if session.notes in self.fail_creates_for:
            raise RemoteStoreError("create failed: rejected", operation="create")
        durable = replace(session, id=f"srv-{self._next_id}", created_at=f"2025-01-01T00:00:{self._next_id:02d}")
        self._next_id += 1
        self.rows[durable.id] = durable
        self.created.append(durable)
        return durable

    def fetch(self, filters=None) -> List[Session]:
        self._check("fetch")
        result = list(self.rows.values())
        for column, value in (filters or {}).items():
            allowed = value if isinstance(value, (list, tuple, set)) else [value]
            result = [s for s in result if getattr(s, column) in allowed]
        return result

    def update(self, session: Session) -> Session:
        self._check("update")
        self.rows[session.id] = session
        return session

    def delete(self, session_id: str) -> None:
        self._check("delete")
        self.rows.pop(session_id, None)


class RecordingAuditSink:
    def __init__(self):
        self.events = []

    def record(self, event):
        self.events.append(event)


class MemoryQueueStorage:
    """QueueStorage kept in a list; can be told to fail."""

    def __init__(self, entries=None, fail_load=False, fail_save=False):
        self.entries = list(entries or [])
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saves = 0

    def load(self):
        if self.fail_load:
            raise OSError("storage unreadable")
        return list(self.entries)

    def save(self, entries):
        if self.fail_save:
            raise OSError("disk full")
        self.saves += 1
        self.entries = list(entries)


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

def make_session(
    date: str = "2025-01-15",
    hospital: Optional[str] = "St Mary's",
    location: Optional[str] = "Ward 3",
    **overrides,
) -> Session:
    """Build a session; metric ids may be passed as (num, den) tuples."""
    ratios = {}
    for key, value in list(overrides.items()):
        if isinstance(value, tuple):
            ratios[key] = Ratio(*value)
            overrides.pop(key)
    return Session(date=date, hospital=hospital, location=location, **ratios, **overrides)


@pytest.fixture
def session_factory():
    return make_session


@pytest.fixture
def sample_sessions():
    """Two hospitals across two months"""
    return [
        make_session("2025-01-05", "St Mary's", "Ward 3", id="a1", matt_applied=(9, 10), air_supply=(4, 5)),
        make_session("2025-01-20", "St Mary's", "ICU", id="a2", matt_applied=(7, 10)),
        make_session("2025-02-03", "General", "Ward 1", id="b1", matt_applied=(10, 10), wedges_applied=(1, 2)),
        make_session("2025-02-14", "General", "Ward 1", id="b2", wedges_applied=(3, 4)),
    ]


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def fake_remote():
    return FakeRemoteStore()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def memory_storage():
    return MemoryQueueStorage()


@pytest.fixture
def local_db(tmp_path):
    db = LocalDatabase(tmp_path / "queue.db")
    yield db
    db.close()


@pytest.fixture
def mock_streamlit(monkeypatch):
    """Replace the st handle used by the error handlers"""
    mock_st = MagicMock()
    monkeypatch.setattr("caretrack_core.errors.handlers.st", mock_st)
    return mock_st


@pytest.fixture
def mock_supabase():
    """Mock Supabase client"""
    mock_client = MagicMock()
    mock_client.table.return_value.select.return_value.execute.return_value.data = []
    mock_client.table.return_value.insert.return_value.execute.return_value = MagicMock()
    return mock_client
