# =============================================================================
# tests/unit/test_session_service.py
# Unit Tests for SessionService
# =============================================================================

import pytest
from dataclasses import replace

from caretrack_core.data.session_model import Ratio, is_temporary_id
from caretrack_core.data.session_set import SessionSet
from caretrack_core.errors import OfflineOperationError, SessionValidationError
from caretrack_core.offline.connection_manager import ConnectionManager
from caretrack_core.offline.pending_queue import PendingQueue
from caretrack_core.services.session_service import SessionService
from conftest import make_session


def build(memory_storage, remote, online=True, audit=None, user="Dana"):
    monitor = ConnectionManager(probe=lambda: online)
    monitor.initialize()
    queue = PendingQueue(memory_storage)
    sessions = SessionSet()
    service = SessionService(
        remote=remote,
        queue=queue,
        monitor=monitor,
        sessions=sessions,
        current_user=lambda: user,
        audit=audit,
    )
    return service, queue, sessions


class TestSubmit:
    """Test the submission path"""

    def test_online_submit_writes_remote(self, memory_storage, fake_remote, audit_sink):
        service, queue, sessions = build(memory_storage, fake_remote, audit=audit_sink)

        saved = service.submit(make_session(matt_applied=(1, 2)))

        assert saved.id == "srv-1"
        assert saved.logged_by == "Dana"
        assert len(queue) == 0
        assert sessions.get("srv-1") == saved
        assert audit_sink.events[0].details["offline"] is False

    def test_offline_submit_queues(self, memory_storage, fake_remote):
        service, queue, sessions = build(memory_storage, fake_remote, online=False)

        saved = service.submit(make_session())

        assert is_temporary_id(saved.id)
        assert saved.created_at is not None
        assert len(queue) == 1
        assert fake_remote.created == []
        assert sessions.pending() == [saved]
        assert service.status_message() == "1 session pending"

    def test_remote_failure_falls_back_to_queue(self, memory_storage, fake_remote, audit_sink):
        fake_remote.fail_all = True
        service, queue, sessions = build(memory_storage, fake_remote, audit=audit_sink)

        saved = service.submit(make_session())

        assert saved.is_pending
        assert len(queue) == 1
        assert audit_sink.events == []

    def test_invalid_draft_rejected_before_queue(self, memory_storage, fake_remote):
        service, queue, _ = build(memory_storage, fake_remote, online=False)
        with pytest.raises(SessionValidationError):
            service.submit(make_session(date="not-a-date"))
        assert len(queue) == 0

    def test_pending_message_plural(self, memory_storage, fake_remote):
        service, _, _ = build(memory_storage, fake_remote, online=False)
        service.submit(make_session())
        service.submit(make_session())
        assert service.pending_count == 2
        assert service.status_message() == "2 sessions pending"


class TestEditDelete:
    """Test online-only edit and delete"""

    def test_edit_replaces_mutable_fields(self, memory_storage, fake_remote, audit_sink):
        service, _, sessions = build(memory_storage, fake_remote, audit=audit_sink)
        saved = service.submit(make_session(notes="old", matt_applied=(1, 2)))

        draft = replace(saved, notes="new", matt_applied=Ratio(2, 2), logged_by="Someone else")
        edited = service.edit(saved.id, draft)

        assert edited.notes == "new"
        assert edited.logged_by == "Dana"
        assert fake_remote.rows[saved.id].matt_applied == Ratio(2, 2)
        assert sessions.get(saved.id).notes == "new"
        changes = audit_sink.events[-1].details["changes"]
        assert changes == {
            "notes": {"from": "old", "to": "new"},
            "matt_applied": {"from": [1, 2], "to": [2, 2]},
        }

    def test_edit_offline_rejected(self, memory_storage, fake_remote):
        service, _, _ = build(memory_storage, fake_remote)
        saved = service.submit(make_session())
        service._monitor.set_online(False)

        with pytest.raises(OfflineOperationError):
            service.edit(saved.id, saved)

    def test_edit_pending_rejected(self, memory_storage, fake_remote):
        service, _, _ = build(memory_storage, fake_remote, online=False)
        pending = service.submit(make_session())
        with pytest.raises(OfflineOperationError) as exc:
            service.edit(pending.id, pending)
        assert exc.value.code == "SESSION_002"

    def test_edit_unknown_session(self, memory_storage, fake_remote):
        service, _, _ = build(memory_storage, fake_remote)
        with pytest.raises(SessionValidationError):
            service.edit("srv-99", make_session())

    def test_delete(self, memory_storage, fake_remote, audit_sink):
        service, _, sessions = build(memory_storage, fake_remote, audit=audit_sink)
        saved = service.submit(make_session())

        service.delete(saved.id)

        assert saved.id not in fake_remote.rows
        assert sessions.get(saved.id) is None
        assert audit_sink.events[-1].action == "delete"

    def test_delete_pending_rejected(self, memory_storage, fake_remote):
        service, queue, _ = build(memory_storage, fake_remote, online=False)
        pending = service.submit(make_session())
        with pytest.raises(OfflineOperationError):
            service.delete(pending.id)
        assert len(queue) == 1


class TestRefresh:
    """Test loading sessions"""

    def test_refresh_merges_pending(self, memory_storage, fake_remote, mock_streamlit):
        fake_remote.create(make_session(hospital="General"))
        service, queue, sessions = build(memory_storage, fake_remote, online=False)
        pending = service.submit(make_session())

        result = service.refresh()

        assert result.success
        assert [s.id for s in sessions.snapshot()] == ["srv-1", pending.id]

    def test_refresh_with_filters(self, memory_storage, fake_remote, mock_streamlit):
        fake_remote.create(make_session(hospital="General"))
        fake_remote.create(make_session(hospital="Other"))
        service, _, _ = build(memory_storage, fake_remote)

        result = service.refresh({"hospital": ["General"]})

        assert [s.hospital for s in result.data] == ["General"]

    def test_refresh_failure_keeps_live_set(self, memory_storage, fake_remote, mock_streamlit):
        service, _, sessions = build(memory_storage, fake_remote)
        service.submit(make_session())
        fake_remote.fail_all = True

        result = service.refresh()

        assert not result.success
        assert result.error_code == "REMOTE_001"
        assert len(sessions) == 1
        mock_streamlit.error.assert_not_called()
        mock_streamlit.warning.assert_not_called()

    def test_results_carry_pending_count(self, memory_storage, fake_remote, mock_streamlit):
        service, _, _ = build(memory_storage, fake_remote)
        fake_remote.fail_all = True
        service.submit(make_session())

        failed = service.refresh()
        assert failed.remote_unavailable
        assert failed.pending_count == 1

        fake_remote.fail_all = False
        succeeded = service.refresh()
        assert succeeded.success
        assert not succeeded.remote_unavailable
        assert succeeded.pending_count == 1

    def test_benchmark_population_is_unfiltered(self, memory_storage, fake_remote, mock_streamlit):
        fake_remote.create(make_session(hospital="General"))
        fake_remote.create(make_session(hospital="Other"))
        service, _, _ = build(memory_storage, fake_remote)

        result = service.fetch_benchmark_population()

        assert len(result.data) == 2
