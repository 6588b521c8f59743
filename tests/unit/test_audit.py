# =============================================================================
# tests/unit/test_audit.py
# Unit Tests for Audit Events
# =============================================================================

import pytest
from dataclasses import replace

from caretrack_core.data.audit import (
    AuditEvent,
    SupabaseAuditSink,
    diff_sessions,
    emit_audit,
)
from caretrack_core.data.session_model import Ratio
from caretrack_core.errors import RemoteStoreError
from conftest import make_session


class TestDiff:
    def test_only_changed_fields(self):
        before = make_session(notes="a", matt_applied=(1, 2))
        after = replace(before, notes="b", matt_applied=Ratio(1, 3))
        assert diff_sessions(before, after) == {
            "notes": {"from": "a", "to": "b"},
            "matt_applied": {"from": [1, 2], "to": [1, 3]},
        }

    def test_identity_fields_ignored(self):
        before = make_session(id="1", logged_by="A")
        after = replace(before, id="2", logged_by="B")
        assert diff_sessions(before, after) == {}

    def test_cleared_metric(self):
        before = make_session(air_supply=(2, 2))
        after = replace(before, air_supply=None)
        assert diff_sessions(before, after)["air_supply"] == {"from": [2, 2], "to": None}


class TestSinks:
    def test_supabase_sink_inserts_record(self, mock_supabase):
        event = AuditEvent(action="delete", actor="Dana", details={"session_id": "7"})
        SupabaseAuditSink(mock_supabase, table_name="audit_log").record(event)

        mock_supabase.table.assert_called_with("audit_log")
        payload = mock_supabase.table.return_value.insert.call_args[0][0]
        assert payload["action"] == "delete"
        assert payload["details"] == {"session_id": "7"}
        assert payload["timestamp"]

    def test_supabase_sink_failure(self, mock_supabase):
        mock_supabase.table.return_value.insert.return_value.execute.side_effect = RuntimeError("no table")
        with pytest.raises(RemoteStoreError):
            SupabaseAuditSink(mock_supabase).record(AuditEvent(action="create", actor=None))

    def test_emit_never_raises(self, mock_supabase):
        mock_supabase.table.side_effect = RuntimeError("no table")
        assert emit_audit(SupabaseAuditSink(mock_supabase), AuditEvent(action="create", actor=None)) is False

    def test_emit_without_sink(self):
        assert emit_audit(None, AuditEvent(action="create", actor=None)) is False

    def test_emit_success(self, audit_sink):
        assert emit_audit(audit_sink, AuditEvent(action="edit", actor="Dana"))
        assert len(audit_sink.events) == 1
