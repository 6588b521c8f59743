# =============================================================================
# tests/unit/test_session_set.py
# Unit Tests for the Live Session Set
# =============================================================================

from dataclasses import replace

from caretrack_core.data.session_set import SessionSet
from conftest import make_session


def ids(sessions):
    return [s.id for s in sessions.snapshot()]


class TestSwap:
    """Test replacing a pending session with its synced copy"""

    def test_replaces_pending_in_place(self):
        pending = make_session(id="pending-1-aaaaaa")
        sessions = SessionSet([make_session(id="x"), pending, make_session(id="y")])

        sessions.swap("pending-1-aaaaaa", replace(pending, id="srv-1"))

        assert ids(sessions) == ["x", "srv-1", "y"]

    def test_drops_copy_a_refresh_already_added(self):
        pending = make_session(id="pending-1-aaaaaa")
        durable = replace(pending, id="srv-1")
        sessions = SessionSet([durable, make_session(id="x"), pending])

        sessions.swap("pending-1-aaaaaa", durable)

        assert ids(sessions) == ["srv-1", "x"]

    def test_appends_when_neither_id_present(self):
        sessions = SessionSet([make_session(id="x")])
        sessions.swap("pending-1-aaaaaa", make_session(id="srv-1"))
        assert ids(sessions) == ["x", "srv-1"]


class TestSessionSet:
    def test_pending_lists_temporary_ids(self):
        sessions = SessionSet([make_session(id="srv-1"), make_session(id="pending-2-bbbbbb")])
        assert [s.id for s in sessions.pending()] == ["pending-2-bbbbbb"]

    def test_remove_and_reset(self):
        sessions = SessionSet([make_session(id="a"), make_session(id="b")])
        assert sessions.remove("a")
        assert not sessions.remove("a")
        sessions.reset([make_session(id="c")])
        assert ids(sessions) == ["c"]
