# =============================================================================
# tests/integration/test_offline_roundtrip.py
# Integration Test: Offline Capture -> Restart -> Reconnect -> Dashboard
# =============================================================================

from datetime import date

from caretrack_core.analytics.aggregation import (
    ALL_HOSPITALS,
    filter_sessions,
    leaderboard,
    metric_averages,
    month_over_month,
)
from caretrack_core.analytics.reporting import metric_summary_frame
from caretrack_core.bootstrap import build_app
from caretrack_core.config import AppConfig
from conftest import make_session


class TestOfflineRoundTrip:
    """Full flow against a real SQLite queue and an in-memory remote store"""

    def test_three_offline_sessions_survive_restart_and_sync(self, tmp_path, fake_remote, audit_sink):
        config = AppConfig(queue_db_path=tmp_path / "queue.db")

        # Offline shift
        app = build_app(
            config=config,
            remote=fake_remote,
            audit=audit_sink,
            probe=lambda: False,
            current_user="Night nurse",
        )
        app.start()
        drafts = [
            make_session("2025-03-03", "General", "Ward 1", matt_applied=(9, 10)),
            make_session("2025-03-04", "General", "Ward 2", matt_applied=(8, 10)),
            make_session("2025-03-05", "St Mary's", "ICU", matt_applied=(5, 10)),
        ]
        temp_ids = [app.service.submit(draft).id for draft in drafts]
        assert all(t.startswith("pending-") for t in temp_ids)
        assert app.service.status_message() == "3 sessions pending"

        # Process restart; a different user signs in
        restarted = build_app(
            config=config,
            remote=fake_remote,
            audit=audit_sink,
            probe=lambda: False,
        )
        restarted.set_current_user("Day nurse")
        restarted.start()
        assert [s.id for s in restarted.sessions.pending()] == temp_ids

        # Connectivity returns
        restarted.monitor.set_online(True)

        assert len(restarted.queue) == 0
        assert [s.id for s in restarted.sessions.snapshot()] == ["srv-1", "srv-2", "srv-3"]
        assert {s.logged_by for s in fake_remote.created} == {"Day nurse"}
        assert [e.details["temp_id"] for e in audit_sink.events] == temp_ids

        # Dashboard over the refreshed data
        result = restarted.service.refresh()
        assert result.success
        sessions = filter_sessions(result.data, ALL_HOSPITALS, "2025-03-01", "2025-03-31")
        assert metric_averages(sessions)["matt_applied"] == 73
        board = leaderboard(sessions)
        assert [r.key for r in board.top_performers] == ["General", "St Mary's"]
        mom = month_over_month(sessions, today=date(2025, 3, 20))
        assert mom.current_average == 73
        assert mom.previous_average is None
        assert metric_summary_frame(sessions).iloc[0]["Numerator Total"] == 22

    def test_partial_failure_is_retried_on_next_reconnect(self, tmp_path, fake_remote):
        config = AppConfig(queue_db_path=tmp_path / "queue.db")
        app = build_app(config=config, remote=fake_remote, probe=lambda: False)
        app.start()
        for note in ("one", "two", "three"):
            app.service.submit(make_session(notes=note))

        fake_remote.fail_creates_for = {"two"}
        app.monitor.set_online(True)
        assert [e.session.notes for e in app.queue.list()] == ["two"]

        app.monitor.set_online(False)
        fake_remote.fail_creates_for = set()
        app.monitor.set_online(True)

        assert len(app.queue) == 0
        assert [s.notes for s in fake_remote.created] == ["one", "three", "two"]
