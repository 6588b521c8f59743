from __future__ import annotations
from datetime import date
import streamlit as st

from caretrack_core.analytics.aggregation import (
    ALL_HOSPITALS,
    GROUP_BY_HOSPITAL,
    GROUP_BY_LOCATION,
    available_hospitals,
    benchmark_comparison,
    filter_sessions,
    leaderboard,
    metric_averages,
    month_over_month,
    overall_average,
)
from caretrack_core.analytics.ratios import tier_color, tier_label
from caretrack_core.analytics.reporting import (
    hospital_breakdown_frame,
    metric_summary_frame,
    sessions_frame,
    trend_frame,
)
from caretrack_core.bootstrap import CareTrackApp, build_app
from caretrack_core.config import load_config
from caretrack_core.data.metrics import METRICS
from caretrack_core.data.session_model import Ratio, Session
from caretrack_core.errors import ErrorContext, handle_error
from caretrack_core.logging import setup_logging

# ============================================================================
# PAGE CONFIGURATION
# ============================================================================
st.set_page_config(
    page_title="CareTrack - Pressure Injury Compliance",
    page_icon="🩹",
    layout="wide",
)


# One app (queue, monitor thread, sync engine) per server process: a CareTrack
# install is one device at one station, shared by whoever is signed in there.
@st.cache_resource
def get_app() -> CareTrackApp:
    config = load_config()
    setup_logging(level=config.log_level)
    app = build_app(config=config)
    app.start(start_monitoring=True)
    return app


try:
    app = get_app()
except Exception as e:
    handle_error(e)
    st.stop()

service = app.service
# The monitor thread cannot read session state; hand it the name every run
app.set_current_user(st.session_state.get("display_name"))

if "loaded" not in st.session_state:
    result = service.refresh()
    if result.remote_unavailable:
        st.warning(f"Showing sessions stored on this device only ({result.pending_count} waiting to sync)")
    elif not result:
        st.warning(f"Could not load sessions: {result.error}")
    st.session_state.loaded = True

# ============================================================================
# SIDEBAR - identity, connectivity, filters
# ============================================================================
with st.sidebar:
    st.text_input("Your name", key="display_name")

    if app.monitor.is_online:
        st.success("Online")
    else:
        st.warning("Offline - new sessions are saved on this device")
        last_online = app.monitor.get_status_display()["last_online"]
        if last_online:
            st.caption(f"Last online {last_online[:16].replace('T', ' ')}")

    st.caption(service.status_message())
    sync_status = app.sync_engine.get_status_display()
    if sync_status["last_success"]:
        st.caption(f"Last synced {sync_status['last_success'][:16].replace('T', ' ')}")
    waiting = app.sessions.pending()
    if waiting:
        with st.expander(f"Waiting to sync ({len(waiting)})"):
            for pending in waiting:
                st.write(f"{pending.date} {pending.hospital or ''} {pending.location or ''}")
    if app.queue.warning:
        st.error(app.queue.warning)

    if service.pending_count and st.button("Sync now", disabled=not app.monitor.is_online):
        with ErrorContext("Syncing pending sessions"):
            outcome = app.sync_now()
            if not outcome.already_running:
                st.success(outcome.message)
            if outcome.failed:
                st.warning(f"{outcome.failed} session(s) could not be synced and will be retried")

    if st.button("Refresh"):
        result = service.refresh()
        if result.remote_unavailable:
            st.warning(f"Server unreachable, showing the last loaded sessions ({result.pending_count} waiting to sync)")
        elif not result:
            st.warning(f"Refresh failed: {result.error}")

    st.divider()
    all_sessions = service.sessions
    hospital = st.selectbox("Hospital", [ALL_HOSPITALS] + available_hospitals(all_sessions))
    date_from = st.date_input("From", value=None)
    date_to = st.date_input("To", value=None)

filtered = filter_sessions(
    all_sessions,
    hospital=hospital,
    date_from=date_from.isoformat() if date_from else None,
    date_to=date_to.isoformat() if date_to else None,
)

st.title("CareTrack")
st.caption(f"{len(filtered)} of {len(all_sessions)} sessions in view")

tab_dashboard, tab_log, tab_sessions = st.tabs(["Dashboard", "Log Session", "Sessions"])

# ============================================================================
# DASHBOARD
# ============================================================================
with tab_dashboard:
    overall = overall_average(filtered)
    mom = month_over_month(filtered)

    col1, col2, col3 = st.columns(3)
    col1.metric("Overall compliance", f"{overall}%" if overall is not None else "N/A")
    col1.markdown(
        f"<span style='color:{tier_color(overall)};font-weight:600'>{tier_label(overall)}</span>",
        unsafe_allow_html=True,
    )
    if mom.has_data:
        col2.metric(
            f"This month ({mom.current_month})",
            f"{mom.current_average}%" if mom.current_average is not None else "N/A",
            f"{mom.delta:+d} pts" if mom.delta is not None else None,
        )
    col3.metric("Pending sync", service.pending_count)

    averages = metric_averages(filtered)
    columns = st.columns(len(METRICS))
    for column, metric in zip(columns, METRICS):
        value = averages[metric.id]
        column.metric(metric.label, f"{value}%" if value is not None else "N/A", tier_label(value))

    if app.monitor.is_online and st.checkbox("Compare with all CareTrack sites"):
        population = service.fetch_benchmark_population()
        if population:
            comparison = benchmark_comparison(filtered, population.data)
            overall_standing = comparison.overall.standing
            st.caption(
                f"Benchmark across {comparison.population_size} sessions"
                + (f", overall {overall_standing}" if overall_standing else "")
            )
            st.dataframe([
                {
                    "Metric": c.metric.label,
                    "Yours": c.value,
                    "Benchmark": c.benchmark,
                    "Difference": c.delta,
                    "Standing": c.standing or "",
                }
                for c in comparison.metrics
            ])
        else:
            st.warning(f"Benchmark unavailable: {population.error}")

    group_by = st.radio("Rank by", [GROUP_BY_HOSPITAL, GROUP_BY_LOCATION], horizontal=True)
    board = leaderboard(filtered, group_by=group_by)
    left, right = st.columns(2)
    with left:
        st.subheader("Top performers")
        for ranking in board.top_performers:
            st.write(f"**{ranking.key}** {ranking.score}% ({ranking.session_count} sessions)")
    with right:
        st.subheader("Needs attention")
        for ranking in board.needs_attention:
            st.write(f"**{ranking.key}** {ranking.score}% ({ranking.session_count} sessions)")

    st.subheader("Compliance trends over time")
    trends = trend_frame(filtered)
    if trends.empty:
        st.caption("No sessions in view")
    else:
        st.line_chart(trends.astype("float64"))

    st.subheader("Summary")
    summary = metric_summary_frame(filtered)
    st.dataframe(summary, hide_index=True)
    st.download_button("Download summary (CSV)", summary.to_csv(index=False), "caretrack_summary.csv")
    st.dataframe(hospital_breakdown_frame(filtered), hide_index=True)

# ============================================================================
# LOG SESSION
# ============================================================================
with tab_log:
    with st.form("log_session", clear_on_submit=True):
        session_date = st.date_input("Date", value=date.today())
        form_hospital = st.text_input("Hospital")
        location = st.text_input("Location / unit")
        protocol = st.text_input("Protocol for use")

        ratios = {}
        for metric in METRICS:
            num_col, den_col = st.columns(2)
            num = num_col.number_input(f"{metric.label} - compliant", min_value=0, step=1, value=None)
            den = den_col.number_input(f"{metric.label} - audited", min_value=0, step=1, value=None)
            ratios[metric.id] = None if num is None and den is None else Ratio(
                int(num) if num is not None else None,
                int(den) if den is not None else None,
            )
        notes = st.text_area("Notes")

        if st.form_submit_button("Save session"):
            draft = Session(
                date=session_date.isoformat(),
                hospital=form_hospital or None,
                location=location or None,
                protocol_for_use=protocol or None,
                notes=notes or None,
                **ratios,
            )
            with ErrorContext("Saving session"):
                saved = service.submit(draft)
                if saved.is_pending:
                    st.info("Saved on this device. It will sync when you are back online.")
                else:
                    st.success("Session saved")

# ============================================================================
# SESSIONS
# ============================================================================
with tab_sessions:
    table = sessions_frame(filtered)
    st.dataframe(table, hide_index=True)
    st.download_button("Download sessions (CSV)", table.to_csv(index=False), "caretrack_sessions.csv")

    durable_ids = [s.id for s in filtered if s.id and not s.is_pending]
    if durable_ids:
        selected = st.selectbox("Delete a session", [""] + durable_ids)
        if selected and st.button("Delete", type="primary"):
            with ErrorContext("Deleting session", success_message="Session deleted"):
                service.delete(selected)
