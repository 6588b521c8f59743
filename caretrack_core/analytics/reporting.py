# =============================================================================
# caretrack_core/analytics/reporting.py
# Tabular Summaries for Dashboards and Exports
# =============================================================================
"""
pandas tables built from the aggregation engine. The PDF, slide and
spreadsheet renderers consume these frames; they never recompute averages on
their own.
"""

from __future__ import annotations
from typing import Dict, Iterable, List

import pandas as pd

from caretrack_core.analytics.aggregation import (
    available_hospitals,
    filter_sessions,
    metric_average,
    overall_average,
    session_percentage,
    session_percentages,
)
from caretrack_core.analytics.ratios import tier_label
from caretrack_core.data.metrics import METRICS
from caretrack_core.data.session_model import Session

SUMMARY_COLUMNS = [
    "Metric",
    "Average",
    "Status",
    "Sessions With Data",
    "Numerator Total",
    "Denominator Total",
]


def _nullable_ints(values: List) -> pd.arrays.IntegerArray:
    return pd.array(values, dtype="Int64")


def sessions_frame(sessions: Iterable[Session]) -> pd.DataFrame:
    """
    One row per session with each metric's percentage (chart/trend data).

    Missing percentages are <NA>, never 0.
    """
    sessions = list(sessions)
    base_columns = ["id", "date", "hospital", "location", "logged_by", "pending"]
    metric_columns = [m.label for m in METRICS]

    if not sessions:
        return pd.DataFrame(columns=base_columns + metric_columns)

    frame = pd.DataFrame({
        "id": [s.id for s in sessions],
        "date": [s.date for s in sessions],
        "hospital": [s.hospital for s in sessions],
        "location": [s.location for s in sessions],
        "logged_by": [s.logged_by for s in sessions],
        "pending": [s.is_pending for s in sessions],
    })
    percentages = [session_percentages(s) for s in sessions]
    for metric in METRICS:
        frame[metric.label] = _nullable_ints([p[metric.id] for p in percentages])

    return frame.sort_values("date", kind="stable").reset_index(drop=True)


def trend_frame(sessions: Iterable[Session]) -> pd.DataFrame:
    """
    Per-day average of each metric, indexed by date (line chart data).

    Days where no session carried a metric are <NA> for that metric.
    """
    by_date: Dict[str, List[Session]] = {}
    for session in sessions:
        by_date.setdefault(session.date, []).append(session)
    dates = sorted(by_date)

    frame = pd.DataFrame(index=pd.DatetimeIndex(pd.to_datetime(dates), name="date"))
    for metric in METRICS:
        frame[metric.label] = _nullable_ints([metric_average(by_date[d], metric) for d in dates])
    return frame


def metric_summary_frame(sessions: Iterable[Session]) -> pd.DataFrame:
    """
    Per-metric summary: average, status text, how many sessions carried the
    metric and the raw numerator/denominator totals.
    """
    sessions = list(sessions)
    rows = []
    for metric in METRICS:
        avg = metric_average(sessions, metric)
        with_data = sum(1 for s in sessions if session_percentage(s, metric) is not None)
        ratios = [s.ratio(metric) for s in sessions]
        rows.append({
            "Metric": metric.label,
            "Average": avg,
            "Status": tier_label(avg),
            "Sessions With Data": with_data,
            "Numerator Total": sum(r.numerator or 0 for r in ratios if r),
            "Denominator Total": sum(r.denominator or 0 for r in ratios if r),
        })

    frame = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    frame["Average"] = _nullable_ints([row["Average"] for row in rows])
    return frame


def hospital_breakdown_frame(sessions: Iterable[Session]) -> pd.DataFrame:
    """Per-hospital session count, overall average and per-metric averages."""
    sessions = list(sessions)
    columns = ["Hospital", "Sessions", "Overall Average"] + [m.label for m in METRICS]
    hospitals = available_hospitals(sessions)
    if not hospitals:
        return pd.DataFrame(columns=columns)

    data = {"Hospital": hospitals, "Sessions": [], "Overall Average": []}
    per_metric = {m.label: [] for m in METRICS}
    for hospital in hospitals:
        members = filter_sessions(sessions, hospital=hospital)
        data["Sessions"].append(len(members))
        data["Overall Average"].append(overall_average(members))
        for metric in METRICS:
            per_metric[metric.label].append(metric_average(members, metric))

    frame = pd.DataFrame({"Hospital": data["Hospital"], "Sessions": data["Sessions"]})
    frame["Overall Average"] = _nullable_ints(data["Overall Average"])
    for label, values in per_metric.items():
        frame[label] = _nullable_ints(values)
    return frame
