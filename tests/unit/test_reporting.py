# =============================================================================
# tests/unit/test_reporting.py
# Unit Tests for Summary Tables
# =============================================================================

import pandas as pd

from caretrack_core.analytics.reporting import (
    SUMMARY_COLUMNS,
    hospital_breakdown_frame,
    metric_summary_frame,
    sessions_frame,
    trend_frame,
)
from conftest import make_session


class TestSessionsFrame:
    def test_sorted_by_date_with_na_for_missing(self, sample_sessions):
        frame = sessions_frame(reversed(sample_sessions))
        assert list(frame["id"]) == ["a1", "a2", "b1", "b2"]
        assert frame.loc[0, "MATT Applied"] == 90
        assert pd.isna(frame.loc[3, "MATT Applied"])

    def test_pending_flag(self):
        frame = sessions_frame([make_session(id="pending-1-abcdef")])
        assert bool(frame.loc[0, "pending"])

    def test_empty(self):
        frame = sessions_frame([])
        assert frame.empty
        assert "Air Supply in Room" in frame.columns


class TestTrendFrame:
    """Test the compliance-over-time chart data"""

    def test_one_row_per_day_in_date_order(self):
        frame = trend_frame([
            make_session("2025-02-01", matt_applied=(1, 2)),
            make_session("2025-01-10", matt_applied=(9, 10)),
            make_session("2025-01-10", matt_applied=(7, 10), air_supply=(1, 4)),
        ])
        assert list(frame.index) == [pd.Timestamp("2025-01-10"), pd.Timestamp("2025-02-01")]
        assert list(frame["MATT Applied"]) == [80, 50]
        assert frame.loc[pd.Timestamp("2025-01-10"), "Air Supply in Room"] == 25
        assert pd.isna(frame.loc[pd.Timestamp("2025-02-01"), "Air Supply in Room"])
        assert str(frame["MATT Applied"].dtype) == "Int64"

    def test_empty(self):
        frame = trend_frame([])
        assert frame.empty
        assert "MATT Applied" in frame.columns


class TestMetricSummary:
    """Test the per-metric export summary"""

    def test_columns_and_values(self, sample_sessions):
        frame = metric_summary_frame(sample_sessions)
        assert list(frame.columns) == SUMMARY_COLUMNS
        assert len(frame) == 7

        matt = frame.iloc[0]
        assert matt["Metric"] == "MATT Applied"
        assert matt["Average"] == 87
        assert matt["Status"] == "MONITOR"
        assert matt["Sessions With Data"] == 3
        assert matt["Numerator Total"] == 26
        assert matt["Denominator Total"] == 30

    def test_metric_without_data(self, sample_sessions):
        frame = metric_summary_frame(sample_sessions)
        turning = frame[frame["Metric"] == "Turning & Repositioning"].iloc[0]
        assert pd.isna(turning["Average"])
        assert turning["Status"] == "N/A"
        assert turning["Sessions With Data"] == 0


class TestHospitalBreakdown:
    def test_one_row_per_hospital(self, sample_sessions):
        frame = hospital_breakdown_frame(sample_sessions)
        assert list(frame["Hospital"]) == ["General", "St Mary's"]
        assert list(frame["Sessions"]) == [2, 2]
        general = frame.iloc[0]
        assert general["Overall Average"] == 75     # 100, 50, 75
        assert general["MATT Applied"] == 100

    def test_empty(self):
        frame = hospital_breakdown_frame([])
        assert frame.empty
        assert list(frame.columns[:3]) == ["Hospital", "Sessions", "Overall Average"]
