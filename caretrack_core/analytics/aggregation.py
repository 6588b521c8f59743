# =============================================================================
# caretrack_core/analytics/aggregation.py
# Compliance Aggregation Engine
# =============================================================================
"""
All analytics consumed by dashboards, rankings and exports, derived on demand
from an in-memory session collection. Nothing here is cached or incremental:
each call recomputes from the sessions it is given.

Every function accepts an empty collection and returns None/empty results for
it instead of raising.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from caretrack_core.analytics.ratios import ComplianceTier, average, percentage, tier
from caretrack_core.data.metrics import METRICS, MetricDefinition
from caretrack_core.data.session_model import Session

ALL_HOSPITALS = "All"

GROUP_BY_HOSPITAL = "hospital"
GROUP_BY_LOCATION = "location"

LOCATION_SEPARATOR = " · "

TREND_WINDOW = 3
LEADERBOARD_SIZE = 3


# =============================================================================
# FILTERING
# =============================================================================

def filter_sessions(
    sessions: Iterable[Session],
    hospital: Optional[str] = ALL_HOSPITALS,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> List[Session]:
    """
    Sessions matching every active filter.

    Args:
        sessions: Sessions to filter
        hospital: "All" (or None) for every hospital, otherwise an exact match
        date_from: Inclusive lower bound, "YYYY-MM-DD"
        date_to: Inclusive upper bound, "YYYY-MM-DD"

    Zero-padded ISO dates compare correctly as strings, so bounds are checked
    lexicographically.
    """
    result = []
    for session in sessions:
        if hospital and hospital != ALL_HOSPITALS and session.hospital != hospital:
            continue
        session_date = session.date or ""
        if date_from and session_date < date_from:
            continue
        if date_to and session_date > date_to:
            continue
        result.append(session)
    return result


def available_hospitals(sessions: Iterable[Session]) -> List[str]:
    """Sorted distinct hospital names (options for the hospital filter)."""
    return sorted({s.hospital for s in sessions if s.hospital})


# =============================================================================
# AVERAGES
# =============================================================================

def session_percentage(session: Session, metric: MetricDefinition) -> Optional[int]:
    """Percentage for one metric of one session (None when unset)."""
    ratio = session.ratio(metric)
    if ratio is None:
        return None
    return percentage(ratio.numerator, ratio.denominator)


def session_percentages(session: Session) -> Dict[str, Optional[int]]:
    """{metric id: percentage} for one session, in METRICS order."""
    return {metric.id: session_percentage(session, metric) for metric in METRICS}


def metric_average(sessions: Iterable[Session], metric: MetricDefinition) -> Optional[int]:
    return average(session_percentage(s, metric) for s in sessions)


def metric_averages(sessions: Iterable[Session]) -> Dict[str, Optional[int]]:
    """
    Per-metric average across sessions.

    Returns:
        {metric id: average} for all seven metrics; None where no session has
        that metric set
    """
    sessions = list(sessions)
    return {metric.id: metric_average(sessions, metric) for metric in METRICS}


def overall_average(sessions: Iterable[Session]) -> Optional[int]:
    """
    Cross-metric average: every set percentage of every metric and session
    pooled into one average.
    """
    return average(
        session_percentage(s, metric) for s in sessions for metric in METRICS
    )


def delta(current: Optional[int], previous: Optional[int]) -> Optional[int]:
    """current - previous, or None when either side has no data."""
    if current is None or previous is None:
        return None
    return current - previous


def _standing(difference: Optional[int]) -> Optional[str]:
    if difference is None:
        return None
    if difference > 0:
        return "ahead"
    if difference < 0:
        return "behind"
    return "even"


# =============================================================================
# CROSS-TENANT BENCHMARK
# =============================================================================

@dataclass
class MetricComparison:
    """A filtered average next to its cross-tenant benchmark."""
    metric: Optional[MetricDefinition]
    value: Optional[int]
    benchmark: Optional[int]

    @property
    def delta(self) -> Optional[int]:
        return delta(self.value, self.benchmark)

    @property
    def standing(self) -> Optional[str]:
        """One of ahead / behind / even, or None when not comparable."""
        return _standing(self.delta)


@dataclass
class BenchmarkComparison:
    metrics: List[MetricComparison] = field(default_factory=list)
    overall: MetricComparison = field(default_factory=lambda: MetricComparison(None, None, None))
    population_size: int = 0


def benchmark_comparison(
    filtered: Sequence[Session],
    population: Sequence[Session],
) -> BenchmarkComparison:
    """
    Compare the viewer's filtered sessions against the whole population.

    Args:
        filtered: Sessions in the current view
        population: Unfiltered cross-tenant sessions (a separate fetch, never
            restricted to the viewer's own hospitals)
    """
    own = metric_averages(filtered)
    benchmark = metric_averages(population)
    return BenchmarkComparison(
        metrics=[
            MetricComparison(metric, own[metric.id], benchmark[metric.id])
            for metric in METRICS
        ],
        overall=MetricComparison(None, overall_average(filtered), overall_average(population)),
        population_size=len(population),
    )


# =============================================================================
# MONTH OVER MONTH
# =============================================================================

@dataclass
class MetricDelta:
    metric: MetricDefinition
    current: Optional[int]
    previous: Optional[int]

    @property
    def delta(self) -> Optional[int]:
        return delta(self.current, self.previous)


@dataclass
class MonthOverMonth:
    """Current calendar month compared with the month before it."""
    current_month: str
    previous_month: str
    current_average: Optional[int] = None
    previous_average: Optional[int] = None
    current_count: int = 0
    previous_count: int = 0
    metrics: List[MetricDelta] = field(default_factory=list)

    @property
    def delta(self) -> Optional[int]:
        return delta(self.current_average, self.previous_average)

    @property
    def has_data(self) -> bool:
        """True when either month holds at least one session."""
        return (self.current_count + self.previous_count) > 0


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def month_over_month(
    sessions: Iterable[Session],
    today: Optional[date] = None,
) -> MonthOverMonth:
    """
    Partition sessions by their session date into the current calendar month
    and the immediately preceding one, then average each side independently.

    Args:
        sessions: Sessions (usually already filtered)
        today: Reference day (defaults to date.today())
    """
    today = today or date.today()
    current_key = f"{today.year:04d}-{today.month:02d}"
    prev_year, prev_month = previous_month(today.year, today.month)
    previous_key = f"{prev_year:04d}-{prev_month:02d}"

    current: List[Session] = []
    previous: List[Session] = []
    for session in sessions:
        month_key = (session.date or "")[:7]
        if month_key == current_key:
            current.append(session)
        elif month_key == previous_key:
            previous.append(session)

    return MonthOverMonth(
        current_month=current_key,
        previous_month=previous_key,
        current_average=overall_average(current),
        previous_average=overall_average(previous),
        current_count=len(current),
        previous_count=len(previous),
        metrics=[
            MetricDelta(metric, metric_average(current, metric), metric_average(previous, metric))
            for metric in METRICS
        ],
    )


# =============================================================================
# LEADERBOARD
# =============================================================================

@dataclass
class GroupRanking:
    """Rank score and short-term trend for one hospital or location."""
    key: str
    score: int
    trend: Optional[int]
    session_count: int

    @property
    def tier(self) -> Optional[ComplianceTier]:
        return tier(self.score)


@dataclass
class Leaderboard:
    rankings: List[GroupRanking] = field(default_factory=list)
    top_performers: List[GroupRanking] = field(default_factory=list)
    needs_attention: List[GroupRanking] = field(default_factory=list)


def group_key(session: Session, group_by: str = GROUP_BY_HOSPITAL) -> Optional[str]:
    """
    Grouping key for a session.

    "hospital" groups by hospital name; "location" groups by
    "<location> · <hospital>" (just the location when no hospital is set).
    Sessions without the grouping attribute have no key.
    """
    if group_by == GROUP_BY_HOSPITAL:
        return session.hospital or None
    if group_by == GROUP_BY_LOCATION:
        if not session.location:
            return None
        if session.hospital:
            return f"{session.location}{LOCATION_SEPARATOR}{session.hospital}"
        return session.location
    raise ValueError(f"Unknown grouping: {group_by}")


def by_recency(sessions: Sequence[Session]) -> List[Session]:
    """Most recent first: session date, then creation time, then input order."""
    indexed = list(enumerate(sessions))
    indexed.sort(key=lambda pair: (pair[1].date or "", pair[1].created_at or "", pair[0]), reverse=True)
    return [session for _, session in indexed]


def trend(sessions: Sequence[Session], window: int = TREND_WINDOW) -> Optional[int]:
    """
    Average of the most recent `window` sessions minus the average of the
    `window` sessions immediately before them.
    """
    ordered = by_recency(sessions)
    recent = overall_average(ordered[:window])
    earlier = overall_average(ordered[window:2 * window])
    return delta(recent, earlier)


def leaderboard(
    sessions: Iterable[Session],
    group_by: str = GROUP_BY_HOSPITAL,
    size: int = LEADERBOARD_SIZE,
) -> Leaderboard:
    """
    Rank groups by their cross-metric average.

    Groups without any scorable data are left out. Ties keep the order in
    which groups first appear in the input. "Needs attention" lists the
    bottom `size` groups worst-first and is only filled when there are more
    than `size` groups, so the two lists never repeat each other.
    """
    groups: Dict[str, List[Session]] = {}
    for session in sessions:
        key = group_key(session, group_by)
        if key is None:
            continue
        groups.setdefault(key, []).append(session)

    rankings = []
    for key, members in groups.items():
        score = overall_average(members)
        if score is None:
            continue
        rankings.append(GroupRanking(key, score, trend(members), len(members)))

    rankings.sort(key=lambda ranking: -ranking.score)

    needs_attention = []
    if len(rankings) > size:
        needs_attention = list(reversed(rankings[-size:]))

    return Leaderboard(
        rankings=rankings,
        top_performers=rankings[:size],
        needs_attention=needs_attention,
    )
