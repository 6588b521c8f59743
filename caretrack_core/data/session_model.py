# =============================================================================
# caretrack_core/data/session_model.py
# Typed Session Record and Remote Record Mapping
# =============================================================================
"""
Session - one compliance-logging event.

A session carries one optional numerator/denominator Ratio per metric as a
real attribute (named after the metric id), so every aggregation iterates the
static METRICS list instead of building column names by hand.

Ids live in two spaces:
- temporary ids ("pending-<ms>-<hex>") minted on the device while offline
- durable ids assigned by the remote store on a successful create
"""

from __future__ import annotations
import math
import re
import secrets
import time
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Container, Dict, Iterator, Mapping, Optional, Tuple, Union

from caretrack_core.data.metrics import METRICS, METRIC_IDS, MetricDefinition
from caretrack_core.errors import SessionValidationError

TEMP_ID_PREFIX = "pending-"

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Fields replaced wholesale by an edit (identity and authorship are not)
TEXT_FIELDS = ("date", "hospital", "location", "protocol_for_use", "notes")
MUTABLE_FIELDS = TEXT_FIELDS + METRIC_IDS


@dataclass(frozen=True)
class Ratio:
    """A numerator/denominator pair; either side may be absent."""
    numerator: Optional[int] = None
    denominator: Optional[int] = None

    @property
    def is_set(self) -> bool:
        """Both sides present and a non-zero denominator."""
        return (
            self.numerator is not None
            and self.denominator is not None
            and self.denominator != 0
        )


@dataclass
class Session:
    """A single wound-care compliance session."""
    date: str
    id: Optional[str] = None
    hospital: Optional[str] = None
    location: Optional[str] = None
    protocol_for_use: Optional[str] = None
    notes: Optional[str] = None
    logged_by: Optional[str] = None
    created_at: Optional[str] = None

    # One field per MetricDefinition id
    matt_applied: Optional[Ratio] = None
    wedges_applied: Optional[Ratio] = None
    turning_criteria: Optional[Ratio] = None
    matt_proper: Optional[Ratio] = None
    wedges_in_room: Optional[Ratio] = None
    wedge_offload: Optional[Ratio] = None
    air_supply: Optional[Ratio] = None

    def ratio(self, metric: Union[MetricDefinition, str]) -> Optional[Ratio]:
        """Return the ratio recorded for a metric (None when not logged)."""
        metric_id = metric.id if isinstance(metric, MetricDefinition) else metric
        if metric_id not in METRIC_IDS:
            raise KeyError(f"Unknown metric: {metric_id}")
        return getattr(self, metric_id)

    def ratios(self) -> Iterator[Tuple[MetricDefinition, Optional[Ratio]]]:
        """Iterate (metric, ratio) pairs in METRICS order."""
        for metric in METRICS:
            yield metric, getattr(self, metric.id)

    @property
    def is_pending(self) -> bool:
        """True while the session only exists in the local pending queue."""
        return is_temporary_id(self.id)


_SESSION_FIELDS = {f.name for f in fields(Session)}
_missing_metric_fields = [m for m in METRIC_IDS if m not in _SESSION_FIELDS]
if _missing_metric_fields:
    raise RuntimeError(f"Session is missing metric fields: {_missing_metric_fields}")


# =============================================================================
# IDS AND TIMESTAMPS
# =============================================================================

def is_temporary_id(session_id: Optional[str]) -> bool:
    """True for client-minted ids that have not been synced yet."""
    return isinstance(session_id, str) and session_id.startswith(TEMP_ID_PREFIX)


def mint_temp_id(existing: Container[str] = (), now: Optional[float] = None) -> str:
    """
    Mint a temporary id unique among the given existing ids.

    Format: "pending-<epoch ms>-<6 hex chars>".
    """
    millis = int((now if now is not None else time.time()) * 1000)
    while True:
        candidate = f"{TEMP_ID_PREFIX}{millis}-{secrets.token_hex(3)}"
        if candidate not in existing:
            return candidate


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# VALIDATION
# =============================================================================

def validate_session(session: Session) -> None:
    """
    Validate a session before it reaches the queue or the remote store.

    Raises:
        SessionValidationError: on a missing/malformed date or a negative or
            non-integer count
    """
    if not session.date:
        raise SessionValidationError("Session date is required", field="date")

    if not isinstance(session.date, str) or not ISO_DATE_PATTERN.match(session.date):
        raise SessionValidationError(
            "Session date must be formatted YYYY-MM-DD",
            field="date",
            value=session.date,
        )
    try:
        datetime.strptime(session.date, "%Y-%m-%d")
    except ValueError:
        raise SessionValidationError(
            "Session date is not a valid calendar date",
            field="date",
            value=session.date,
        )

    for metric, ratio in session.ratios():
        if ratio is None:
            continue
        for side, value in (("num", ratio.numerator), ("den", ratio.denominator)):
            if value is None:
                continue
            column = f"{metric.id}_{side}"
            if isinstance(value, bool) or not isinstance(value, int):
                raise SessionValidationError(
                    f"{metric.label} counts must be whole numbers",
                    field=column,
                    value=value,
                )
            if value < 0:
                raise SessionValidationError(
                    f"{metric.label} counts cannot be negative",
                    field=column,
                    value=value,
                )


# =============================================================================
# RECORD MAPPING
# =============================================================================

def _coerce_count(value: Any, column: str) -> Optional[int]:
    """Turn a stored or form-entered count into an int (None when blank)."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise SessionValidationError("Counts must be whole numbers", field=column, value=value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        raise SessionValidationError("Counts must be whole numbers", field=column, value=value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            raise SessionValidationError("Counts must be whole numbers", field=column, value=value)
    raise SessionValidationError("Counts must be whole numbers", field=column, value=value)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def from_record(row: Mapping[str, Any]) -> Session:
    """
    Build a Session from a flat record (remote row, queue payload or form).

    Metric columns are "<metric id>_num" / "<metric id>_den". A metric whose
    columns are both blank is left unset.
    """
    ratios: Dict[str, Optional[Ratio]] = {}
    for metric in METRICS:
        num = _coerce_count(row.get(metric.numerator_column), metric.numerator_column)
        den = _coerce_count(row.get(metric.denominator_column), metric.denominator_column)
        ratios[metric.id] = None if num is None and den is None else Ratio(num, den)

    raw_date = row.get("date")
    session_date = str(raw_date)[:10] if raw_date else ""
    raw_id = row.get("id")
    raw_created = row.get("created_at")

    return Session(
        date=session_date,
        id=str(raw_id) if raw_id is not None else None,
        hospital=_clean_text(row.get("hospital")),
        location=_clean_text(row.get("location")),
        protocol_for_use=_clean_text(row.get("protocol_for_use")),
        notes=_clean_text(row.get("notes")),
        logged_by=_clean_text(row.get("logged_by")),
        created_at=str(raw_created) if raw_created is not None else None,
        **ratios,
    )


def to_record(session: Session, include_meta: bool = False) -> Dict[str, Any]:
    """
    Flatten a Session into the remote record shape.

    Args:
        session: Session to flatten
        include_meta: Also include id and created_at (used for the local
            queue; the remote store assigns both on create)
    """
    record: Dict[str, Any] = {
        "date": session.date,
        "hospital": session.hospital,
        "location": session.location,
        "protocol_for_use": session.protocol_for_use,
        "notes": session.notes,
        "logged_by": session.logged_by,
    }
    for metric, ratio in session.ratios():
        record[metric.numerator_column] = ratio.numerator if ratio else None
        record[metric.denominator_column] = ratio.denominator if ratio else None

    if include_meta:
        record["id"] = session.id
        record["created_at"] = session.created_at

    return record
