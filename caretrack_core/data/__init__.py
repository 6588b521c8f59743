# =============================================================================
# caretrack_core/data/__init__.py
# Session Records, Metrics and Remote Storage
# =============================================================================

from caretrack_core.data.metrics import METRICS, MetricDefinition
from caretrack_core.data.session_model import Ratio, Session, from_record, to_record
from caretrack_core.data.session_set import SessionSet

__all__ = [
    "METRICS",
    "MetricDefinition",
    "Ratio",
    "Session",
    "from_record",
    "to_record",
    "SessionSet",
]
