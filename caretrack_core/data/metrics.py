# =============================================================================
# caretrack_core/data/metrics.py
# Static Compliance Metric Definitions
# =============================================================================
"""
The seven wound-care compliance metrics logged on every session.

The list is fixed at build time and is the iteration key for every
aggregation; records are never addressed by string-built column names
outside of the record mapping in session_model.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class MetricDefinition:
    """One compliance ratio tracked per session."""
    id: str
    label: str
    description: str

    @property
    def numerator_column(self) -> str:
        return f"{self.id}_num"

    @property
    def denominator_column(self) -> str:
        return f"{self.id}_den"


METRICS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        "matt_applied", "MATT Applied",
        "Qualifying patients that had MATT applied",
    ),
    MetricDefinition(
        "wedges_applied", "Wedges Applied",
        "Qualifying patients that had wedges applied",
    ),
    MetricDefinition(
        "turning_criteria", "Turning & Repositioning",
        "Patients that met criteria for turning and repositioning",
    ),
    MetricDefinition(
        "matt_proper", "MATT Applied Properly",
        "Patients that had MATT applied properly",
    ),
    MetricDefinition(
        "wedges_in_room", "Wedges in Room",
        "Patients that had wedges in room",
    ),
    MetricDefinition(
        "wedge_offload", "Proper Wedge Offloading",
        "Patients properly offloaded with wedges",
    ),
    MetricDefinition(
        "air_supply", "Air Supply in Room",
        "Qualifying patients that had air supply in room",
    ),
)

METRICS_BY_ID: Dict[str, MetricDefinition] = {m.id: m for m in METRICS}

METRIC_IDS: Tuple[str, ...] = tuple(m.id for m in METRICS)
