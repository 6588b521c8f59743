# =============================================================================
# caretrack_core/analytics/ratios.py
# Percentage, Compliance Tier and Average Utilities
# =============================================================================
"""
Every higher-level figure (per-metric, per-hospital, per-month, benchmark) is
built by composing percentage() and then average(). Missing data is dropped
before averaging; it is never counted as zero.

Rounding is half-up at the integer boundary: 89.5 -> 90, 69.5 -> 70.
"""

from __future__ import annotations
import math
from enum import Enum
from numbers import Real
from typing import Any, Iterable, Optional


class ComplianceTier(Enum):
    """Compliance band for a percentage."""
    ON_TARGET = "onTarget"              # >= 90
    MONITOR = "monitor"                 # >= 70 and < 90
    NEEDS_ATTENTION = "needsAttention"  # < 70


ON_TARGET_THRESHOLD = 90
MONITOR_THRESHOLD = 70

TIER_LABELS = {
    ComplianceTier.ON_TARGET: "ON TARGET",
    ComplianceTier.MONITOR: "MONITOR",
    ComplianceTier.NEEDS_ATTENTION: "NEEDS ATTENTION",
}

TIER_COLORS = {
    ComplianceTier.ON_TARGET: "#2d7a4f",        # Green
    ComplianceTier.MONITOR: "#d97706",          # Amber
    ComplianceTier.NEEDS_ATTENTION: "#c0392b",  # Red
}
NO_DATA_COLOR = "#9c9488"
NO_DATA_LABEL = "N/A"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up."""
    return int(math.floor(value + 0.5))


def _finite_number(value: Any) -> Optional[float]:
    """Parse a count into a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, Real):
        return None
    try:
        number = float(value)
    except OverflowError:
        # int beyond float range
        return None
    return number if math.isfinite(number) else None


def percentage(numerator: Any, denominator: Any) -> Optional[int]:
    """
    Compliance percentage for one numerator/denominator pair.

    Returns:
        None if the denominator is absent, zero or not finite, or the
        numerator is not finite; otherwise round_half_up(100 * n / d)
    """
    den = _finite_number(denominator)
    num = _finite_number(numerator)
    if den is None or den == 0 or num is None:
        return None
    value = 100 * num / den
    if not math.isfinite(value):
        return None
    return round_half_up(value)


def tier(value: Optional[float]) -> Optional[ComplianceTier]:
    """Bucket a percentage into a compliance tier (None stays None)."""
    if value is None:
        return None
    if value >= ON_TARGET_THRESHOLD:
        return ComplianceTier.ON_TARGET
    if value >= MONITOR_THRESHOLD:
        return ComplianceTier.MONITOR
    return ComplianceTier.NEEDS_ATTENTION


def tier_label(value: Optional[float]) -> str:
    """Status text used on dashboards and exports."""
    band = tier(value)
    return TIER_LABELS[band] if band else NO_DATA_LABEL


def tier_color(value: Optional[float]) -> str:
    band = tier(value)
    return TIER_COLORS[band] if band else NO_DATA_COLOR


def average(percentages: Iterable[Optional[float]]) -> Optional[int]:
    """
    Rounded mean of the non-null percentages.

    average([50, None, 70]) == 60; average([]) and average([None]) are None.
    """
    values = [p for p in percentages if p is not None]
    if not values:
        return None
    return round_half_up(sum(values) / len(values))
