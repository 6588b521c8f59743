# =============================================================================
# caretrack_core/__init__.py
# CareTrack Core - offline session write path and compliance analytics
# =============================================================================
"""
CareTrack Core

Wound-care compliance logging: typed session records, an offline pending-write
queue with automatic sync, and the aggregation engine that feeds dashboards,
rankings and exports.
"""

__version__ = "0.1.0"
