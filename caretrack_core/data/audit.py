# =============================================================================
# caretrack_core/data/audit.py
# Audit Events for Session Create / Edit / Delete
# =============================================================================
"""
One audit event is emitted per create, edit and delete. The audit store
itself is a collaborator; the core only builds the payload and hands it to an
AuditSink.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from caretrack_core.data.session_model import MUTABLE_FIELDS, Session, utc_now_iso
from caretrack_core.errors import RemoteStoreError
from caretrack_core.logging import get_logger

logger = get_logger(__name__)

ACTION_CREATE = "create"
ACTION_EDIT = "edit"
ACTION_DELETE = "delete"


@dataclass
class AuditEvent:
    """Structured audit payload."""
    action: str
    actor: Optional[str]
    timestamp: str = field(default_factory=utc_now_iso)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "actor": self.actor,
            "timestamp": self.timestamp,
            "details": self.details,
        }


class AuditSink(Protocol):
    """Anything that can persist an AuditEvent."""

    def record(self, event: AuditEvent) -> None:
        ...


def _ratio_value(value: Any) -> Any:
    # Ratios are stored as [num, den] so the diff stays JSON-friendly
    if value is None:
        return None
    if hasattr(value, "numerator"):
        return [value.numerator, value.denominator]
    return value


def diff_sessions(before: Session, after: Session) -> Dict[str, Dict[str, Any]]:
    """
    Field-level diff of the mutable fields between two snapshots.

    Returns:
        {field: {"from": old, "to": new}} for every field that changed
    """
    changes: Dict[str, Dict[str, Any]] = {}
    for name in MUTABLE_FIELDS:
        old = _ratio_value(getattr(before, name))
        new = _ratio_value(getattr(after, name))
        if old != new:
            changes[name] = {"from": old, "to": new}
    return changes


class SupabaseAuditSink:
    """Writes audit events into a Supabase table."""

    def __init__(self, client, table_name: str = "audit_log"):
        self.client = client
        self.table_name = table_name

    def record(self, event: AuditEvent) -> None:
        try:
            self.client.table(self.table_name).insert(event.to_record()).execute()
        except Exception as e:
            raise RemoteStoreError(
                f"Failed to write audit event: {e}",
                operation="audit",
                table=self.table_name,
            ) from e


def emit_audit(sink: Optional[AuditSink], event: AuditEvent) -> bool:
    """
    Hand an event to the sink without letting audit failures break a write.

    Returns:
        True if the sink accepted the event
    """
    if sink is None:
        return False
    try:
        sink.record(event)
        return True
    except Exception as e:
        logger.warning(f"Audit event '{event.action}' not recorded: {e}")
        return False
