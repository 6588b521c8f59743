# =============================================================================
# caretrack_core/services/base_service.py
# Service Results and Shared Service Plumbing
# =============================================================================
"""
Service calls made by the page return a ServiceResult instead of raising, so
a failed fetch can fall back to what is already on screen. Every result also
carries the number of sessions still waiting in the offline queue when the
call finished; the sidebar badge reads it from there.
"""

from __future__ import annotations
from abc import ABC
from typing import Any, Callable, Optional
from dataclasses import dataclass

from caretrack_core.logging import get_logger, LogContext
from caretrack_core.errors import handle_error, CareTrackError, RemoteStoreError


@dataclass
class ServiceResult:
    """Outcome of one service call."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    pending_count: int = 0

    def __bool__(self) -> bool:
        return self.success

    @property
    def remote_unavailable(self) -> bool:
        """True when the call failed because the remote store did not answer."""
        return self.error_code == RemoteStoreError.CODE

    @classmethod
    def ok(cls, data: Any = None, pending_count: int = 0) -> ServiceResult:
        return cls(success=True, data=data, pending_count=pending_count)

    @classmethod
    def from_exception(cls, e: Exception, pending_count: int = 0) -> ServiceResult:
        if isinstance(e, CareTrackError):
            return cls(
                success=False,
                error=e.message,
                error_code=e.code,
                pending_count=pending_count,
            )
        return cls(
            success=False,
            error=str(e),
            error_code="EXCEPTION",
            pending_count=pending_count,
        )


class BaseService(ABC):
    """
    Base for services between the page and the stores.

    Subclasses that own a pending queue override pending_count; safe_execute
    stamps it on every result, success or failure.
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    @property
    def pending_count(self) -> int:
        return 0

    def safe_execute(
        self,
        operation: str,
        func: Callable[..., Any],
        *args,
        **kwargs
    ) -> ServiceResult:
        """
        Run func inside a log context and wrap its outcome.

        CareTrack errors go through handle_error without a UI message (the
        page decides what to show); anything else is logged with a traceback.
        """
        try:
            with LogContext(self.logger, operation):
                data = func(*args, **kwargs)
        except CareTrackError as e:
            handle_error(e, show_user_message=False)
            return ServiceResult.from_exception(e, pending_count=self.pending_count)
        except Exception as e:
            self.logger.error(f"{operation} failed: {e}", exc_info=True)
            return ServiceResult.from_exception(e, pending_count=self.pending_count)
        return ServiceResult.ok(data, pending_count=self.pending_count)
