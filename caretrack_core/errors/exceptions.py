# =============================================================================
# caretrack_core/errors/exceptions.py
# Custom Exception Hierarchy for CareTrack
# =============================================================================

from typing import Optional, Dict, Any


class CareTrackError(Exception):
    """
    Base exception for all CareTrack errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "SESSION_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "CT_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# SESSION EXCEPTIONS
# =============================================================================

class SessionValidationError(CareTrackError):
    """Raised when a session fails validation before submission"""

    CODE = "SESSION_001"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value

        super().__init__(
            message=message,
            code=self.CODE,
            details=details,
            **kwargs,
        )


class OfflineOperationError(CareTrackError):
    """Raised when an edit or delete is attempted without connectivity"""

    CODE = "SESSION_002"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        session_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if session_id:
            details["session_id"] = session_id

        super().__init__(
            message=message,
            code=self.CODE,
            details=details,
            **kwargs,
        )


# =============================================================================
# STORAGE EXCEPTIONS
# =============================================================================

class RemoteStoreError(CareTrackError):
    """Raised when a call into the hosted record store fails or times out"""

    CODE = "REMOTE_001"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table

        super().__init__(
            message=message,
            code=self.CODE,
            details=details,
            **kwargs,
        )


class QueueStorageError(CareTrackError):
    """Raised when the persisted pending-write queue cannot be read or written"""

    CODE = "QUEUE_001"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if path:
            details["path"] = path

        super().__init__(
            message=message,
            code=self.CODE,
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(CareTrackError):
    """Raised when configuration is invalid or missing"""

    CODE = "CONFIG_001"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code=self.CODE,
            details=details,
            recoverable=False,
            **kwargs,
        )
