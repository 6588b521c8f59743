# =============================================================================
# caretrack_core/errors/__init__.py
# Centralized Error Handling for CareTrack
# =============================================================================

from .exceptions import (
    CareTrackError,
    SessionValidationError,
    OfflineOperationError,
    RemoteStoreError,
    QueueStorageError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    ErrorContext,
)

__all__ = [
    # Exceptions
    "CareTrackError",
    "SessionValidationError",
    "OfflineOperationError",
    "RemoteStoreError",
    "QueueStorageError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "ErrorContext",
]
