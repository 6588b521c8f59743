# =============================================================================
# caretrack_core/errors/handlers.py
# Logging and On-Page Messages for CareTrack Errors
# =============================================================================
"""
Turns exceptions into a log record and a Streamlit message.

Problems the user can act on (a bad value on the form, an edit attempted
while offline, the server not answering) are shown as warnings with a hint.
Configuration problems and unexpected exceptions are shown as errors.
"""

from __future__ import annotations
import traceback
from typing import Optional
import streamlit as st

from caretrack_core.logging import get_logger
from .exceptions import (
    CareTrackError,
    ConfigurationError,
    OfflineOperationError,
    QueueStorageError,
    RemoteStoreError,
    SessionValidationError,
)

logger = get_logger(__name__)

_HINTS = (
    (SessionValidationError, "Correct the value and save again."),
    (OfflineOperationError, "Reconnect and try again. New sessions can still be logged offline."),
    (RemoteStoreError, "The CareTrack server did not respond. New sessions are kept on this device until it does."),
    (QueueStorageError, "Sessions logged now are kept in memory only until they sync."),
    (ConfigurationError, "Set the Supabase url and key in .streamlit/secrets.toml or the environment, then restart."),
)

# Shown with st.warning rather than st.error
_USER_ACTIONABLE = (SessionValidationError, OfflineOperationError, RemoteStoreError)


def user_hint(error: Exception) -> Optional[str]:
    """What the user can do about an error, if anything."""
    for error_type, hint in _HINTS:
        if isinstance(error, error_type):
            return hint
    return None


def user_message_for(error: Exception, message: Optional[str] = None) -> str:
    """Message plus hint, as shown on the page."""
    message = (message or getattr(error, "message", None) or str(error)).rstrip(".")
    hint = user_hint(error)
    if hint:
        return f"{message}. {hint}"
    if isinstance(error, CareTrackError) and error.recoverable:
        return f"{message}."
    return f"{message}. If this keeps happening, contact your CareTrack administrator."


def handle_error(
    error: Exception,
    show_user_message: bool = True,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Log an error and show it on the page.

    Args:
        error: The exception to handle
        show_user_message: Whether to show anything on the page
        log_error: Whether to log the error
        user_message: Replaces the error's own message on the page
    """
    if log_error:
        if isinstance(error, SessionValidationError):
            # Form mistakes; no traceback
            logger.warning(f"[{error.code}] {error.message}", extra={"error": error.to_dict()})
        elif isinstance(error, CareTrackError):
            logger.error(f"[{error.code}] {error.message}", extra={"error": error.to_dict()}, exc_info=error)
        else:
            logger.error(
                f"[UNKNOWN] {error}",
                extra={"details": {"traceback": traceback.format_exc()}},
                exc_info=error,
            )

    if not show_user_message:
        return
    text = user_message_for(error, user_message)
    if isinstance(error, _USER_ACTIONABLE):
        st.warning(text)
    else:
        st.error(text)


class ErrorContext:
    """
    Wrap one user action on the page.

    Usage:
        with ErrorContext("Saving session"):
            service.submit(draft)

    A CareTrack error is shown with its own message. Any other exception is
    shown as "<operation> failed". Both are suppressed unless the error is
    not recoverable (configuration), which is re-raised after being shown.
    """

    def __init__(self, operation: str, success_message: Optional[str] = None):
        self.operation = operation
        self.success_message = success_message
        self.error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def __enter__(self) -> ErrorContext:
        logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            logger.debug(f"Completed: {self.operation}")
            if self.success_message:
                st.success(self.success_message)
            return False

        if not isinstance(exc_val, Exception):
            return False

        self.error = exc_val
        if isinstance(exc_val, CareTrackError):
            handle_error(exc_val)
            return exc_val.recoverable
        handle_error(exc_val, user_message=f"{self.operation} failed")
        return True
