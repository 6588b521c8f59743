# =============================================================================
# caretrack_core/logging/config.py
# Logging Configuration for CareTrack
# =============================================================================

import logging
import sys
import time
from pathlib import Path
from datetime import datetime
from typing import Optional, Union


# Log format
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log directory
LOG_DIR = Path("logs")

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "hpack", "postgrest", "supabase")


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_filename: Optional[str] = None,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level or level name (default: INFO)
        log_to_file: Whether to also log to a file
        log_filename: Custom log filename (default: caretrack_YYYY-MM-DD.log)
        log_dir: Directory for the log file (default: ./logs)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_to_file:
        directory = log_dir or LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        if log_filename is None:
            log_filename = f"caretrack_{datetime.now().strftime('%Y-%m-%d')}.log"
        handlers.append(logging.FileHandler(directory / log_filename))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("caretrack_core").info("Logging initialized")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Usage:
        from caretrack_core.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Sync started")
    """
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for logging operation timing and status.

    Usage:
        with LogContext(logger, "Syncing pending sessions"):
            engine.sync()
        # Logs: "Syncing pending sessions... started"
        # Logs: "Syncing pending sessions... completed (0.42s)"
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.info(f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time

        if exc_type is None:
            self.logger.info(f"{self.operation}... completed ({elapsed:.2f}s)")
        else:
            self.logger.error(
                f"{self.operation}... failed ({elapsed:.2f}s): {exc_val}",
                exc_info=True
            )

        return False  # Don't suppress exceptions
