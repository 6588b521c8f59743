# =============================================================================
# caretrack_core/config.py
# Application Configuration
# =============================================================================
"""
AppConfig - settings for the remote store, local queue and connectivity
monitor.

Values come from Streamlit secrets, with environment variables taking
precedence:

    # .streamlit/secrets.toml
    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"

    [caretrack]
    sessions_table = "sessions"
    audit_table = "audit_log"
    queue_db_path = "local_data/caretrack_queue.db"
    remote_timeout = 10

Environment overrides: SUPABASE_URL, SUPABASE_KEY, CARETRACK_QUEUE_DB,
CARETRACK_REMOTE_TIMEOUT, CARETRACK_LOG_LEVEL.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import streamlit as st

from caretrack_core.errors import ConfigurationError
from caretrack_core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_QUEUE_DB_PATH = Path("local_data") / "caretrack_queue.db"


@dataclass
class AppConfig:
    """Runtime configuration for the core."""
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    sessions_table: str = "sessions"
    audit_table: str = "audit_log"
    queue_db_path: Path = DEFAULT_QUEUE_DB_PATH
    remote_timeout: float = 10.0
    check_interval_online: int = 30
    check_interval_offline: int = 10
    log_level: str = "INFO"

    def require_supabase(self) -> None:
        """Raise ConfigurationError when the remote store is not configured."""
        if not self.supabase_url:
            raise ConfigurationError(
                "Supabase URL not configured. Set [supabase] url in secrets.toml or SUPABASE_URL",
                config_key="supabase.url",
            )
        if not self.supabase_key:
            raise ConfigurationError(
                "Supabase key not configured. Set [supabase] key in secrets.toml or SUPABASE_KEY",
                config_key="supabase.key",
            )


def _read_secrets() -> Dict[str, Dict[str, Any]]:
    """Pull the [supabase] and [caretrack] sections out of Streamlit secrets."""
    sections: Dict[str, Dict[str, Any]] = {}
    try:
        for name in ("supabase", "caretrack"):
            if name in st.secrets:
                sections[name] = dict(st.secrets[name])
    except Exception as e:
        # No secrets.toml present - fall back to env/defaults
        logger.debug(f"Streamlit secrets unavailable: {e}")
    return sections


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid value for {key}: {value!r}",
            config_key=key,
            expected_type="number",
        )


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid value for {key}: {value!r}",
            config_key=key,
            expected_type="integer",
        )


def load_config(
    secrets: Optional[Mapping[str, Mapping[str, Any]]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """
    Build an AppConfig from secrets and environment.

    Args:
        secrets: Secret sections to use instead of st.secrets
        environ: Environment mapping to use instead of os.environ

    Returns:
        Populated AppConfig
    """
    sections = {k: dict(v) for k, v in secrets.items()} if secrets is not None else _read_secrets()
    env = environ if environ is not None else os.environ

    supabase = sections.get("supabase", {})
    app = sections.get("caretrack", {})

    config = AppConfig(
        supabase_url=env.get("SUPABASE_URL") or supabase.get("url"),
        supabase_key=env.get("SUPABASE_KEY") or supabase.get("key"),
        sessions_table=app.get("sessions_table", AppConfig.sessions_table),
        audit_table=app.get("audit_table", AppConfig.audit_table),
        queue_db_path=Path(
            env.get("CARETRACK_QUEUE_DB") or app.get("queue_db_path", DEFAULT_QUEUE_DB_PATH)
        ),
        remote_timeout=_as_float(
            env.get("CARETRACK_REMOTE_TIMEOUT") or app.get("remote_timeout", AppConfig.remote_timeout),
            "remote_timeout",
        ),
        check_interval_online=_as_int(
            app.get("check_interval_online", AppConfig.check_interval_online),
            "check_interval_online",
        ),
        check_interval_offline=_as_int(
            app.get("check_interval_offline", AppConfig.check_interval_offline),
            "check_interval_offline",
        ),
        log_level=env.get("CARETRACK_LOG_LEVEL") or app.get("log_level", AppConfig.log_level),
    )

    if config.remote_timeout <= 0:
        raise ConfigurationError(
            "remote_timeout must be positive",
            config_key="remote_timeout",
            expected_type="positive number",
        )

    return config
