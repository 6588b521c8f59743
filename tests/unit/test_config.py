# =============================================================================
# tests/unit/test_config.py
# Unit Tests for Configuration Loading
# =============================================================================

import pytest
from pathlib import Path

from caretrack_core.config import DEFAULT_QUEUE_DB_PATH, AppConfig, load_config
from caretrack_core.errors import ConfigurationError


class TestLoadConfig:
    def test_defaults(self):
        config = load_config(secrets={}, environ={})
        assert config.sessions_table == "sessions"
        assert config.queue_db_path == DEFAULT_QUEUE_DB_PATH
        assert config.remote_timeout == 10.0
        assert config.supabase_url is None
        with pytest.raises(ConfigurationError):
            config.require_supabase()

    def test_from_secrets(self):
        secrets = {
            "supabase": {"url": "https://x.supabase.co", "key": "anon"},
            "caretrack": {"sessions_table": "ct_sessions", "remote_timeout": "5", "queue_db_path": "q.db"},
        }
        config = load_config(secrets=secrets, environ={})
        config.require_supabase()
        assert config.supabase_key == "anon"
        assert config.sessions_table == "ct_sessions"
        assert config.remote_timeout == 5.0
        assert config.queue_db_path == Path("q.db")

    def test_environment_wins(self):
        secrets = {"supabase": {"url": "https://secret.supabase.co", "key": "a"}}
        environ = {
            "SUPABASE_URL": "https://env.supabase.co",
            "CARETRACK_QUEUE_DB": "/tmp/env.db",
            "CARETRACK_LOG_LEVEL": "DEBUG",
        }
        config = load_config(secrets=secrets, environ=environ)
        assert config.supabase_url == "https://env.supabase.co"
        assert config.supabase_key == "a"
        assert config.queue_db_path == Path("/tmp/env.db")
        assert config.log_level == "DEBUG"

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationError) as exc:
            load_config(secrets={}, environ={"CARETRACK_REMOTE_TIMEOUT": "soon"})
        assert exc.value.details["config_key"] == "remote_timeout"

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            load_config(secrets={"caretrack": {"remote_timeout": 0}}, environ={})

    def test_invalid_interval(self):
        with pytest.raises(ConfigurationError):
            load_config(secrets={"caretrack": {"check_interval_online": "often"}}, environ={})


class TestRequireSupabase:
    def test_missing_url(self):
        with pytest.raises(ConfigurationError) as exc:
            AppConfig(supabase_key="k").require_supabase()
        assert exc.value.details["config_key"] == "supabase.url"
        assert not exc.value.recoverable

    def test_missing_key(self):
        with pytest.raises(ConfigurationError) as exc:
            AppConfig(supabase_url="https://x").require_supabase()
        assert exc.value.details["config_key"] == "supabase.key"
