"""Unit tests for runtime configuration."""

from pathlib import Path

import pytest

from obs_source_tracker.config import TrackerConfig, default_db_path


class TestTrackerConfig:
    """Test defaults and environment overrides."""

    def test_defaults(self):
        config = TrackerConfig()

        assert config.obs_url == "ws://127.0.0.1:4455"
        assert config.reconnect_delay == 5.0
        assert config.request_timeout == 3.0
        assert config.poll_interval == 2.0
        assert config.db_path == default_db_path()

    def test_empty_environment_keeps_defaults(self):
        assert TrackerConfig.from_env({}) == TrackerConfig()

    def test_environment_overrides(self):
        config = TrackerConfig.from_env(
            {
                "OBS_TRACKER_OBS_HOST": "10.0.0.5",
                "OBS_TRACKER_OBS_PORT": "4456",
                "OBS_TRACKER_DB_PATH": "/tmp/tracker.db",
                "OBS_TRACKER_RECONNECT_DELAY": "1.5",
                "OBS_TRACKER_REQUEST_TIMEOUT": "10",
                "OBS_TRACKER_POLL_INTERVAL": "0.5",
            }
        )

        assert config.obs_url == "ws://10.0.0.5:4456"
        assert config.db_path == Path("/tmp/tracker.db")
        assert config.reconnect_delay == 1.5
        assert config.request_timeout == 10.0
        assert config.poll_interval == 0.5

    def test_invalid_number(self):
        with pytest.raises(ValueError, match="OBS_TRACKER_OBS_PORT"):
            TrackerConfig.from_env({"OBS_TRACKER_OBS_PORT": "four"})

    def test_negative_number(self):
        with pytest.raises(ValueError, match="must not be negative"):
            TrackerConfig.from_env({"OBS_TRACKER_POLL_INTERVAL": "-1"})
