"""
Unit tests for environment-driven settings.
"""

import pytest

from pathwise.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults_match_engine_defaults(self, monkeypatch):
        monkeypatch.delenv("PATHWISE_BKT_P_LEARN", raising=False)
        config = Settings(_env_file=None).engine_config()

        assert config.bkt.p_learn == 0.1
        assert config.fsrs.requested_retention == 0.9
        assert config.planner.target_items == 20
        assert config.transfer.require_far_transfer is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PATHWISE_BKT_P_LEARN", "0.2")
        monkeypatch.setenv("PATHWISE_TRANSFER_REQUIRE_FAR", "true")
        monkeypatch.setenv("PATHWISE_PLANNER_TARGET_ITEMS", "5")

        config = get_settings().engine_config()

        assert config.bkt.p_learn == 0.2
        assert config.transfer.require_far_transfer is True
        assert config.planner.target_items == 5

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    def test_invalid_log_level_rejected(self, monkeypatch):
        monkeypatch.setenv("PATHWISE_LOG_LEVEL", "LOUD")
        with pytest.raises(ValueError):
            Settings(_env_file=None)
