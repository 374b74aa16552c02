"""
Tests for environment-driven settings.
"""

import logging

import pytest

from match_engine.config import EngineSettings, configure_logging, load_settings

ENGINE_VARS = [
    "MATCH_ENGINE_TEAMS_PER_ALLIANCE",
    "MATCH_ENGINE_ITERATIONS_LOW",
    "MATCH_ENGINE_ITERATIONS_MEDIUM",
    "MATCH_ENGINE_ITERATIONS_HIGH",
    "MATCH_ENGINE_DEFAULT_QUALITY",
    "MATCH_ENGINE_MIN_MATCH_SEPARATION",
    "MATCH_ENGINE_QUAL_CYCLE_MINUTES",
    "MATCH_ENGINE_PLAYOFF_CYCLE_MINUTES",
    "SQL_ECHO",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENGINE_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings()
        assert settings.teams_per_alliance == 2
        assert settings.iteration_tiers == {"low": 5000, "medium": 10000, "high": 25000}
        assert settings.default_quality == "medium"
        assert settings.min_match_separation == 1
        assert settings.qual_cycle_minutes == 6
        assert settings.playoff_cycle_minutes == 15
        assert settings.sql_echo is False
        assert settings.log_level == "INFO"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("MATCH_ENGINE_ITERATIONS_LOW", "123")
        monkeypatch.setenv("MATCH_ENGINE_DEFAULT_QUALITY", "HIGH")
        monkeypatch.setenv("MATCH_ENGINE_PLAYOFF_CYCLE_MINUTES", "20")
        monkeypatch.setenv("SQL_ECHO", "yes")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = load_settings()
        assert settings.iteration_tiers["low"] == 123
        assert settings.default_quality == "high"
        assert settings.playoff_cycle_minutes == 20
        assert settings.sql_echo is True
        assert settings.log_level == "DEBUG"

    def test_blank_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("MATCH_ENGINE_MIN_MATCH_SEPARATION", "  ")
        assert load_settings().min_match_separation == 1

    def test_invalid_quality(self, monkeypatch):
        monkeypatch.setenv("MATCH_ENGINE_DEFAULT_QUALITY", "ultra")
        with pytest.raises(ValueError):
            load_settings()


class TestIterationsFor:
    def test_tiers(self):
        settings = EngineSettings()
        assert settings.iterations_for("low") == 5000
        assert settings.iterations_for("high") == 25000

    def test_falls_back_to_default_tier(self):
        assert EngineSettings(default_quality="low").iterations_for(None) == 5000

    def test_unknown_tier(self):
        with pytest.raises(ValueError):
            EngineSettings().iterations_for("ultra")


class TestConfigureLogging:
    def test_sets_level_when_unconfigured(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
        configure_logging("WARNING")
        assert calls["level"] == "WARNING"

    def test_level_defaults_to_settings(self, monkeypatch):
        calls = {}
        monkeypatch.setenv("LOG_LEVEL", "error")
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
        configure_logging()
        assert calls["level"] == "ERROR"
