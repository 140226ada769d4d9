"""Tests for environment-driven settings and shared utilities."""

import logging

import pytest

from core.config import Settings
from core.exceptions import ConfigurationError, FormCoachError
from evaluation_service.models.messages import get_message_catalog
from evaluation_service.models.profiles import ProfileRegistry
from shared.utils import get_now_iso, log_execution_time, resolve_log_level, setup_logger


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.VISIBILITY_THRESHOLD == 0.5
        assert settings.FEEDBACK_COOLDOWN_SECONDS == 3.0
        assert settings.FEEDBACK_MIN_INTERVAL_SECONDS == 0.0
        assert settings.RULE_PASS_THRESHOLD == 0.5
        assert settings.REALTIME_FEEDBACK is True
        assert settings.PHASE_THRESHOLD_OVERRIDES == {}

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("FORMCOACH_FEEDBACK_COOLDOWN_SECONDS", "5")
        monkeypatch.setenv("FORMCOACH_REALTIME_FEEDBACK", "false")
        monkeypatch.setenv("FORMCOACH_PHASE_THRESHOLD_OVERRIDES", '{"squat": {"hysteresis_margin": 15}}')

        settings = Settings(_env_file=None)
        assert settings.FEEDBACK_COOLDOWN_SECONDS == 5.0
        assert settings.REALTIME_FEEDBACK is False

        registry = ProfileRegistry(
            catalog=get_message_catalog(),
            threshold_overrides=settings.PHASE_THRESHOLD_OVERRIDES,
            tolerance_overrides=settings.RULE_TOLERANCE_OVERRIDES,
        )
        assert registry.get_profile("squat").thresholds.hysteresis_margin == 15

    def test_error_hierarchy(self):
        assert issubclass(ConfigurationError, FormCoachError)
        error = ConfigurationError("bad", exercise_id="squat")
        assert str(error) == "bad"
        assert error.exercise_id == "squat"


class TestUtils:

    def test_resolve_log_level(self):
        assert resolve_log_level("debug") == logging.DEBUG
        assert resolve_log_level("WARNING") == logging.WARNING
        assert resolve_log_level("nonsense") == logging.INFO

    def test_setup_logger_adds_one_handler(self):
        logger = setup_logger("formcoach.test_utils")
        setup_logger("formcoach.test_utils")
        assert len(logger.handlers) == 1

    def test_log_execution_time_keeps_result(self):
        @log_execution_time
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"

    def test_log_execution_time_logs_at_debug(self, caplog):
        @log_execution_time
        def noop():
            return None

        with caplog.at_level(logging.DEBUG, logger="formcoach"):
            noop()
        assert "noop executed in" in caplog.text

    def test_now_iso_is_utc(self):
        assert get_now_iso().endswith("+00:00")
