"""Tests for settings and startup validation."""

from unittest.mock import patch

import pytest

from alertroute.config import Settings, secret_key_problem, validate_secret_key


class TestSecretKey:
    def test_placeholder_rejected(self):
        assert "placeholder" in secret_key_problem("change-me-in-production")

    def test_short_rejected(self):
        assert "at least 32" in secret_key_problem("x" * 16)

    def test_strong_accepted(self):
        assert secret_key_problem("a" * 64) is None

    def test_exits_outside_tests(self):
        with patch("alertroute.config.settings") as mock_settings:
            mock_settings.testing = False
            mock_settings.secret_key = "change-me"
            with pytest.raises(SystemExit):
                validate_secret_key()

    def test_skipped_under_tests(self):
        with patch("alertroute.config.settings") as mock_settings:
            mock_settings.testing = True
            mock_settings.secret_key = "short"
            validate_secret_key()


class TestDefaults:
    def test_escalation_defaults(self, monkeypatch):
        for name in ("ALERT_TIMEOUT_MINUTES", "MAX_ESCALATION_ATTEMPTS", "ENFORCE_COVERAGE_RADIUS"):
            monkeypatch.delenv(name, raising=False)

        s = Settings(_env_file=None)

        assert s.alert_timeout_minutes == 3
        assert s.max_escalation_attempts == 3
        assert s.enforce_coverage_radius is False
        assert s.alert_create_rate_limit == "100/15minutes"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ALERT_TIMEOUT_MINUTES", "0.5")
        monkeypatch.setenv("ENFORCE_COVERAGE_RADIUS", "true")

        s = Settings(_env_file=None)

        assert s.alert_timeout_minutes == 0.5
        assert s.enforce_coverage_radius is True
