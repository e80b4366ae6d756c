"""Tests for settings loading."""

import pytest

from eventreg.config import Settings, validate_settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.ID_SEQUENCE_START == 10000
        assert settings.QR_THUMBNAIL_SIZE == 200
        assert settings.PASSWORD_RESET_TTL_MINUTES == 20
        assert settings.PASSWORD_RESET_COOLDOWN_SECONDS == 90
        assert settings.PASSWORD_RESET_MAX_ATTEMPTS == 10

    def test_domains_normalized(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_EMAIL_DOMAINS", '[" School.EDU ", ""]')

        assert Settings().ALLOWED_EMAIL_DOMAINS == ["school.edu"]

    def test_thumbnail_too_small(self, monkeypatch):
        monkeypatch.setenv("QR_THUMBNAIL_SIZE", "8")

        with pytest.raises(ValueError):
            Settings()

    def test_missing_required_exits(self, monkeypatch, caplog):
        monkeypatch.delenv("SMTP_HOST")

        with pytest.raises(SystemExit) as exc_info:
            validate_settings()

        assert exc_info.value.code == 1
        assert "SMTP_HOST (MISSING)" in caplog.text
