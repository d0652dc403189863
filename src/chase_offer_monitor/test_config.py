"""
Unit tests for settings loading.

Run with: pytest -m unit_build
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from chase_offer_monitor.config import ConfigError, NotificationConfig, load_settings

CREDENTIALS = {"CHASE_USERNAME": "user", "CHASE_PASSWORD": "secret"}


@pytest.mark.unit_build
class TestNotificationConfig:
    def test_defaults_when_unset(self) -> None:
        assert NotificationConfig.from_env({}) == NotificationConfig()

    def test_reads_booleans_and_days(self) -> None:
        config = NotificationConfig.from_env(
            {
                "CHASE_NOTIFY_NEW": "false",
                "CHASE_NOTIFY_REMOVED": "YES",
                "CHASE_NOTIFY_ALL_ELIGIBLE": "1",
                "CHASE_NOTIFY_ENROLLED_EXPIRATION_DAYS": " 7 ",
            }
        )
        assert config.notify_new is False
        assert config.notify_removed is True
        assert config.notify_all_eligible is True
        assert config.notify_enrolled_expiration_days == 7

    def test_blank_value_keeps_default(self) -> None:
        assert NotificationConfig.from_env({"CHASE_NOTIFY_NEW": ""}).notify_new is True

    def test_invalid_boolean_raises(self) -> None:
        with pytest.raises(ConfigError, match="CHASE_NOTIFY_NEW"):
            NotificationConfig.from_env({"CHASE_NOTIFY_NEW": "maybe"})

    @pytest.mark.parametrize("value", ["soon", "-1", "2.5"])
    def test_invalid_days_raise(self, value: str) -> None:
        with pytest.raises(ConfigError, match="CHASE_NOTIFY_ELIGIBLE_EXPIRATION_DAYS"):
            NotificationConfig.from_env({"CHASE_NOTIFY_ELIGIBLE_EXPIRATION_DAYS": value})


@pytest.mark.unit_build
class TestLoadSettings:
    def test_loads_credentials_and_defaults(self) -> None:
        settings = load_settings(CREDENTIALS)

        assert settings.username == "user"
        assert settings.password == "secret"
        assert settings.history_file == Path("chaseoffers-data.json")
        assert settings.result_file == Path("chaseoffers-result.html")
        assert settings.email_subject == "Chase Offer Update"
        assert settings.sendmail_path == "/usr/sbin/sendmail"
        assert settings.email_enabled is False

    def test_overrides(self) -> None:
        settings = load_settings(
            {
                **CREDENTIALS,
                "CHASE_HISTORY_FILE": "/data/history.json",
                "CHASE_RESULT_FILE": "/data/result.html",
                "CHASE_EMAIL_SENDER": "monitor@example.com",
                "CHASE_EMAIL_RECIPIENT": "me@example.com",
                "CHASE_EMAIL_SUBJECT": "Offers",
                "CHASE_SENDMAIL_PATH": "/usr/bin/sendmail",
                "CHASE_NOTIFY_SUMMARY_TABLE": "off",
            }
        )

        assert settings.history_file == Path("/data/history.json")
        assert settings.result_file == Path("/data/result.html")
        assert settings.email_enabled is True
        assert settings.email_subject == "Offers"
        assert settings.sendmail_path == "/usr/bin/sendmail"
        assert settings.notifications.notify_summary_table is False

    def test_missing_credentials_raise(self) -> None:
        with pytest.raises(ConfigError, match="CHASE_USERNAME"):
            load_settings({"CHASE_USERNAME": "user"})

    def test_credentials_optional_when_not_required(self) -> None:
        settings = load_settings({}, require_credentials=False)
        assert settings.username is None

    def test_reads_dotenv_when_no_mapping_given(self) -> None:
        with patch("chase_offer_monitor.config.load_dotenv") as mock_load, patch.dict(
            "os.environ", CREDENTIALS, clear=True
        ):
            settings = load_settings()

        mock_load.assert_called_once()
        assert settings.username == "user"
