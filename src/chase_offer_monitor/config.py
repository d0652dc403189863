import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "CHASE_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Raised when required settings are missing or malformed."""


@dataclass
class NotificationConfig:
    """Which report sections are enabled, and the expiration windows in days."""

    notify_new: bool = True
    notify_extended: bool = True
    notify_removed: bool = False
    notify_enrolled_expiration: bool = True
    notify_enrolled_expiration_days: int = 3
    notify_eligible_expiration: bool = False
    notify_eligible_expiration_days: int = 3
    notify_summary_table: bool = True
    notify_all_enrolled: bool = False
    notify_all_eligible: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "NotificationConfig":
        """Read CHASE_NOTIFY_* variables, keeping defaults for any that are unset."""
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            name = ENV_PREFIX + f.name.upper()
            values[f.name] = parse_int(name, raw) if f.type in (int, "int") else parse_bool(name, raw)
        return cls(**values)


@dataclass
class Settings:
    username: str | None = None
    password: str | None = None
    history_file: Path = Path("chaseoffers-data.json")
    result_file: Path = Path("chaseoffers-result.html")
    email_sender: str | None = None
    email_recipient: str | None = None
    email_subject: str = "Chase Offer Update"
    sendmail_path: str = "/usr/sbin/sendmail"
    notifications: NotificationConfig = field(default_factory=NotificationConfig)

    @property
    def email_enabled(self) -> bool:
        return bool(self.email_sender and self.email_recipient)


def parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean (true/false), got {raw!r}")


def parse_int(name: str, raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def load_settings(environ: Mapping[str, str] | None = None, require_credentials: bool = True) -> Settings:
    """
    Load settings from the environment, reading .env first.

    Args:
        environ: Mapping to read instead of os.environ (.env is not loaded in that case)
        require_credentials: Raise if CHASE_USERNAME / CHASE_PASSWORD are missing
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    settings = Settings(
        username=environ.get("CHASE_USERNAME") or None,
        password=environ.get("CHASE_PASSWORD") or None,
        email_sender=environ.get("CHASE_EMAIL_SENDER") or None,
        email_recipient=environ.get("CHASE_EMAIL_RECIPIENT") or None,
        notifications=NotificationConfig.from_env(environ),
    )
    if environ.get("CHASE_HISTORY_FILE"):
        settings.history_file = Path(environ["CHASE_HISTORY_FILE"])
    if environ.get("CHASE_RESULT_FILE"):
        settings.result_file = Path(environ["CHASE_RESULT_FILE"])
    if environ.get("CHASE_EMAIL_SUBJECT"):
        settings.email_subject = environ["CHASE_EMAIL_SUBJECT"]
    if environ.get("CHASE_SENDMAIL_PATH"):
        settings.sendmail_path = environ["CHASE_SENDMAIL_PATH"]

    if require_credentials and not (settings.username and settings.password):
        raise ConfigError("CHASE_USERNAME and CHASE_PASSWORD must be set in .env")

    logger.debug(f"Notification settings: {settings.notifications}")
    return settings
