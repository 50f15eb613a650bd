"""Configuration management for the anime update notifier."""

import os
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

from .interface import ApiSettings, MailSettings, Settings, SmtpSettings
from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://openani.an-i.workers.dev"
DEFAULT_API_PATH_PREFIX = "2025-1"
DEFAULT_HTTP_PROXY = "http://127.0.0.1:7890"
CHECKPOINT_POLICIES = ("window", "persisted")


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {value!r}, using default {default}")
        return default


def _timezone_env(name: str, default: str = "Asia/Shanghai") -> str:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        ZoneInfo(value)
    except (KeyError, ValueError):
        logger.warning(f"Unknown timezone for {name}: {value!r}, using default {default}")
        return default
    return value


def parse_watch_list(raw: str) -> tuple[str, ...]:
    """Split a comma separated list of names, dropping blank entries."""
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def get_environment_config() -> Settings:
    """
    Get configuration from environment variables.

    Missing values fall back to literal defaults; nothing here raises; an
    empty SMTP host only shows up later as a connection failure.

    Returns:
        Settings: Fully populated, immutable settings
    """
    # Local runs keep credentials in a .env file
    load_dotenv()

    checkpoint_policy = os.environ.get("CHECKPOINT_POLICY", "window").strip().lower()
    if checkpoint_policy not in CHECKPOINT_POLICIES:
        logger.warning(f"Unknown CHECKPOINT_POLICY {checkpoint_policy!r}, using 'window'")
        checkpoint_policy = "window"

    return Settings(
        smtp=SmtpSettings(
            host=os.environ.get("SMTP_HOST", ""),
            port=_int_env("SMTP_PORT", 587),
            user=os.environ.get("SMTP_USER", ""),
            password=os.environ.get("SMTP_PASS", ""),
        ),
        mail=MailSettings(
            sender=os.environ.get("MAIL_FROM", ""),
            recipient=os.environ.get("MAIL_TO", ""),
        ),
        watch_list=parse_watch_list(os.environ.get("ANIME_NAMES", "")),
        api=ApiSettings(
            base_url=os.environ.get("API_BASE_URL") or DEFAULT_API_BASE_URL,
            path_prefix=os.environ.get("API_PATH_PREFIX") or DEFAULT_API_PATH_PREFIX,
        ),
        http_proxy=os.environ.get("HTTP_PROXY") or DEFAULT_HTTP_PROXY,
        development=os.environ.get("APP_ENV", "production").lower() == "development",
        checkpoint_policy=checkpoint_policy,
        checkpoint_file=os.environ.get("CHECKPOINT_FILE") or "last_check_time.txt",
        checkpoint_s3_bucket=os.environ.get("CHECKPOINT_S3_BUCKET") or None,
        checkpoint_s3_key=os.environ.get("CHECKPOINT_S3_KEY") or "last_check_time.txt",
        window_minutes=_int_env("CHECK_WINDOW_MINUTES", 30),
        lookback_hours=_int_env("CHECKPOINT_LOOKBACK_HOURS", 24),
        check_interval_minutes=_int_env("CHECK_INTERVAL_MINUTES", 5),
        api_timezone=_timezone_env("API_TIMEZONE"),
        display_timezone=_timezone_env("DISPLAY_TIMEZONE"),
        request_timeout=_int_env("REQUEST_TIMEOUT", 30),
        smtp_timeout=_int_env("SMTP_TIMEOUT", 30),
    )
