"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from anime_updates.interface import AnimeFile, ApiSettings, MailSettings, Settings, SmtpSettings


@pytest.fixture
def now():
    """Fixed reference instant for the cycle under test."""
    return datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    """Settings with a watch list and a plain SMTP server."""
    return Settings(
        smtp=SmtpSettings(host="smtp.example.com", port=587, user="bot", password="secret"),
        mail=MailSettings(sender="bot@example.com", recipient="me@example.com"),
        watch_list=("Example Anime",),
        api=ApiSettings(base_url="https://feed.example.com", path_prefix="2025-1"),
    )


@pytest.fixture
def make_file(now):
    """Factory for listing entries modified a given number of minutes before ``now``."""

    def _make(name, minutes_ago=10, size="524288000", modified_time=None):
        if modified_time is None:
            modified_time = (now - timedelta(minutes=minutes_ago)).isoformat()
        return AnimeFile(
            id=f"id-{name}",
            name=name,
            size=size,
            mimeType="video/mp4",
            modifiedTime=modified_time,
        )

    return _make
