"""
Tests for the SMTP digest notifier.
"""

import smtplib
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from anime_updates.email_notifier import (
    EmailNotifier,
    NotifyError,
    display_name,
    format_local_time,
    format_size,
)
from anime_updates.interface import SmtpSettings


@pytest.fixture
def notifier(settings):
    return EmailNotifier(settings.smtp, settings.mail, settings.api)


@pytest.fixture
def smtp_server():
    """Patch smtplib.SMTP and return the server mock used inside ``with``."""
    with patch("anime_updates.email_notifier.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        server.__enter__.return_value = server
        server.has_extn.return_value = True
        smtp_cls.return_value = server
        server.smtp_cls = smtp_cls
        yield server


def _html_part(message):
    return next(
        part.get_payload(decode=True).decode("utf-8")
        for part in message.walk()
        if part.get_content_type() == "text/html"
    )


class TestFormatting:
    """Rendering helpers."""

    def test_format_size_one_mebibyte(self):
        assert format_size("1048576") == "1.00 MB"

    def test_format_size_large(self):
        assert format_size("524288000") == "500.00 MB"

    def test_display_name_strips_tags(self):
        assert display_name("[SubGroup] Example Anime - 05 [1080P][WEB-DL].mp4") == (
            "Example Anime - 05 .mp4"
        )

    def test_format_local_time(self):
        moment = datetime(2025, 1, 10, 4, 5, tzinfo=timezone.utc)

        assert format_local_time(moment, "Asia/Shanghai") == "2025/01/10 12:05"


class TestSendUpdateNotification:
    """Delivery over SMTP."""

    def test_empty_batch_makes_no_transport_calls(self, notifier):
        with patch("anime_updates.email_notifier.smtplib") as mock_smtplib:
            notifier.send_update_notification([])

        assert mock_smtplib.mock_calls == []

    def test_sends_single_message(self, notifier, smtp_server, make_file):
        files = [make_file("[SubGroup] Example Anime - 05")]

        notifier.send_update_notification(files)

        smtp_server.smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=30)
        smtp_server.starttls.assert_called_once()
        smtp_server.login.assert_called_once_with("bot", "secret")
        smtp_server.send_message.assert_called_once()

        message = smtp_server.send_message.call_args[0][0]
        assert message["Subject"] == "Found 1 new anime updates"
        assert message["From"] == "bot@example.com"
        assert message["To"] == "me@example.com"

        body = _html_part(message)
        assert "Example Anime - 05" in body
        assert "<h3 class=\"entry-title\">Example Anime - 05</h3>" in body
        assert "500.00 MB" in body
        assert "2025/01/10 19:50" in body
        assert 'href="https://feed.example.com/2025-1/[SubGroup] Example Anime - 05"' in body

    def test_subject_counts_matches(self, notifier, smtp_server, make_file):
        files = [make_file("Example Anime - 01"), make_file("Example Anime - 02")]

        notifier.send_update_notification(files)

        message = smtp_server.send_message.call_args[0][0]
        assert message["Subject"] == "Found 2 new anime updates"

    def test_port_465_uses_ssl(self, settings, make_file):
        smtp = SmtpSettings(host="smtp.example.com", port=465, user="bot", password="secret")
        notifier = EmailNotifier(smtp, settings.mail, settings.api)

        with patch("anime_updates.email_notifier.smtplib.SMTP_SSL") as smtp_ssl:
            server = MagicMock()
            server.__enter__.return_value = server
            smtp_ssl.return_value = server

            notifier.send_update_notification([make_file("Example Anime - 01")])

        smtp_ssl.assert_called_once_with("smtp.example.com", 465, timeout=30)
        server.starttls.assert_not_called()
        server.send_message.assert_called_once()

    def test_login_failure_raises_notify_error(self, notifier, smtp_server, make_file):
        smtp_server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

        with pytest.raises(NotifyError):
            notifier.send_update_notification([make_file("Example Anime - 01")])

        smtp_server.send_message.assert_not_called()
        smtp_server.close.assert_called_once()

    def test_connection_failure_raises_notify_error(self, notifier, make_file):
        with patch(
            "anime_updates.email_notifier.smtplib.SMTP",
            side_effect=ConnectionRefusedError("refused"),
        ):
            with pytest.raises(NotifyError):
                notifier.send_update_notification([make_file("Example Anime - 01")])

    def test_send_failure_raises_notify_error(self, notifier, smtp_server, make_file):
        smtp_server.send_message.side_effect = smtplib.SMTPDataError(554, b"rejected")

        with pytest.raises(NotifyError):
            notifier.send_update_notification([make_file("Example Anime - 01")])

    def test_invalid_message_on_send_raises_notify_error(self, notifier, smtp_server, make_file):
        smtp_server.send_message.side_effect = ValueError("message has more than one 'From' header")

        with pytest.raises(NotifyError):
            notifier.send_update_notification([make_file("Example Anime - 01")])
