"""SMTP-based email digest of new anime updates."""

import html
import re
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from zoneinfo import ZoneInfo

from .interface import AnimeFile, ApiSettings, MailSettings, SmtpSettings
from .logger import get_logger
from .update_filter import parse_modified_time

logger = get_logger(__name__)

TAG_PATTERN = re.compile(r"\[.*?\]")


class NotifyError(RuntimeError):
    """The digest could not be delivered."""


def display_name(name: str) -> str:
    """Strip bracketed release tags such as ``[Group]`` from a file name."""
    return TAG_PATTERN.sub("", name).strip()


def format_size(size: str | int) -> str:
    """Format a byte count as mebibytes with two decimals."""
    return f"{int(size) / (1024 * 1024):.2f} MB"


def format_local_time(moment: datetime, display_timezone: str = "Asia/Shanghai") -> str:
    return moment.astimezone(ZoneInfo(display_timezone)).strftime("%Y/%m/%d %H:%M")


class EmailNotifier:
    """Renders the update digest and delivers it over SMTP."""

    def __init__(
        self,
        smtp: SmtpSettings,
        mail: MailSettings,
        api: ApiSettings,
        api_timezone: str = "Asia/Shanghai",
        display_timezone: str = "Asia/Shanghai",
        timeout: int = 30,
    ):
        self.smtp = smtp
        self.mail = mail
        self.api = api
        self.api_timezone = api_timezone
        self.display_timezone = display_timezone
        self.timeout = timeout

    def send_update_notification(self, files: list[AnimeFile]) -> None:
        """
        Send one digest email listing the given files.

        Args:
            files: Matched entries; an empty list sends nothing

        Raises:
            NotifyError: If the SMTP connection, login or send fails
        """
        if not files:
            logger.info("No updates to send")
            return

        message = MIMEMultipart("alternative")
        message["From"] = self.mail.sender
        message["To"] = self.mail.recipient
        message["Subject"] = self._generate_subject(len(files))
        message.attach(MIMEText(self._generate_text_body(files), "plain", "utf-8"))
        message.attach(MIMEText(self._generate_html_body(files), "html", "utf-8"))

        logger.info(
            f"Sending digest of {len(files)} updates to {self.mail.recipient} "
            f"via {self.smtp.host}:{self.smtp.port}"
        )

        try:
            with self._connect() as server:
                server.send_message(message)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.error(f"Failed to send email: {e}")
            raise NotifyError(f"Failed to send email via {self.smtp.host}:{self.smtp.port}: {e}") from e

        logger.info(f"Email sent successfully to {self.mail.recipient}")

    def _connect(self) -> smtplib.SMTP:
        """Open an authenticated SMTP session; this is the transport check before sending."""
        if self.smtp.port == 465:
            server = smtplib.SMTP_SSL(self.smtp.host, self.smtp.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.smtp.host, self.smtp.port, timeout=self.timeout)

        try:
            server.ehlo()
            if self.smtp.port != 465 and server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            if self.smtp.user:
                server.login(self.smtp.user, self.smtp.password)
        except Exception:
            server.close()
            raise

        logger.info("SMTP connection verified")
        return server

    def _generate_subject(self, num_files: int) -> str:
        return f"Found {num_files} new anime updates"

    def _entry_fields(self, file: AnimeFile) -> dict[str, str]:
        return {
            "title": display_name(file.name),
            "size": format_size(file.size),
            "published": format_local_time(
                parse_modified_time(file.modified_time, self.api_timezone),
                self.display_timezone,
            ),
            "url": self.api.download_url(file.name),
        }

    def _generate_html_body(self, files: list[AnimeFile]) -> str:
        """Generate HTML email body."""
        html_body = f"""
        <html>
        <head>
            <style>
                body {{ font-family: Arial, sans-serif; color: #2c3e50; }}
                .container {{ max-width: 800px; margin: 0 auto; padding: 20px; }}
                .header {{ border-bottom: 2px solid #3498db; padding-bottom: 10px; }}
                .summary {{ color: #7f8c8d; margin-bottom: 20px; }}
                .entry {{ background: #f8f9fa; border-radius: 5px; padding: 15px; margin-bottom: 15px; }}
                .entry-title {{ margin: 0 0 10px 0; }}
                .entry-meta {{ color: #34495e; margin: 5px 0; }}
                .download {{
                    display: inline-block;
                    background: #3498db;
                    color: white;
                    padding: 8px 15px;
                    text-decoration: none;
                    border-radius: 3px;
                    margin-top: 10px;
                }}
                .footer {{ color: #7f8c8d; font-size: 12px; margin-top: 20px; padding-top: 20px; border-top: 1px solid #eee; }}
            </style>
        </head>
        <body>
            <div class="container">
                <h2 class="header">Anime Update Notification</h2>
                <p class="summary">Found {len(files)} new updates</p>
        """

        for file in files:
            fields = {key: html.escape(value) for key, value in self._entry_fields(file).items()}
            html_body += f"""
                <div class="entry">
                    <h3 class="entry-title">{fields["title"]}</h3>
                    <p class="entry-meta"><strong>Size:</strong> {fields["size"]}</p>
                    <p class="entry-meta"><strong>Published:</strong> {fields["published"]}</p>
                    <a class="download" href="{fields["url"]}">Download</a>
                </div>
            """

        html_body += """
                <div class="footer">
                    This email was sent by an automated system. Please do not reply.
                </div>
            </div>
        </body>
        </html>
        """

        return html_body

    def _generate_text_body(self, files: list[AnimeFile]) -> str:
        """Generate plain text email body."""
        text = f"""
ANIME UPDATE NOTIFICATION

Found {len(files)} new updates:

========================================
"""

        for i, file in enumerate(files, 1):
            fields = self._entry_fields(file)
            text += f"""
{i}. {fields["title"]}

Size: {fields["size"]}
Published: {fields["published"]}
Download: {fields["url"]}

----------------------------------------
"""

        text += """

This email was sent by an automated system. Please do not reply.
"""

        return text.strip()
