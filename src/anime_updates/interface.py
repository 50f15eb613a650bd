"""Common interfaces and data models for the anime update notifier."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SmtpSettings(BaseModel):
    """Outbound mail server settings."""

    model_config = ConfigDict(frozen=True)

    host: str = ""
    port: int = 587
    user: str = ""
    password: str = ""


class MailSettings(BaseModel):
    """Digest sender and recipient addresses."""

    model_config = ConfigDict(frozen=True)

    sender: str = ""
    recipient: str = ""


class ApiSettings(BaseModel):
    """Location of the remote file listing."""

    model_config = ConfigDict(frozen=True)

    base_url: str
    path_prefix: str

    @property
    def listing_url(self) -> str:
        return f"{self.base_url}/{self.path_prefix}/"

    def download_url(self, name: str) -> str:
        return f"{self.base_url}/{self.path_prefix}/{name}"


class Settings(BaseModel):
    """Immutable settings for a single check cycle."""

    model_config = ConfigDict(frozen=True)

    smtp: SmtpSettings
    mail: MailSettings
    watch_list: tuple[str, ...] = ()
    api: ApiSettings
    http_proxy: str = "http://127.0.0.1:7890"
    development: bool = False

    checkpoint_policy: Literal["window", "persisted"] = "window"
    checkpoint_file: str = "last_check_time.txt"
    checkpoint_s3_bucket: str | None = None
    checkpoint_s3_key: str = "last_check_time.txt"
    window_minutes: int = 30
    lookback_hours: int = 24
    check_interval_minutes: int = 5

    api_timezone: str = "Asia/Shanghai"
    display_timezone: str = "Asia/Shanghai"
    request_timeout: int = 30
    smtp_timeout: int = 30


class AnimeFile(BaseModel):
    """A single entry of the remote file listing."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    size: str = "0"
    mime_type: str = Field(default="", alias="mimeType")
    modified_time: str = Field(alias="modifiedTime")

    @field_validator("size", mode="before")
    @classmethod
    def _size_as_byte_string(cls, value: Any) -> str:
        # Folders come without a size; some indexes send it as a number
        if value is None or value == "":
            return "0"
        return str(int(str(value).strip()))


class FileListing(BaseModel):
    """Body returned by the listing endpoint; entries are validated one by one."""

    files: list[dict[str, Any]]


class TriggerEvent(BaseModel):
    """Lambda invocation event.

    REST API events carry ``httpMethod``; HTTP API and Function URL events
    carry ``requestContext.http.method``. Scheduled invocations carry neither.
    """

    httpMethod: str | None = None
    requestContext: dict[str, Any] | None = None

    @property
    def method(self) -> str | None:
        if self.httpMethod:
            return self.httpMethod.upper()
        http = (self.requestContext or {}).get("http") or {}
        method = http.get("method")
        return method.upper() if method else None


class CycleResult(BaseModel):
    """Outcome of one check cycle."""

    success: bool
    message: str
    check_time: str | None = None
    total_files: int = 0
    matched_files: int = 0
    notification_sent: bool = False

