"""Checkpoint stores tracking the last successfully checked instant."""

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import boto3
from botocore.exceptions import ClientError

from .interface import Settings
from .logger import get_logger

logger = get_logger(__name__)


def parse_checkpoint(raw: str) -> datetime:
    """Parse a stored ISO-8601 timestamp; naive values are taken as UTC."""
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class WindowCheckpoint:
    """Fixed look-back window; nothing is persisted between cycles."""

    persistent = False

    def __init__(self, window: timedelta = timedelta(minutes=30)):
        self.window = window

    def load(self, now: datetime) -> datetime:
        return now - self.window

    def save(self, instant: datetime) -> None:
        pass


class PersistedCheckpoint:
    """
    Base for cursor stores holding a single ISO-8601 timestamp.

    Subclasses implement ``_read`` (returning None when absent) and ``_write``.
    A missing or malformed value falls back to ``now - lookback``; a store that
    cannot be reached raises, failing the cycle instead of re-notifying a day.
    """

    persistent = True

    def __init__(self, lookback: timedelta = timedelta(hours=24)):
        self.lookback = lookback

    @property
    def location(self) -> str:
        raise NotImplementedError

    def _read(self) -> str | None:
        raise NotImplementedError

    def _write(self, value: str) -> None:
        raise NotImplementedError

    def load(self, now: datetime) -> datetime:
        """
        Load the last checkpoint.

        Args:
            now: Current instant, used for the fallback look-back

        Returns:
            Stored checkpoint, or now minus the look-back when unavailable
        """
        fallback = now - self.lookback
        raw = self._read()

        if raw is None or not raw.strip():
            logger.warning(
                f"No checkpoint found at {self.location}, checking since {fallback.isoformat()}"
            )
            return fallback

        try:
            return parse_checkpoint(raw)
        except ValueError:
            logger.warning(
                f"Unparseable checkpoint {raw.strip()!r} at {self.location}, "
                f"checking since {fallback.isoformat()}"
            )
            return fallback

    def save(self, instant: datetime) -> None:
        self._write(instant.isoformat())
        logger.info(f"Checkpoint advanced to {instant.isoformat()} at {self.location}")


class FileCheckpointStore(PersistedCheckpoint):
    """Checkpoint kept in a local text file."""

    def __init__(self, path: str | Path, lookback: timedelta = timedelta(hours=24)):
        super().__init__(lookback)
        self.path = Path(path)

    @property
    def location(self) -> str:
        return str(self.path)

    def _read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            logger.error(f"Checkpoint file {self.path} is not text: {e}")
            return None

    def _write(self, value: str) -> None:
        self.path.write_text(value + "\n", encoding="utf-8")


class S3CheckpointStore(PersistedCheckpoint):
    """Checkpoint kept in a single S3 object, for Lambda deployments."""

    def __init__(self, bucket_name: str, key: str, lookback: timedelta = timedelta(hours=24)):
        super().__init__(lookback)
        self.bucket_name = bucket_name
        self.key = key
        s3_endpoint = os.getenv("S3_ENDPOINT")
        self.s3_client = boto3.client("s3", endpoint_url=s3_endpoint)

    @property
    def location(self) -> str:
        return f"s3://{self.bucket_name}/{self.key}"

    def _read(self) -> str | None:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=self.key)
            return response["Body"].read().decode("utf-8")
        except ClientError as e:
            if e.response["Error"]["Code"] == "NoSuchKey":
                return None
            logger.error(f"Error loading checkpoint from S3: {e}")
            raise

    def _write(self, value: str) -> None:
        self.s3_client.put_object(
            Bucket=self.bucket_name,
            Key=self.key,
            Body=value.encode("utf-8"),
            ContentType="text/plain",
        )


def build_checkpoint_store(settings: Settings) -> WindowCheckpoint | PersistedCheckpoint:
    """Create the checkpoint store selected by ``CHECKPOINT_POLICY``."""
    if settings.checkpoint_policy == "window":
        return WindowCheckpoint(timedelta(minutes=settings.window_minutes))

    lookback = timedelta(hours=settings.lookback_hours)
    if settings.checkpoint_s3_bucket:
        return S3CheckpointStore(settings.checkpoint_s3_bucket, settings.checkpoint_s3_key, lookback)
    return FileCheckpointStore(settings.checkpoint_file, lookback)
