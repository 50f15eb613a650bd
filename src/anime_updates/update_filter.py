"""Selection of newly modified files that match the watch list."""

from collections.abc import Iterable, Sequence
from datetime import datetime
from zoneinfo import ZoneInfo

from .interface import AnimeFile
from .logger import get_logger

logger = get_logger(__name__)


def parse_modified_time(value: str, api_timezone: str = "Asia/Shanghai") -> datetime:
    """
    Parse an API timestamp into an aware datetime.

    Timestamps without an offset are in the API's own timezone.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(api_timezone))
    return parsed


def matches_watch_list(name: str, watch_list: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(term.lower() in lowered for term in watch_list)


def filter_new_files(
    files: Iterable[AnimeFile],
    checkpoint: datetime,
    watch_list: Sequence[str],
    api_timezone: str = "Asia/Shanghai",
) -> list[AnimeFile]:
    """
    Select files modified strictly after the checkpoint whose name contains a watched term.

    Args:
        files: Listing entries, in API order
        checkpoint: Aware instant; entries modified exactly at it are excluded
        watch_list: Name fragments, compared case-insensitively
        api_timezone: Timezone of offset-less API timestamps

    Returns:
        Matching entries in input order
    """
    if not watch_list:
        return []

    selected = []
    for file in files:
        try:
            modified = parse_modified_time(file.modified_time, api_timezone)
        except ValueError:
            logger.warning(f"Skipping {file.name!r}: unparseable modifiedTime {file.modified_time!r}")
            continue

        if modified > checkpoint and matches_watch_list(file.name, watch_list):
            selected.append(file)

    return selected
