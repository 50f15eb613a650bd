"""Client for the remote anime file listing API."""

import requests
from pydantic import ValidationError

from .interface import AnimeFile, ApiSettings, FileListing
from .logger import get_logger

logger = get_logger(__name__)


class FetchError(RuntimeError):
    """The file listing could not be retrieved or parsed."""


class AnimeClient:
    """Client for the listing endpoint of the distribution feed."""

    # The endpoint expects a password field even for public folders
    REQUEST_BODY = {"password": "null"}

    def __init__(self, api: ApiSettings, proxy: str | None = None, timeout: int = 30) -> None:
        self.api = api
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "notify-anime/1.0"})
        if proxy:
            self.session.proxies.update({"http": proxy, "https": proxy})

    def fetch_files(self) -> list[AnimeFile]:
        """
        Fetch the full current file listing.

        Returns:
            list of AnimeFile entries in API order

        Raises:
            FetchError: On network failure, non-2xx status or malformed body
        """
        url = self.api.listing_url
        logger.info(f"Fetching file listing from {url}")

        try:
            response = self.session.post(url, json=self.REQUEST_BODY, timeout=self.timeout)
            response.raise_for_status()
            listing = FileListing.model_validate(response.json())
        except requests.RequestException as e:
            logger.error(f"Error fetching file listing: {e}")
            raise FetchError(f"Failed to fetch file listing from {url}: {e}") from e
        except (ValueError, ValidationError) as e:
            logger.error(f"Malformed file listing response: {e}")
            raise FetchError(f"Malformed file listing response from {url}: {e}") from e

        files = []
        for entry in listing.files:
            try:
                files.append(AnimeFile.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed listing entry {entry.get('name')!r}: {e}")

        logger.info(f"Fetched {len(files)} files ({len(listing.files) - len(files)} skipped)")
        return files
