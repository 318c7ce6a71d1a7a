"""Tile content fetching.

Content URLs in a tileset are relative to the tileset itself, which may
live on disk or behind HTTP. A missing tile is not an error: the fetcher
returns None and the tile is skipped.
"""

from __future__ import annotations

import threading
from pathlib import Path
from urllib.parse import unquote, urljoin, urlparse

import httpx
import structlog

from tileset_tools.core.config import FetchConfig

logger = structlog.get_logger()


def is_remote(location: str) -> bool:
    """Check whether a location is an http(s) URL."""
    return urlparse(location).scheme in ("http", "https")


class TileFetcher:
    """Fetch tile content by URL relative to a tileset location."""

    def __init__(
        self,
        base: str | Path = ".",
        config: FetchConfig | None = None,
        client: httpx.Client | None = None,
    ):
        """Initialize tile fetcher.

        Args:
            base: Directory or URL that relative content URLs resolve against
            config: Optional fetch configuration
            client: Optional HTTP client, created on first remote fetch
        """
        self.base = str(base)
        self.config = config or FetchConfig()
        self._client = client
        self._client_lock = threading.Lock()

    @classmethod
    def for_tileset(cls, tileset_location: str | Path, config: FetchConfig | None = None) -> TileFetcher:
        """Create a fetcher resolving URLs against a tileset's location."""
        location = str(tileset_location)
        if is_remote(location):
            return cls(urljoin(location, "."), config)
        return cls(Path(location).resolve().parent, config)

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client.

        Fetches run in worker threads, so creation happens under a lock.
        """
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self.config.timeout,
                        verify=self.config.verify_ssl,
                        follow_redirects=True,
                    )
        return self._client

    def close(self) -> None:
        """Close the HTTP client if one was created."""
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def __enter__(self) -> TileFetcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def resolve(self, url: str) -> str:
        """Resolve a content URL against the base location."""
        if is_remote(url):
            return url
        if is_remote(self.base):
            base = self.base if self.base.endswith("/") else self.base + "/"
            return urljoin(base, url)
        return str(Path(self.base) / unquote(url))

    def fetch(self, url: str) -> bytes | None:
        """Fetch tile content.

        Args:
            url: Content URL from the tileset

        Returns:
            Tile bytes, or None if the tile does not exist

        Raises:
            httpx.HTTPError: If a remote fetch keeps failing
            OSError: If a local tile exists but cannot be read
        """
        location = self.resolve(url)
        if is_remote(location):
            return self._fetch_remote(location)

        path = Path(location)
        if not path.is_file():
            logger.debug("tile_not_found", url=url, path=str(path))
            return None
        return path.read_bytes()

    def _fetch_remote(self, location: str) -> bytes | None:
        """Fetch remote tile content with retries."""
        last_error: httpx.HTTPError | None = None

        for attempt in range(self.config.max_retries):
            try:
                response = self.client.get(location)
                if response.status_code == 404:
                    logger.debug("tile_not_found", url=location)
                    return None
                response.raise_for_status()
                logger.debug("tile_fetch_success", url=location, attempt=attempt + 1, size=len(response.content))
                return response.content
            except httpx.HTTPError as e:
                last_error = e
                logger.debug("tile_fetch_retry", url=location, attempt=attempt + 1, error=str(e))

        logger.error("tile_fetch_failed", url=location)
        if last_error:
            raise last_error
        raise httpx.HTTPError(f"Failed to fetch {location}")
