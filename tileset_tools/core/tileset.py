"""Tileset tree validation.

Walks the tile hierarchy with an explicit stack and checks, for every
tile:

1. Its content bounding region lies within the tile's own region
2. Its binary content (if any) is a valid b3dm, i3dm or pnts tile
3. Its geometric error does not exceed its parent's

Structural violations (1 and 3) stop the walk at once. Content checks
run concurrently with the walk and are joined before the tileset is
declared valid; the first failing tile in visitation order decides the
result.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from tileset_tools.core.config import AppConfig
from tileset_tools.core.types import TileNode, Tileset, TilesetValidationResult
from tileset_tools.formats.dispatch import ContentCheck, validate_tile_content

logger = structlog.get_logger()

TileSource = Callable[[str], bytes | None]

VALID_MESSAGE = "Tileset is valid"
REGION_MESSAGE = "Child occupies region greater than parent"
GEOMETRIC_ERROR_MESSAGE = "Child has geometricError greater than parent"


def region_exceeds(node: TileNode) -> bool:
    """Check whether a tile's content region exceeds the tile's region.

    Regions are compared element-wise. Only region volumes are compared;
    box and sphere volumes are not checked.
    """
    content = node.content
    if content is None or content.bounding_volume is None:
        return False

    content_region = content.bounding_volume.region
    tile_region = node.bounding_volume.region
    if content_region is None or tile_region is None:
        return False

    return any(inner > outer for inner, outer in zip(content_region, tile_region, strict=True))


class TilesetValidator:
    """Validate a tileset's hierarchy and tile content."""

    def __init__(self, fetch: TileSource | None = None, config: AppConfig | None = None):
        """Initialize validator.

        Args:
            fetch: Callable returning tile bytes for a content URL, or None
                if the tile does not exist. Content is not checked without one.
            config: Optional application configuration
        """
        self.fetch = fetch
        self.config = config or AppConfig()

    def validate(self, tileset: Tileset | dict[str, Any]) -> TilesetValidationResult:
        """Validate a tileset.

        Args:
            tileset: Parsed tileset document

        Returns:
            Validation result
        """
        return asyncio.run(self.validate_async(tileset))

    async def validate_async(self, tileset: Tileset | dict[str, Any]) -> TilesetValidationResult:
        """Validate a tileset, checking tile content concurrently.

        Args:
            tileset: Parsed tileset document

        Returns:
            Validation result
        """
        if not isinstance(tileset, Tileset):
            tileset = Tileset.model_validate(tileset)

        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        checks: list[tuple[str, asyncio.Task[ContentCheck | None]]] = []

        try:
            violation = self._walk(tileset, checks, semaphore)
            if violation is not None:
                return self._conclude(violation)

            for url, task in checks:
                check = await task
                if check is not None and not check.result.valid:
                    return self._conclude(self._content_failure(url, check))

            return self._conclude(TilesetValidationResult(valid=True, message=VALID_MESSAGE))
        finally:
            # Abandoned checks may still be running; their results are discarded.
            tasks = [task for _, task in checks]
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

    def _walk(
        self,
        tileset: Tileset,
        checks: list[tuple[str, asyncio.Task[ContentCheck | None]]],
        semaphore: asyncio.Semaphore,
    ) -> TilesetValidationResult | None:
        """Walk the tree, scheduling content checks.

        Returns:
            The first structural violation, or None
        """
        stack: list[tuple[TileNode, TileNode | Tileset]] = [(tileset.root, tileset)]
        visited = 0

        while stack:
            node, parent = stack.pop()
            visited += 1

            if region_exceeds(node):
                return TilesetValidationResult(valid=False, message=REGION_MESSAGE)

            url = node.content_url
            if url is not None and self.fetch is not None:
                checks.append((url, asyncio.create_task(self._check_content(url, semaphore))))

            if parent.geometric_error is not None and node.geometric_error > parent.geometric_error:
                return TilesetValidationResult(valid=False, message=GEOMETRIC_ERROR_MESSAGE)

            stack.extend((child, node) for child in node.children)

        logger.debug("tileset_walked", tiles=visited, content_checks=len(checks))
        return None

    async def _check_content(self, url: str, semaphore: asyncio.Semaphore) -> ContentCheck | None:
        """Fetch and validate one tile in a worker thread."""
        async with semaphore:
            return await asyncio.to_thread(self._fetch_and_validate, url)

    def _fetch_and_validate(self, url: str) -> ContentCheck | None:
        """Fetch tile bytes and dispatch them to their validator."""
        assert self.fetch is not None
        data = self.fetch(url)
        if data is None:
            logger.debug("tile_skipped", url=url)
            return None

        check = validate_tile_content(data)
        logger.debug("tile_validated", url=url, format=check.format.value,
                     checked=check.checked, valid=check.result.valid)
        return check

    def _content_failure(self, url: str, check: ContentCheck) -> TilesetValidationResult:
        """Build the result for a tile with invalid content."""
        message = f"invalid {check.format.value}"
        if self.config.detailed_messages:
            message = f"{message}: {check.result.message}"
        return TilesetValidationResult(valid=False, message=message, url=url, detail=check.result.message)

    def _conclude(self, result: TilesetValidationResult) -> TilesetValidationResult:
        logger.info("tileset_validated", valid=result.valid, message=result.message, url=result.url)
        return result


def validate_tileset(
    tileset: Tileset | dict[str, Any],
    fetch: TileSource | None = None,
    config: AppConfig | None = None,
) -> TilesetValidationResult:
    """Validate a tileset document.

    Args:
        tileset: Parsed tileset document
        fetch: Callable returning tile bytes for a content URL
        config: Optional application configuration

    Returns:
        Validation result
    """
    return TilesetValidator(fetch=fetch, config=config).validate(tileset)
