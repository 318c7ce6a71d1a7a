"""Base classes for tile format parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO, ClassVar, Generic, TypeVar

import structlog
from pydantic import BaseModel

from tileset_tools.core.integrity import TileFormatError
from tileset_tools.core.types import TileFormat, ValidationResult

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)


class TileFormatParser(ABC, Generic[T]):
    """Base class for binary tile parsers."""

    tile_format: ClassVar[TileFormat]

    @abstractmethod
    def parse(self, data: bytes | BinaryIO) -> T:
        """Parse and validate binary tile content.

        Args:
            data: Binary data or stream

        Returns:
            Parsed tile

        Raises:
            TileFormatError: If the content violates the format
        """
        ...

    def parse_file(self, path: str) -> T:
        """Parse tile from file.

        Args:
            path: File path

        Returns:
            Parsed tile
        """
        try:
            with open(path, "rb") as f:
                return self.parse(f)
        except OSError as e:
            logger.error("Failed to read file", path=path, error=str(e))
            raise ValueError(f"Cannot read file {path}: {e}") from e

    @abstractmethod
    def build(self, obj: T) -> bytes:
        """Build binary tile content from a parsed tile.

        Args:
            obj: Tile object

        Returns:
            Binary data
        """
        ...

    def validate(self, data: bytes) -> ValidationResult:
        """Validate tile content.

        Args:
            data: Binary data to validate

        Returns:
            Result with no message if the tile is valid
        """
        try:
            self.parse(data)
        except TileFormatError as e:
            logger.debug("tile_invalid", format=self.tile_format.value, error=str(e))
            return ValidationResult(valid=False, message=str(e))
        return ValidationResult(valid=True)

    def build_file(self, obj: T, path: str) -> None:
        """Build tile to file.

        Args:
            obj: Tile object
            path: Output file path
        """
        try:
            data = self.build(obj)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error("Failed to write file", path=path, error=str(e))
            raise ValueError(f"Cannot write file {path}: {e}") from e


def read_all(data: bytes | BinaryIO) -> bytes:
    """Read a whole tile from bytes or a stream."""
    if isinstance(data, bytes):
        return data
    return data.read()
