"""Structural verification for binary tile content.

Every check in the tile format parsers reports failure through
:class:`TileFormatError`, whose message is the exact human-readable
text surfaced to callers. Two checks recur across all formats and
live here:

1. The ``byteLength`` header field must equal the tile's actual size
2. Binary sections must start on an 8-byte boundary
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger()


class TileFormatError(ValueError):
    """Raised when binary tile content violates its format.

    Attributes:
        expected: Expected value (size, offset, token) if applicable
        actual: Actual value found in the tile
    """

    def __init__(
        self,
        message: str,
        *,
        expected: str | int | None = None,
        actual: str | int | None = None,
    ):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


def verify_byte_length(declared: int, actual: int) -> bool:
    """Verify the header byteLength matches the buffer size.

    Args:
        declared: byteLength value read from the header
        actual: Actual number of bytes in the tile

    Returns:
        True if the lengths are equal

    Raises:
        TileFormatError: If the lengths differ
    """
    if declared != actual:
        raise TileFormatError(
            f"byteLength of {declared} does not equal the tile's actual byte length of {actual}.",
            expected=actual,
            actual=declared,
        )
    return True


def verify_alignment(offset: int, byte_length: int, message: str, boundary: int = 8) -> bool:
    """Verify a section boundary is aligned.

    A boundary at (or past) the end of the tile starts an empty section
    and is not checked.

    Args:
        offset: Absolute byte offset of the section start
        byte_length: Total byte length of the tile
        message: Error message to raise on misalignment
        boundary: Required alignment in bytes

    Returns:
        True if the offset is aligned or the section is empty

    Raises:
        TileFormatError: If the offset is misaligned
    """
    if offset >= byte_length:
        return True
    if offset % boundary:
        logger.debug("section_misaligned", offset=offset, boundary=boundary)
        raise TileFormatError(message, expected=boundary, actual=offset)
    return True
