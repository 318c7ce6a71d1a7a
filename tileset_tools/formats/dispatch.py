"""Route binary tile content to its format validator."""

from __future__ import annotations

from collections.abc import Callable

import structlog
from pydantic import BaseModel, Field

from tileset_tools.core.types import TileFormat, ValidationResult
from tileset_tools.formats.b3dm import B3dmParser, is_b3dm
from tileset_tools.formats.base import TileFormatParser
from tileset_tools.formats.i3dm import I3dmParser, is_i3dm
from tileset_tools.formats.pnts import PntsParser, is_pnts

logger = structlog.get_logger()

PARSERS: dict[TileFormat, type[TileFormatParser]] = {
    TileFormat.B3DM: B3dmParser,
    TileFormat.I3DM: I3dmParser,
    TileFormat.PNTS: PntsParser,
}

FORMAT_PROBES: dict[TileFormat, Callable[[bytes], bool]] = {
    TileFormat.B3DM: is_b3dm,
    TileFormat.I3DM: is_i3dm,
    TileFormat.PNTS: is_pnts,
}

CMPT_MAGIC = b"cmpt"


class ContentCheck(BaseModel):
    """Result of dispatching one tile's content."""

    format: TileFormat = Field(description="Format detected from the magic")
    checked: bool = Field(description="Whether a validator ran")
    result: ValidationResult = Field(description="Validation result, valid when unchecked")


def detect_tile_format(data: bytes) -> TileFormat:
    """Detect the tile format from its 4-byte magic.

    Args:
        data: Tile content

    Returns:
        Detected format, UNKNOWN if the magic is not recognized
    """
    for tile_format, probe in FORMAT_PROBES.items():
        if probe(data):
            return tile_format
    if data[:4] == CMPT_MAGIC:
        return TileFormat.CMPT
    return TileFormat.UNKNOWN


def get_parser(tile_format: TileFormat) -> TileFormatParser:
    """Create the parser for a checked tile format.

    Raises:
        ValueError: If the format has no validator
    """
    parser_class = PARSERS.get(tile_format)
    if parser_class is None:
        raise ValueError(f"No validator for tile format: {tile_format.value}")
    return parser_class()


def validate_tile_content(data: bytes) -> ContentCheck:
    """Validate tile content with the validator for its format.

    Composite tiles and unrecognized content are not validated; they are
    reported as unchecked rather than invalid.

    Args:
        data: Tile content

    Returns:
        Dispatch outcome
    """
    tile_format = detect_tile_format(data)
    if not tile_format.is_checked:
        logger.debug("tile_unchecked", format=tile_format.value, size=len(data))
        return ContentCheck(format=tile_format, checked=False, result=ValidationResult(valid=True))

    result = get_parser(tile_format).validate(data)
    return ContentCheck(format=tile_format, checked=True, result=result)
