"""Binary tile format parsers and builders.

This module provides validating parsers and builders for the binary tile
content formats referenced by 3D Tiles tilesets:
- b3dm: Batched 3D Model
- i3dm: Instanced 3D Model
- pnts: Point Cloud

Composite (cmpt) tiles are recognized by the dispatcher but not validated.
"""

from tileset_tools.formats.b3dm import B3dmBuilder, B3dmParser, B3dmTile, is_b3dm
from tileset_tools.formats.base import TileFormatParser
from tileset_tools.formats.dispatch import ContentCheck, detect_tile_format, get_parser, validate_tile_content
from tileset_tools.formats.header import TileHeader, classify_header_layout, parse_header
from tileset_tools.formats.i3dm import I3dmBuilder, I3dmParser, I3dmTile, is_i3dm
from tileset_tools.formats.pnts import PntsBuilder, PntsParser, PntsTile, is_pnts
from tileset_tools.formats.tables import TableSections, parse_table_json, split_sections

__all__ = [
    # Base
    "TileFormatParser",
    # Header and tables
    "TileHeader",
    "TableSections",
    "classify_header_layout",
    "parse_header",
    "parse_table_json",
    "split_sections",
    # b3dm
    "B3dmBuilder",
    "B3dmParser",
    "B3dmTile",
    "is_b3dm",
    # i3dm
    "I3dmBuilder",
    "I3dmParser",
    "I3dmTile",
    "is_i3dm",
    # pnts
    "PntsBuilder",
    "PntsParser",
    "PntsTile",
    "is_pnts",
    # Dispatch
    "ContentCheck",
    "detect_tile_format",
    "get_parser",
    "validate_tile_content",
]
