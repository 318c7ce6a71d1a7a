"""Point Cloud (pnts) tile format.

Layout:
    28-byte header | feature table | batch table

Features are points. The batch table is indexed by BATCH_ID when points
are grouped into batches, otherwise it holds one entry per point.
"""

from __future__ import annotations

from typing import Any, BinaryIO

import structlog
from pydantic import BaseModel, Field

from tileset_tools.core.integrity import TileFormatError
from tileset_tools.core.types import ComponentType, ElementType, TileFormat
from tileset_tools.formats.base import TileFormatParser, read_all
from tileset_tools.formats.batch_table import validate_batch_table
from tileset_tools.formats.feature_table import (
    PropertyDefinition,
    max_batch_id,
    require_properties,
    resolve_count,
    validate_feature_table,
)
from tileset_tools.formats.header import HEADER_BYTE_LENGTH, TileHeader, build_header, parse_header
from tileset_tools.formats.i3dm import check_position_semantics
from tileset_tools.formats.tables import encode_table_json, pad_binary, parse_table_json, split_sections

logger = structlog.get_logger()

PNTS_MAGIC = "pnts"

PNTS_SEMANTICS: dict[str, PropertyDefinition] = {
    "POSITION": PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.FLOAT),
    "POSITION_QUANTIZED": PropertyDefinition(
        element_type=ElementType.VEC3, component_type=ComponentType.UNSIGNED_SHORT
    ),
    "RGBA": PropertyDefinition(element_type=ElementType.VEC4, component_type=ComponentType.UNSIGNED_BYTE),
    "RGB": PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.UNSIGNED_BYTE),
    "RGB565": PropertyDefinition(element_type=ElementType.SCALAR, component_type=ComponentType.UNSIGNED_SHORT),
    "NORMAL": PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.FLOAT),
    "NORMAL_OCT16P": PropertyDefinition(element_type=ElementType.VEC2, component_type=ComponentType.UNSIGNED_BYTE),
    "BATCH_ID": PropertyDefinition(
        element_type=ElementType.SCALAR,
        component_type=ComponentType.UNSIGNED_SHORT,
        component_types=(ComponentType.UNSIGNED_BYTE, ComponentType.UNSIGNED_SHORT, ComponentType.UNSIGNED_INT),
    ),
    "POINTS_LENGTH": PropertyDefinition(
        element_type=ElementType.SCALAR, component_type=ComponentType.UNSIGNED_INT, is_global=True
    ),
    "RTC_CENTER": PropertyDefinition(
        element_type=ElementType.VEC3, component_type=ComponentType.FLOAT, is_global=True
    ),
    "QUANTIZED_VOLUME_OFFSET": PropertyDefinition(
        element_type=ElementType.VEC3, component_type=ComponentType.FLOAT, is_global=True
    ),
    "QUANTIZED_VOLUME_SCALE": PropertyDefinition(
        element_type=ElementType.VEC3, component_type=ComponentType.FLOAT, is_global=True
    ),
    "CONSTANT_RGBA": PropertyDefinition(
        element_type=ElementType.VEC4, component_type=ComponentType.UNSIGNED_BYTE, is_global=True
    ),
    "BATCH_LENGTH": PropertyDefinition(
        element_type=ElementType.SCALAR, component_type=ComponentType.UNSIGNED_INT, is_global=True
    ),
}


class PntsTile(BaseModel):
    """Parsed pnts tile."""

    header: TileHeader = Field(description="Tile header")
    feature_table: dict[str, Any] = Field(default_factory=dict, description="Feature table JSON")
    feature_table_binary: bytes = Field(default=b"", description="Feature table binary chunk")
    batch_table: dict[str, Any] = Field(default_factory=dict, description="Batch table JSON")
    batch_table_binary: bytes = Field(default=b"", description="Batch table binary chunk")
    points_length: int = Field(default=0, description="Resolved POINTS_LENGTH")
    batch_length: int = Field(default=0, description="Number of batch table entries")


class PntsParser(TileFormatParser[PntsTile]):
    """Parser for pnts tiles."""

    tile_format = TileFormat.PNTS

    def parse(self, data: bytes | BinaryIO) -> PntsTile:
        """Parse and validate a pnts tile.

        Args:
            data: Binary data or stream

        Returns:
            Parsed tile
        """
        data = read_all(data)

        header = parse_header(data, PNTS_MAGIC, HEADER_BYTE_LENGTH)
        sections = split_sections(data, header, payload_name=None)

        feature_table = parse_table_json(sections.feature_table_json, "Feature table")
        batch_table = parse_table_json(sections.batch_table_json, "Batch table")
        binary = sections.feature_table_binary

        require_properties(feature_table, "POINTS_LENGTH")
        check_position_semantics(feature_table)
        if "BATCH_ID" in feature_table and "BATCH_LENGTH" not in feature_table:
            raise TileFormatError("Feature table must contain a BATCH_LENGTH property when BATCH_ID is defined.")
        if "BATCH_LENGTH" in feature_table and "BATCH_ID" not in feature_table:
            raise TileFormatError("Feature table must contain a BATCH_ID property when BATCH_LENGTH is defined.")

        points_length = resolve_count(feature_table, binary, "POINTS_LENGTH", PNTS_SEMANTICS)
        validate_feature_table(feature_table, binary, PNTS_SEMANTICS, points_length)

        if "BATCH_LENGTH" in feature_table:
            batch_length = resolve_count(feature_table, binary, "BATCH_LENGTH", PNTS_SEMANTICS)
            highest = max_batch_id(feature_table, binary, PNTS_SEMANTICS["BATCH_ID"], points_length)
            if highest is not None and highest >= batch_length:
                raise TileFormatError(
                    "Feature table BATCH_ID values must be less than BATCH_LENGTH.",
                    expected=batch_length,
                    actual=highest,
                )
        else:
            batch_length = points_length
        validate_batch_table(batch_table, sections.batch_table_binary, batch_length)

        logger.debug("tile_parsed", format="pnts", points_length=points_length, batch_length=batch_length)

        return PntsTile(
            header=header,
            feature_table=feature_table,
            feature_table_binary=binary,
            batch_table=batch_table,
            batch_table_binary=sections.batch_table_binary,
            points_length=points_length,
            batch_length=batch_length,
        )

    def build(self, obj: PntsTile) -> bytes:
        """Build pnts binary data.

        Args:
            obj: Tile structure

        Returns:
            Binary pnts data
        """
        return PntsBuilder.build_tile(
            feature_table=obj.feature_table,
            feature_table_binary=obj.feature_table_binary,
            batch_table=obj.batch_table,
            batch_table_binary=obj.batch_table_binary,
        )


class PntsBuilder:
    """Builder for pnts tiles."""

    @staticmethod
    def build_tile(
        feature_table: dict[str, Any],
        feature_table_binary: bytes = b"",
        batch_table: dict[str, Any] | None = None,
        batch_table_binary: bytes = b"",
    ) -> bytes:
        """Build a well-formed pnts tile.

        Args:
            feature_table: Feature table JSON
            feature_table_binary: Feature table binary chunk
            batch_table: Batch table JSON
            batch_table_binary: Batch table binary chunk

        Returns:
            Binary pnts data
        """
        ft_json = encode_table_json(feature_table, HEADER_BYTE_LENGTH)
        ft_binary = pad_binary(feature_table_binary)
        offset = HEADER_BYTE_LENGTH + len(ft_json) + len(ft_binary)
        bt_json = encode_table_json(batch_table, offset)
        bt_binary = pad_binary(batch_table_binary)

        body = ft_json + ft_binary + bt_json + bt_binary
        header = build_header(
            PNTS_MAGIC,
            HEADER_BYTE_LENGTH + len(body),
            (len(ft_json), len(ft_binary), len(bt_json), len(bt_binary)),
        )
        return header + body


def is_pnts(data: bytes) -> bool:
    """Check if data appears to be a pnts tile.

    Args:
        data: Data to check

    Returns:
        True if data starts with the pnts magic
    """
    return len(data) >= 4 and data[:4] == b"pnts"
