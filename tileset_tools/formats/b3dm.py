"""Batched 3D Model (b3dm) tile format.

Layout:
    28-byte header | feature table | batch table | glb

The feature table carries a single semantic, BATCH_LENGTH, which also
sizes the batch table.
"""

from __future__ import annotations

from typing import Any, BinaryIO

import structlog
from pydantic import BaseModel, Field

from tileset_tools.core.types import ComponentType, ElementType, TileFormat
from tileset_tools.formats.base import TileFormatParser, read_all
from tileset_tools.formats.batch_table import validate_batch_table
from tileset_tools.formats.feature_table import (
    PropertyDefinition,
    require_properties,
    resolve_count,
    validate_feature_table,
)
from tileset_tools.formats.header import (
    HEADER_BYTE_LENGTH,
    TileHeader,
    build_header,
    check_legacy_header,
    parse_header,
)
from tileset_tools.formats.tables import encode_table_json, pad_binary, parse_table_json, split_sections

logger = structlog.get_logger()

B3DM_MAGIC = "b3dm"

B3DM_SEMANTICS: dict[str, PropertyDefinition] = {
    "BATCH_LENGTH": PropertyDefinition(
        element_type=ElementType.SCALAR,
        component_type=ComponentType.UNSIGNED_INT,
        is_global=True,
    ),
}


class B3dmTile(BaseModel):
    """Parsed b3dm tile."""

    header: TileHeader = Field(description="Tile header")
    feature_table: dict[str, Any] = Field(default_factory=dict, description="Feature table JSON")
    feature_table_binary: bytes = Field(default=b"", description="Feature table binary chunk")
    batch_table: dict[str, Any] = Field(default_factory=dict, description="Batch table JSON")
    batch_table_binary: bytes = Field(default=b"", description="Batch table binary chunk")
    glb: bytes = Field(default=b"", description="Embedded binary glTF")
    batch_length: int = Field(default=0, description="Resolved BATCH_LENGTH")


class B3dmParser(TileFormatParser[B3dmTile]):
    """Parser for b3dm tiles."""

    tile_format = TileFormat.B3DM

    def parse(self, data: bytes | BinaryIO) -> B3dmTile:
        """Parse and validate a b3dm tile.

        Args:
            data: Binary data or stream

        Returns:
            Parsed tile
        """
        data = read_all(data)

        header = parse_header(data, B3DM_MAGIC, HEADER_BYTE_LENGTH)
        check_legacy_header(header)
        sections = split_sections(data, header, payload_name="Glb")

        feature_table = parse_table_json(sections.feature_table_json, "Feature table")
        batch_table = parse_table_json(sections.batch_table_json, "Batch table")

        require_properties(feature_table, "BATCH_LENGTH")
        batch_length = resolve_count(feature_table, sections.feature_table_binary,
                                     "BATCH_LENGTH", B3DM_SEMANTICS)
        validate_feature_table(feature_table, sections.feature_table_binary, B3DM_SEMANTICS, batch_length)
        validate_batch_table(batch_table, sections.batch_table_binary, batch_length)

        logger.debug("tile_parsed", format="b3dm", batch_length=batch_length, glb_size=len(sections.payload))

        return B3dmTile(
            header=header,
            feature_table=feature_table,
            feature_table_binary=sections.feature_table_binary,
            batch_table=batch_table,
            batch_table_binary=sections.batch_table_binary,
            glb=sections.payload,
            batch_length=batch_length,
        )

    def build(self, obj: B3dmTile) -> bytes:
        """Build b3dm binary data.

        Header section lengths are recomputed from the tile contents.

        Args:
            obj: Tile structure

        Returns:
            Binary b3dm data
        """
        return B3dmBuilder.build_tile(
            feature_table=obj.feature_table,
            feature_table_binary=obj.feature_table_binary,
            batch_table=obj.batch_table,
            batch_table_binary=obj.batch_table_binary,
            glb=obj.glb,
        )


class B3dmBuilder:
    """Builder for b3dm tiles."""

    @staticmethod
    def build_tile(
        feature_table: dict[str, Any] | None = None,
        feature_table_binary: bytes = b"",
        batch_table: dict[str, Any] | None = None,
        batch_table_binary: bytes = b"",
        glb: bytes = b"",
    ) -> bytes:
        """Build a well-formed b3dm tile.

        Args:
            feature_table: Feature table JSON, defaults to BATCH_LENGTH 0
            feature_table_binary: Feature table binary chunk
            batch_table: Batch table JSON
            batch_table_binary: Batch table binary chunk
            glb: Binary glTF payload

        Returns:
            Binary b3dm data
        """
        if feature_table is None:
            feature_table = {"BATCH_LENGTH": 0}

        ft_json = encode_table_json(feature_table, HEADER_BYTE_LENGTH)
        ft_binary = pad_binary(feature_table_binary)
        offset = HEADER_BYTE_LENGTH + len(ft_json) + len(ft_binary)
        bt_json = encode_table_json(batch_table, offset)
        bt_binary = pad_binary(batch_table_binary)

        body = ft_json + ft_binary + bt_json + bt_binary + glb
        header = build_header(
            B3DM_MAGIC,
            HEADER_BYTE_LENGTH + len(body),
            (len(ft_json), len(ft_binary), len(bt_json), len(bt_binary)),
        )
        return header + body


def is_b3dm(data: bytes) -> bool:
    """Check if data appears to be a b3dm tile.

    Args:
        data: Data to check

    Returns:
        True if data starts with the b3dm magic
    """
    return len(data) >= 4 and data[:4] == b"b3dm"
