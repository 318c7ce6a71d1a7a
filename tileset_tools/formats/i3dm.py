"""Instanced 3D Model (i3dm) tile format.

Layout:
    32-byte header | feature table | batch table | glTF

The header adds a gltfFormat word after the four section lengths:
0 means the payload is a glTF URI, 1 means it is an embedded glb. The
feature table describes one instance per feature.
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
from tileset_tools.formats.header import TileHeader, build_header, parse_header
from tileset_tools.formats.tables import encode_table_json, pad_binary, parse_table_json, split_sections

logger = structlog.get_logger()

I3DM_MAGIC = "i3dm"
I3DM_HEADER_BYTE_LENGTH = 32

GLTF_FORMAT_URI = 0
GLTF_FORMAT_EMBEDDED = 1

_BATCH_ID_TYPES = (ComponentType.UNSIGNED_BYTE, ComponentType.UNSIGNED_SHORT, ComponentType.UNSIGNED_INT)

I3DM_SEMANTICS: dict[str, PropertyDefinition] = {
    "POSITION": PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.FLOAT),
    "POSITION_QUANTIZED": PropertyDefinition(
        element_type=ElementType.VEC3, component_type=ComponentType.UNSIGNED_SHORT
    ),
    "NORMAL_UP": PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.FLOAT),
    "NORMAL_RIGHT": PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.FLOAT),
    "NORMAL_UP_OCT32P": PropertyDefinition(
        element_type=ElementType.VEC2, component_type=ComponentType.UNSIGNED_SHORT
    ),
    "NORMAL_RIGHT_OCT32P": PropertyDefinition(
        element_type=ElementType.VEC2, component_type=ComponentType.UNSIGNED_SHORT
    ),
    "SCALE": PropertyDefinition(element_type=ElementType.SCALAR, component_type=ComponentType.FLOAT),
    "SCALE_NON_UNIFORM": PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.FLOAT),
    "BATCH_ID": PropertyDefinition(
        element_type=ElementType.SCALAR,
        component_type=ComponentType.UNSIGNED_SHORT,
        component_types=_BATCH_ID_TYPES,
    ),
    "INSTANCES_LENGTH": PropertyDefinition(
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
    "EAST_NORTH_UP": PropertyDefinition(is_global=True, is_boolean=True),
}


class I3dmTile(BaseModel):
    """Parsed i3dm tile."""

    header: TileHeader = Field(description="Tile header")
    feature_table: dict[str, Any] = Field(default_factory=dict, description="Feature table JSON")
    feature_table_binary: bytes = Field(default=b"", description="Feature table binary chunk")
    batch_table: dict[str, Any] = Field(default_factory=dict, description="Batch table JSON")
    batch_table_binary: bytes = Field(default=b"", description="Batch table binary chunk")
    gltf: bytes = Field(default=b"", description="glTF URI or embedded glb")
    instances_length: int = Field(default=0, description="Resolved INSTANCES_LENGTH")
    batch_length: int = Field(default=0, description="Number of batch table entries")

    @property
    def gltf_format(self) -> int:
        """gltfFormat header word."""
        return self.header.gltf_format if self.header.gltf_format is not None else GLTF_FORMAT_EMBEDDED


def check_position_semantics(feature_table: dict[str, Any]) -> None:
    """Require a position semantic and the quantization globals it needs.

    Shared by i3dm and pnts, whose position semantics are identical.

    Raises:
        TileFormatError: If positions are missing or incompletely quantized
    """
    if "POSITION" not in feature_table and "POSITION_QUANTIZED" not in feature_table:
        raise TileFormatError("Feature table must contain either the POSITION or POSITION_QUANTIZED property.")
    if "POSITION_QUANTIZED" in feature_table and (
        "QUANTIZED_VOLUME_OFFSET" not in feature_table or "QUANTIZED_VOLUME_SCALE" not in feature_table
    ):
        raise TileFormatError(
            "Feature table properties QUANTIZED_VOLUME_OFFSET and QUANTIZED_VOLUME_SCALE "
            "are required when POSITION_QUANTIZED is present."
        )


class I3dmParser(TileFormatParser[I3dmTile]):
    """Parser for i3dm tiles."""

    tile_format = TileFormat.I3DM

    def parse(self, data: bytes | BinaryIO) -> I3dmTile:
        """Parse and validate an i3dm tile.

        Args:
            data: Binary data or stream

        Returns:
            Parsed tile
        """
        data = read_all(data)

        header = parse_header(data, I3DM_MAGIC, I3DM_HEADER_BYTE_LENGTH)
        if header.gltf_format not in (GLTF_FORMAT_URI, GLTF_FORMAT_EMBEDDED):
            raise TileFormatError("gltfFormat must be 0 or 1.", expected="0 or 1", actual=header.gltf_format)

        sections = split_sections(
            data, header,
            payload_name="Glb",
            check_payload_alignment=header.gltf_format == GLTF_FORMAT_EMBEDDED,
        )

        feature_table = parse_table_json(sections.feature_table_json, "Feature table")
        batch_table = parse_table_json(sections.batch_table_json, "Batch table")
        binary = sections.feature_table_binary

        require_properties(feature_table, "INSTANCES_LENGTH")
        check_position_semantics(feature_table)
        instances_length = resolve_count(feature_table, binary, "INSTANCES_LENGTH", I3DM_SEMANTICS)
        validate_feature_table(feature_table, binary, I3DM_SEMANTICS, instances_length)

        if "BATCH_ID" in feature_table:
            highest = max_batch_id(feature_table, binary, I3DM_SEMANTICS["BATCH_ID"], instances_length)
            batch_length = 0 if highest is None else highest + 1
        else:
            batch_length = instances_length
        validate_batch_table(batch_table, sections.batch_table_binary, batch_length)

        logger.debug("tile_parsed", format="i3dm", instances_length=instances_length,
                     batch_length=batch_length, gltf_format=header.gltf_format)

        return I3dmTile(
            header=header,
            feature_table=feature_table,
            feature_table_binary=binary,
            batch_table=batch_table,
            batch_table_binary=sections.batch_table_binary,
            gltf=sections.payload,
            instances_length=instances_length,
            batch_length=batch_length,
        )

    def build(self, obj: I3dmTile) -> bytes:
        """Build i3dm binary data.

        Args:
            obj: Tile structure

        Returns:
            Binary i3dm data
        """
        return I3dmBuilder.build_tile(
            feature_table=obj.feature_table,
            feature_table_binary=obj.feature_table_binary,
            batch_table=obj.batch_table,
            batch_table_binary=obj.batch_table_binary,
            gltf=obj.gltf,
            gltf_format=obj.gltf_format,
        )


class I3dmBuilder:
    """Builder for i3dm tiles."""

    @staticmethod
    def build_tile(
        feature_table: dict[str, Any],
        feature_table_binary: bytes = b"",
        batch_table: dict[str, Any] | None = None,
        batch_table_binary: bytes = b"",
        gltf: bytes = b"",
        gltf_format: int = GLTF_FORMAT_EMBEDDED,
    ) -> bytes:
        """Build a well-formed i3dm tile.

        Args:
            feature_table: Feature table JSON
            feature_table_binary: Feature table binary chunk
            batch_table: Batch table JSON
            batch_table_binary: Batch table binary chunk
            gltf: glTF URI bytes or embedded glb
            gltf_format: 0 for a URI, 1 for an embedded glb

        Returns:
            Binary i3dm data
        """
        ft_json = encode_table_json(feature_table, I3DM_HEADER_BYTE_LENGTH)
        ft_binary = pad_binary(feature_table_binary)
        offset = I3DM_HEADER_BYTE_LENGTH + len(ft_json) + len(ft_binary)
        bt_json = encode_table_json(batch_table, offset)
        bt_binary = pad_binary(batch_table_binary)

        body = ft_json + ft_binary + bt_json + bt_binary + gltf
        header = build_header(
            I3DM_MAGIC,
            I3DM_HEADER_BYTE_LENGTH + len(body),
            (len(ft_json), len(ft_binary), len(bt_json), len(bt_binary)),
            gltf_format=gltf_format,
        )
        return header + body


def is_i3dm(data: bytes) -> bool:
    """Check if data appears to be an i3dm tile.

    Args:
        data: Data to check

    Returns:
        True if data starts with the i3dm magic
    """
    return len(data) >= 4 and data[:4] == b"i3dm"
