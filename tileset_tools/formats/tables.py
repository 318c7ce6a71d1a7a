"""Feature table and batch table section layout.

The four table sections follow the header contiguously:

    header | ft JSON | ft binary | bt JSON | bt binary | payload

Both binary sections and the trailing payload (glb for b3dm and i3dm)
must start on an 8-byte boundary relative to the start of the tile.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from pydantic import BaseModel, Field

from tileset_tools.core.integrity import TileFormatError, verify_alignment
from tileset_tools.core.utils import align_up
from tileset_tools.formats.header import TileHeader

logger = structlog.get_logger()


class TableSections(BaseModel):
    """Byte ranges carved out of a tile after its header."""

    feature_table_json: bytes = Field(description="Feature table JSON chunk")
    feature_table_binary: bytes = Field(description="Feature table binary chunk")
    batch_table_json: bytes = Field(description="Batch table JSON chunk")
    batch_table_binary: bytes = Field(description="Batch table binary chunk")
    payload: bytes = Field(default=b"", description="Bytes following the batch table")
    payload_byte_offset: int = Field(description="Absolute offset of the trailing payload")


def split_sections(
    data: bytes,
    header: TileHeader,
    payload_name: str | None = "Glb",
    check_payload_alignment: bool = True,
) -> TableSections:
    """Validate the table layout and slice out each section.

    Args:
        data: Complete tile content
        header: Parsed header
        payload_name: Name of the trailing payload in messages, None if the
            format has no trailing payload
        check_payload_alignment: Whether the payload must be 8-byte aligned

    Returns:
        Sliced sections

    Raises:
        TileFormatError: If the lengths overflow the tile or a section is misaligned
    """
    byte_length = header.byte_length
    start = header.header_byte_length

    if sum(header.section_byte_lengths) > byte_length - start:
        if payload_name is None:
            raise TileFormatError(
                "Feature table and batch table byte lengths exceed the tile's byte length."
            )
        raise TileFormatError(
            f"Feature table, batch table, and {payload_name.lower()} byte lengths "
            "exceed the tile's byte length."
        )

    offsets = [start]
    for length in header.section_byte_lengths:
        offsets.append(offsets[-1] + length)
    ft_json_offset, ft_binary_offset, bt_json_offset, bt_binary_offset, payload_offset = offsets

    verify_alignment(ft_binary_offset, byte_length,
                     "Feature table binary must be aligned to an 8-byte boundary.")
    verify_alignment(bt_binary_offset, byte_length,
                     "Batch table binary must be aligned to an 8-byte boundary.")
    if payload_name is not None and check_payload_alignment:
        verify_alignment(payload_offset, byte_length,
                         f"{payload_name} must be aligned to an 8-byte boundary.")

    return TableSections(
        feature_table_json=data[ft_json_offset:ft_binary_offset],
        feature_table_binary=data[ft_binary_offset:bt_json_offset],
        batch_table_json=data[bt_json_offset:bt_binary_offset],
        batch_table_binary=data[bt_binary_offset:payload_offset],
        payload=data[payload_offset:byte_length],
        payload_byte_offset=payload_offset,
    )


def parse_table_json(chunk: bytes, table_name: str) -> dict[str, Any]:
    """Parse a table JSON chunk.

    An empty chunk is an empty table. Trailing NUL padding written by older
    exporters is ignored; space padding is valid JSON whitespace.

    Args:
        chunk: Raw JSON bytes, possibly space or NUL padded
        table_name: "Feature table" or "Batch table", used in messages

    Returns:
        Parsed JSON object

    Raises:
        TileFormatError: If the chunk is not a JSON object
    """
    chunk = chunk.rstrip(b"\x00")
    if not chunk:
        return {}

    try:
        table = json.loads(chunk.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise TileFormatError(f"{table_name} JSON could not be parsed: {e}") from e

    if not isinstance(table, dict):
        raise TileFormatError(f"{table_name} JSON must be an object.")
    return table


def encode_table_json(table: dict[str, Any] | None, byte_offset: int) -> bytes:
    """Encode a table as JSON padded with spaces to end on an 8-byte boundary.

    Args:
        table: Table to encode, None or empty for no chunk
        byte_offset: Absolute offset the chunk will start at

    Returns:
        Padded JSON bytes
    """
    if not table:
        return b""
    encoded = json.dumps(table, separators=(",", ":")).encode("utf-8")
    padding = align_up(byte_offset + len(encoded)) - (byte_offset + len(encoded))
    return encoded + b" " * padding


def pad_binary(chunk: bytes) -> bytes:
    """Pad a binary chunk with zeros to a multiple of 8 bytes."""
    return chunk + b"\x00" * (align_up(len(chunk)) - len(chunk))
