"""Binary header parsing shared by the tile formats.

All tile formats start with the same 12 bytes (magic, version,
byteLength) followed by four little-endian uint32 section lengths:
feature table JSON, feature table binary, batch table JSON and batch
table binary. i3dm appends a fifth word, gltfFormat.
"""

from __future__ import annotations

import struct

import structlog
from pydantic import BaseModel, Field

from tileset_tools.core.integrity import TileFormatError, verify_byte_length
from tileset_tools.core.types import HeaderLayout

logger = structlog.get_logger()

HEADER_BYTE_LENGTH = 28
TILE_VERSION = 1

# Legacy b3dm headers are two or one words shorter than the current one, so
# the words read as batchTableJsonByteLength / batchTableBinaryByteLength
# actually hold the first bytes of the batch table JSON ('"' = 0x22) or of
# the glTF magic ('g' = 0x67). Read little-endian, either yields a value of
# at least 0x22000000 (~570MB), far above any real JSON chunk length.
LEGACY_HEADER_THRESHOLD = 0x22000000

CURRENT_LAYOUT_DESCRIPTION = (
    "[featureTableJsonByteLength] [featureTableBinaryByteLength] "
    "[batchTableJsonByteLength] [batchTableBinaryByteLength]"
)

LEGACY_LAYOUT_DESCRIPTIONS = {
    HeaderLayout.LEGACY_1: "[batchLength] [batchTableByteLength]",
    HeaderLayout.LEGACY_2: "[batchTableJsonByteLength] [batchTableBinaryByteLength] [batchLength]",
}


class TileHeader(BaseModel):
    """Parsed tile header."""

    magic: str = Field(description="4-character format token")
    version: int = Field(description="Format version")
    byte_length: int = Field(description="Total tile length in bytes")
    feature_table_json_byte_length: int = Field(description="Feature table JSON chunk length")
    feature_table_binary_byte_length: int = Field(description="Feature table binary chunk length")
    batch_table_json_byte_length: int = Field(description="Batch table JSON chunk length")
    batch_table_binary_byte_length: int = Field(description="Batch table binary chunk length")
    header_byte_length: int = Field(default=HEADER_BYTE_LENGTH, description="Header length in bytes")
    gltf_format: int | None = Field(default=None, description="glTF format word (i3dm only)")

    @property
    def section_byte_lengths(self) -> tuple[int, int, int, int]:
        """The four table section lengths in file order."""
        return (
            self.feature_table_json_byte_length,
            self.feature_table_binary_byte_length,
            self.batch_table_json_byte_length,
            self.batch_table_binary_byte_length,
        )


def parse_header(data: bytes, magic: str, header_byte_length: int = HEADER_BYTE_LENGTH) -> TileHeader:
    """Parse and validate a tile header.

    Checks run in order and the first failure is raised: minimum size,
    magic, version, byteLength.

    Args:
        data: Complete tile content
        magic: Expected format token
        header_byte_length: Header size for this format

    Returns:
        Parsed header

    Raises:
        TileFormatError: If the header is invalid
    """
    if len(data) < header_byte_length:
        raise TileFormatError(
            f"Header must be {header_byte_length} bytes.",
            expected=header_byte_length,
            actual=len(data),
        )

    token = data[0:4].decode("utf-8", errors="replace")
    if token != magic:
        raise TileFormatError(f"Invalid magic: {token}", expected=magic, actual=token)

    version, byte_length = struct.unpack_from("<II", data, 4)
    if version != TILE_VERSION:
        raise TileFormatError(
            f"Invalid version: {version}. Version must be {TILE_VERSION}.",
            expected=TILE_VERSION,
            actual=version,
        )

    verify_byte_length(byte_length, len(data))

    ft_json, ft_binary, bt_json, bt_binary = struct.unpack_from("<IIII", data, 12)
    gltf_format = None
    if header_byte_length > HEADER_BYTE_LENGTH:
        gltf_format = struct.unpack_from("<I", data, HEADER_BYTE_LENGTH)[0]

    header = TileHeader(
        magic=token,
        version=version,
        byte_length=byte_length,
        feature_table_json_byte_length=ft_json,
        feature_table_binary_byte_length=ft_binary,
        batch_table_json_byte_length=bt_json,
        batch_table_binary_byte_length=bt_binary,
        header_byte_length=header_byte_length,
        gltf_format=gltf_format,
    )

    logger.debug("tile_header_parsed", magic=token, byte_length=byte_length,
                 sections=header.section_byte_lengths)
    return header


def classify_header_layout(header: TileHeader) -> HeaderLayout:
    """Classify which header layout a b3dm tile was written with.

    Args:
        header: Header parsed with the current layout

    Returns:
        Detected layout
    """
    if header.batch_table_json_byte_length >= LEGACY_HEADER_THRESHOLD:
        return HeaderLayout.LEGACY_1
    if header.batch_table_binary_byte_length >= LEGACY_HEADER_THRESHOLD:
        return HeaderLayout.LEGACY_2
    return HeaderLayout.CURRENT


def check_legacy_header(header: TileHeader) -> None:
    """Reject tiles written with a legacy header layout.

    Raises:
        TileFormatError: With migration guidance if the layout is legacy
    """
    layout = classify_header_layout(header)
    if layout is HeaderLayout.CURRENT:
        return

    logger.debug("legacy_header_detected", layout=layout.value)
    raise TileFormatError(
        f"Header is using the legacy format {LEGACY_LAYOUT_DESCRIPTIONS[layout]}. "
        f"The new format is {CURRENT_LAYOUT_DESCRIPTION}.",
        expected=HeaderLayout.CURRENT.value,
        actual=layout.value,
    )


def build_header(
    magic: str,
    byte_length: int,
    section_byte_lengths: tuple[int, int, int, int],
    gltf_format: int | None = None,
) -> bytes:
    """Build a current-layout tile header.

    Args:
        magic: Format token
        byte_length: Total tile length
        section_byte_lengths: The four table section lengths
        gltf_format: Extra gltfFormat word for i3dm

    Returns:
        Header bytes
    """
    header = magic.encode("utf-8") + struct.pack("<II", TILE_VERSION, byte_length)
    header += struct.pack("<IIII", *section_byte_lengths)
    if gltf_format is not None:
        header += struct.pack("<I", gltf_format)
    return header
