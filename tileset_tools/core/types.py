"""Core type definitions for tileset_tools."""

from __future__ import annotations

from enum import Enum, StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TileFormat(StrEnum):
    """Binary tile content formats, keyed by their 4-byte magic."""
    B3DM = "b3dm"
    I3DM = "i3dm"
    PNTS = "pnts"
    CMPT = "cmpt"
    UNKNOWN = "unknown"

    @property
    def is_checked(self) -> bool:
        """Whether content of this format is validated."""
        return self in (TileFormat.B3DM, TileFormat.I3DM, TileFormat.PNTS)


class ComponentType(StrEnum):
    """Component types of binary table properties."""
    BYTE = "BYTE"
    UNSIGNED_BYTE = "UNSIGNED_BYTE"
    SHORT = "SHORT"
    UNSIGNED_SHORT = "UNSIGNED_SHORT"
    INT = "INT"
    UNSIGNED_INT = "UNSIGNED_INT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"

    @property
    def byte_length(self) -> int:
        """Size of one component in bytes."""
        return _COMPONENT_BYTE_LENGTHS[self]

    @property
    def struct_code(self) -> str:
        """struct format character for one component."""
        return _COMPONENT_STRUCT_CODES[self]


_COMPONENT_BYTE_LENGTHS = {
    ComponentType.BYTE: 1,
    ComponentType.UNSIGNED_BYTE: 1,
    ComponentType.SHORT: 2,
    ComponentType.UNSIGNED_SHORT: 2,
    ComponentType.INT: 4,
    ComponentType.UNSIGNED_INT: 4,
    ComponentType.FLOAT: 4,
    ComponentType.DOUBLE: 8,
}

_COMPONENT_STRUCT_CODES = {
    ComponentType.BYTE: "b",
    ComponentType.UNSIGNED_BYTE: "B",
    ComponentType.SHORT: "h",
    ComponentType.UNSIGNED_SHORT: "H",
    ComponentType.INT: "i",
    ComponentType.UNSIGNED_INT: "I",
    ComponentType.FLOAT: "f",
    ComponentType.DOUBLE: "d",
}


class ElementType(StrEnum):
    """Element types of binary table properties."""
    SCALAR = "SCALAR"
    VEC2 = "VEC2"
    VEC3 = "VEC3"
    VEC4 = "VEC4"

    @property
    def component_count(self) -> int:
        """Number of components per element."""
        return {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4}[self.value]


class HeaderLayout(Enum):
    """Header layouts recognized for b3dm tiles."""
    CURRENT = "current"
    LEGACY_1 = "legacy_1"  # [batchLength] [batchTableByteLength]
    LEGACY_2 = "legacy_2"  # [batchTableJsonByteLength] [batchTableBinaryByteLength] [batchLength]


class ValidationResult(BaseModel):
    """Outcome of validating one binary tile.

    A missing message means nothing was found wrong.
    """
    valid: bool = Field(..., description="Whether the tile passed validation")
    message: str | None = Field(None, description="First error found, if any")


class TilesetValidationResult(BaseModel):
    """Outcome of validating a whole tileset."""
    valid: bool = Field(..., description="Whether the tileset passed validation")
    message: str = Field(..., description="Short summary message")
    url: str | None = Field(None, description="Content URL of the failing tile")
    detail: str | None = Field(None, description="Underlying tile format error")


class BoundingVolume(BaseModel):
    """Tile bounding volume. Only ``region`` takes part in containment checks."""
    region: list[float] | None = Field(
        None, min_length=6, max_length=6,
        description="[west, south, east, north, minHeight, maxHeight]"
    )
    box: list[float] | None = Field(None, min_length=12, max_length=12, description="Oriented box")
    sphere: list[float] | None = Field(None, min_length=4, max_length=4, description="Center and radius")

    model_config = ConfigDict(extra="allow")


class TileContent(BaseModel):
    """Reference from a tile to its content."""
    url: str | None = Field(
        None,
        validation_alias=AliasChoices("url", "uri"),
        description="Content URL, relative to the tileset"
    )
    bounding_volume: BoundingVolume | None = Field(
        None, alias="boundingVolume", description="Tight volume around the content"
    )

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class TileNode(BaseModel):
    """One tile in the tileset hierarchy."""
    bounding_volume: BoundingVolume = Field(..., alias="boundingVolume", description="Tile bounding volume")
    geometric_error: float = Field(..., alias="geometricError", ge=0, description="Geometric error in meters")
    content: TileContent | None = Field(None, description="Tile content reference")
    children: list[TileNode] = Field(default_factory=list, description="Child tiles")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def content_url(self) -> str | None:
        """Content URL, if this tile has content."""
        return self.content.url if self.content is not None else None


class Tileset(BaseModel):
    """Tileset document."""
    asset: dict[str, Any] | None = Field(None, description="Asset metadata")
    geometric_error: float | None = Field(None, alias="geometricError", ge=0, description="Tileset geometric error")
    root: TileNode = Field(..., description="Root tile")

    model_config = ConfigDict(extra="allow", populate_by_name=True)
