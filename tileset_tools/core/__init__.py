"""Core functionality for tileset_tools.

This module provides shared functionality used across the entire package:
- Configuration management
- Type definitions and tileset document models
- Tile content fetching
- Tileset tree validation
"""

from tileset_tools.core.integrity import TileFormatError
from tileset_tools.core.types import (
    BoundingVolume,
    ComponentType,
    ElementType,
    HeaderLayout,
    TileContent,
    TileFormat,
    TileNode,
    Tileset,
    TilesetValidationResult,
    ValidationResult,
)
from tileset_tools.core.utils import align_up, format_size

__all__ = [
    # Types
    "BoundingVolume",
    "ComponentType",
    "ElementType",
    "HeaderLayout",
    "TileContent",
    "TileFormat",
    "TileNode",
    "Tileset",
    "TilesetValidationResult",
    "ValidationResult",
    # Errors
    "TileFormatError",
    # Utils
    "align_up",
    "format_size",
]
