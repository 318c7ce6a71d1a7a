"""Tileset Tools - Python tools for 3D Tiles validation.

This package validates 3D Tiles tilesets: the tile hierarchy described by
a tileset JSON document and the binary tile content it references.

Key modules:
- core: Shared functionality (config, types, fetching, tree validation)
- formats: Binary tile format parsers and builders (b3dm, i3dm, pnts)
- commands: CLI command implementations
"""

__version__ = "0.1.0"
__author__ = "Tileset Tools Team"

# Re-export commonly used types and functions
from tileset_tools.core.tileset import TilesetValidator, validate_tileset
from tileset_tools.core.types import (
    TileFormat,
    Tileset,
    TilesetValidationResult,
    ValidationResult,
)

__all__ = [
    "__version__",
    "__author__",
    "TileFormat",
    "Tileset",
    "TilesetValidationResult",
    "TilesetValidator",
    "ValidationResult",
    "validate_tileset",
]
