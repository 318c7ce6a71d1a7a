"""CLI command implementations for tileset_tools.

This module contains all command-line interface implementations:
- validate: Validate tiles and tilesets
- examine: Examine binary tile headers and tables
"""

from tileset_tools.commands.examine import examine
from tileset_tools.commands.validate import validate

__all__ = ["examine", "validate"]
