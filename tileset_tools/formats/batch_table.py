"""Batch table validation.

Batch table properties hold one value per batch (feature). A property is
either an inline JSON array or a binary descriptor
``{"byteOffset", "componentType", "type"}`` into the batch table binary
chunk.
"""

from __future__ import annotations

from typing import Any

import structlog

from tileset_tools.core.integrity import TileFormatError
from tileset_tools.core.types import ComponentType, ElementType
from tileset_tools.formats.feature_table import check_binary_range

logger = structlog.get_logger()

TABLE_NAME = "Batch table"

# Keys that hold metadata rather than per-feature properties
RESERVED_KEYS = frozenset({"extensions", "extras"})


def validate_batch_table(batch_table: dict[str, Any], binary: bytes, batch_length: int) -> None:
    """Validate every property of a batch table.

    Properties are checked in insertion order and the first failure is
    raised. With a batch length of 0 there are no features to describe and
    nothing is checked.

    Args:
        batch_table: Parsed batch table JSON
        binary: Batch table binary chunk
        batch_length: Number of batches in the tile

    Raises:
        TileFormatError: On the first invalid property
    """
    if batch_length == 0:
        return

    for name, value in batch_table.items():
        if name in RESERVED_KEYS:
            continue

        if isinstance(value, dict) and "byteOffset" in value:
            _validate_binary_property(name, value, binary, batch_length)
        elif not isinstance(value, list):
            raise TileFormatError(f'Batch table property "{name}" must be an array.')
        elif len(value) != batch_length:
            raise TileFormatError(
                f'Batch table property "{name}" array length must equal batch length {batch_length}.',
                expected=batch_length,
                actual=len(value),
            )

    logger.debug("batch_table_validated", properties=len(batch_table), batch_length=batch_length)


def _validate_binary_property(name: str, descriptor: dict[str, Any], binary: bytes, batch_length: int) -> None:
    """Check a batch table binary descriptor."""
    element_type = descriptor.get("type")
    component_type = descriptor.get("componentType")

    if element_type is None:
        raise TileFormatError(f'Batch table binary property "{name}" must have a type.')
    if component_type is None:
        raise TileFormatError(f'Batch table binary property "{name}" must have a componentType.')
    if not isinstance(element_type, str) or element_type not in ElementType.__members__:
        raise TileFormatError(f'Batch table binary property "{name}" has invalid type "{element_type}".')
    if not isinstance(component_type, str) or component_type not in ComponentType.__members__:
        raise TileFormatError(
            f'Batch table binary property "{name}" has invalid componentType "{component_type}".'
        )

    check_binary_range(
        TABLE_NAME,
        name,
        descriptor["byteOffset"],
        ComponentType(component_type),
        ElementType(element_type),
        batch_length,
        len(binary),
    )
