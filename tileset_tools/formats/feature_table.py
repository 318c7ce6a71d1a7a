"""Feature table validation.

A feature table is a JSON object whose keys are format-defined
semantics. Each value is either inline JSON or a binary descriptor
``{"byteOffset": n, "componentType": ...}`` locating the value inside the
feature table binary chunk. Per-feature properties hold one element per
feature; global properties hold exactly one.
"""

from __future__ import annotations

import struct
from typing import Any

import structlog
from pydantic import BaseModel, Field

from tileset_tools.core.integrity import TileFormatError
from tileset_tools.core.types import ComponentType, ElementType

logger = structlog.get_logger()

TABLE_NAME = "Feature table"


class PropertyDefinition(BaseModel):
    """Definition of one feature table semantic."""

    element_type: ElementType = Field(default=ElementType.SCALAR, description="Element type")
    component_type: ComponentType | None = Field(default=None, description="Default component type")
    component_types: tuple[ComponentType, ...] = Field(
        default=(), description="Component types a descriptor may override with"
    )
    is_global: bool = Field(default=False, description="One value for the whole tile")
    is_boolean: bool = Field(default=False, description="Inline JSON boolean value")

    @property
    def allowed_component_types(self) -> tuple[ComponentType, ...]:
        """Component types accepted for this property."""
        if self.component_types:
            return self.component_types
        return (self.component_type,) if self.component_type is not None else ()


def is_binary_descriptor(value: Any) -> bool:
    """Check whether a table value references the binary chunk."""
    return isinstance(value, dict) and "byteOffset" in value


def is_number(value: Any) -> bool:
    """Check whether a JSON value is a number (booleans excluded)."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def check_binary_range(
    table_name: str,
    name: str,
    byte_offset: Any,
    component_type: ComponentType,
    element_type: ElementType,
    items: int,
    binary_byte_length: int,
) -> int:
    """Check a binary descriptor's byte range against its chunk.

    Args:
        table_name: "Feature table" or "Batch table"
        name: Property name
        byte_offset: byteOffset value from the descriptor
        component_type: Resolved component type
        element_type: Resolved element type
        items: Number of elements referenced
        binary_byte_length: Length of the binary chunk

    Returns:
        End offset of the property

    Raises:
        TileFormatError: If the offset is invalid, misaligned or out of range
    """
    if not isinstance(byte_offset, int) or isinstance(byte_offset, bool) or byte_offset < 0:
        raise TileFormatError(
            f'{table_name} binary property "{name}" byteOffset must be a non-negative integer.'
        )

    component_byte_length = component_type.byte_length
    if byte_offset % component_byte_length:
        raise TileFormatError(
            f'{table_name} binary property "{name}" must be aligned to a '
            f"{component_byte_length}-byte boundary."
        )

    end = byte_offset + component_byte_length * element_type.component_count * items
    if end > binary_byte_length:
        raise TileFormatError(
            f'{table_name} binary property "{name}" exceeds {table_name.lower()} binary byte length.',
            expected=binary_byte_length,
            actual=end,
        )
    return end


def read_property_values(
    binary: bytes,
    byte_offset: int,
    component_type: ComponentType,
    element_type: ElementType,
    items: int,
) -> list[int | float]:
    """Read the flattened components of a binary property.

    The range must already have been checked with :func:`check_binary_range`.
    """
    count = element_type.component_count * items
    return list(struct.unpack_from(f"<{count}{component_type.struct_code}", binary, byte_offset))


def _descriptor_component_type(name: str, descriptor: dict[str, Any], definition: PropertyDefinition) -> ComponentType:
    """Resolve the component type of a feature table descriptor."""
    value = descriptor.get("componentType")
    if value is None:
        if definition.component_type is None:
            raise TileFormatError(f'Feature table binary property "{name}" must have a componentType.')
        return definition.component_type
    if value not in definition.allowed_component_types:
        raise TileFormatError(f'Feature table binary property "{name}" has invalid componentType "{value}".')
    return ComponentType(value)


def validate_property(
    name: str,
    value: Any,
    definition: PropertyDefinition,
    binary: bytes,
    features_length: int,
) -> None:
    """Validate one feature table property against its definition.

    Raises:
        TileFormatError: If the value does not match the definition
    """
    items = 1 if definition.is_global else features_length

    if is_binary_descriptor(value):
        if definition.is_boolean:
            raise TileFormatError(f'Feature table property "{name}" must be a boolean.')
        component_type = _descriptor_component_type(name, value, definition)
        check_binary_range(TABLE_NAME, name, value["byteOffset"], component_type,
                           definition.element_type, items, len(binary))
        return

    if definition.is_boolean:
        if not isinstance(value, bool):
            raise TileFormatError(f'Feature table property "{name}" must be a boolean.')
        return

    array_length = definition.element_type.component_count * items
    if definition.is_global and array_length == 1:
        if not is_number(value):
            raise TileFormatError(f'Feature table property "{name}" must be a number.')
    elif not isinstance(value, list) or not all(is_number(v) for v in value):
        raise TileFormatError(f'Feature table property "{name}" must be an array of numbers.')
    elif len(value) != array_length:
        raise TileFormatError(f'Feature table property "{name}" must be an array of length {array_length}.')


def validate_feature_table(
    feature_table: dict[str, Any],
    binary: bytes,
    semantics: dict[str, PropertyDefinition],
    features_length: int,
) -> None:
    """Validate every property of a feature table.

    Properties are checked in insertion order and the first failure is
    raised.

    Args:
        feature_table: Parsed feature table JSON
        binary: Feature table binary chunk
        semantics: Allowed properties for the format
        features_length: Number of features in the tile

    Raises:
        TileFormatError: On the first invalid property
    """
    for name, value in feature_table.items():
        definition = semantics.get(name)
        if definition is None:
            raise TileFormatError(f'Invalid feature table property "{name}".')
        validate_property(name, value, definition, binary, features_length)


def resolve_count(
    feature_table: dict[str, Any],
    binary: bytes,
    name: str,
    semantics: dict[str, PropertyDefinition],
) -> int:
    """Resolve a global count property such as BATCH_LENGTH.

    The property may be a literal or a binary descriptor, in which case the
    value is read from the feature table binary.

    Raises:
        TileFormatError: If the property is not a non-negative integer
    """
    value = feature_table[name]
    definition = semantics[name]
    validate_property(name, value, definition, binary, 1)

    if is_binary_descriptor(value):
        component_type = _descriptor_component_type(name, value, definition)
        count = read_property_values(binary, value["byteOffset"], component_type, definition.element_type, 1)[0]
    else:
        count = value

    if isinstance(count, float):
        if not count.is_integer():
            raise TileFormatError(f'Feature table property "{name}" must be a non-negative integer.')
        count = int(count)
    if count < 0:
        raise TileFormatError(f'Feature table property "{name}" must be a non-negative integer.')
    return count


def max_batch_id(
    feature_table: dict[str, Any],
    binary: bytes,
    definition: PropertyDefinition,
    features_length: int,
) -> int | None:
    """Highest BATCH_ID referenced by the tile's features.

    The BATCH_ID property must already have been validated.

    Returns:
        Highest batch id, or None if there are no features

    Raises:
        TileFormatError: If an id is negative or fractional
    """
    value = feature_table["BATCH_ID"]
    if is_binary_descriptor(value):
        component_type = _descriptor_component_type("BATCH_ID", value, definition)
        ids = read_property_values(binary, value["byteOffset"], component_type,
                                   definition.element_type, features_length)
    else:
        ids = value

    for batch_id in ids:
        if batch_id < 0 or (isinstance(batch_id, float) and not batch_id.is_integer()):
            raise TileFormatError('Feature table property "BATCH_ID" must contain non-negative integers.')

    if not ids:
        return None
    return int(max(ids))


def require_properties(feature_table: dict[str, Any], *names: str) -> None:
    """Require that a feature table contains every named property.

    Raises:
        TileFormatError: Naming the first missing property
    """
    for name in names:
        if name not in feature_table:
            article = "an" if name[0] in "AEIOU" else "a"
            raise TileFormatError(f"Feature table must contain {article} {name} property.")
