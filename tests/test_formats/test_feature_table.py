"""Tests for tileset_tools.formats.feature_table module."""

import struct

import pytest

from tileset_tools.core.integrity import TileFormatError
from tileset_tools.core.types import ComponentType, ElementType
from tileset_tools.formats.b3dm import B3DM_SEMANTICS, B3dmBuilder, B3dmParser
from tileset_tools.formats.feature_table import (
    PropertyDefinition,
    check_binary_range,
    is_binary_descriptor,
    is_number,
    max_batch_id,
    require_properties,
    resolve_count,
    validate_feature_table,
    validate_property,
)
from tileset_tools.formats.pnts import PNTS_SEMANTICS

VEC3_FLOAT = PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.FLOAT)
GLOBAL_COUNT = PropertyDefinition(component_type=ComponentType.UNSIGNED_INT, is_global=True)
GLOBAL_VEC3 = PropertyDefinition(element_type=ElementType.VEC3, component_type=ComponentType.FLOAT, is_global=True)
BOOLEAN = PropertyDefinition(is_global=True, is_boolean=True)


class TestHelpers:
    """Test value classification helpers."""

    def test_is_binary_descriptor(self):
        """Test descriptor detection."""
        assert is_binary_descriptor({"byteOffset": 0})
        assert not is_binary_descriptor({"componentType": "FLOAT"})
        assert not is_binary_descriptor([0, 1])

    def test_is_number(self):
        """Test numbers exclude booleans."""
        assert is_number(1)
        assert is_number(1.5)
        assert not is_number(True)
        assert not is_number("1")

    def test_allowed_component_types(self):
        """Test override list takes precedence over the default."""
        definition = PNTS_SEMANTICS["BATCH_ID"]
        assert ComponentType.UNSIGNED_INT in definition.allowed_component_types
        assert VEC3_FLOAT.allowed_component_types == (ComponentType.FLOAT,)
        assert BOOLEAN.allowed_component_types == ()


class TestCheckBinaryRange:
    """Test binary descriptor range checks."""

    def test_in_range(self):
        """Test property ending exactly at the chunk end."""
        end = check_binary_range("Feature table", "POSITION", 0, ComponentType.FLOAT,
                                 ElementType.VEC3, 2, 24)
        assert end == 24

    def test_exceeds(self):
        """Test property running past the chunk."""
        with pytest.raises(TileFormatError) as exc_info:
            check_binary_range("Feature table", "POSITION", 8, ComponentType.FLOAT,
                               ElementType.VEC3, 2, 24)
        assert str(exc_info.value) == (
            'Feature table binary property "POSITION" exceeds feature table binary byte length.'
        )
        assert exc_info.value.actual == 32

    def test_misaligned(self):
        """Test offset not a multiple of the component size."""
        with pytest.raises(TileFormatError, match="must be aligned to a 4-byte boundary"):
            check_binary_range("Batch table", "height", 2, ComponentType.FLOAT,
                               ElementType.SCALAR, 1, 16)

    @pytest.mark.parametrize("offset", [-4, 1.5, "0", True])
    def test_invalid_offset(self, offset):
        """Test offsets that are not non-negative integers."""
        with pytest.raises(TileFormatError, match="byteOffset must be a non-negative integer"):
            check_binary_range("Feature table", "POSITION", offset, ComponentType.FLOAT,
                               ElementType.VEC3, 1, 64)


class TestValidateProperty:
    """Test single property validation."""

    def test_per_feature_array(self):
        """Test inline array sized by the feature count."""
        validate_property("POSITION", [0.0] * 6, VEC3_FLOAT, b"", 2)

    def test_per_feature_array_wrong_length(self):
        """Test inline array with the wrong number of components."""
        with pytest.raises(TileFormatError) as exc_info:
            validate_property("POSITION", [0.0] * 5, VEC3_FLOAT, b"", 2)
        assert str(exc_info.value) == 'Feature table property "POSITION" must be an array of length 6.'

    def test_array_of_non_numbers(self):
        """Test inline array holding strings."""
        with pytest.raises(TileFormatError, match="must be an array of numbers"):
            validate_property("POSITION", ["a", "b", "c"], VEC3_FLOAT, b"", 1)

    def test_global_scalar(self):
        """Test global scalar must be a number."""
        validate_property("BATCH_LENGTH", 3, GLOBAL_COUNT, b"", 0)
        with pytest.raises(TileFormatError, match='"BATCH_LENGTH" must be a number'):
            validate_property("BATCH_LENGTH", "3", GLOBAL_COUNT, b"", 0)

    def test_global_vector(self):
        """Test global vector is one element regardless of the feature count."""
        validate_property("RTC_CENTER", [1.0, 2.0, 3.0], GLOBAL_VEC3, b"", 100)
        with pytest.raises(TileFormatError, match="must be an array of length 3"):
            validate_property("RTC_CENTER", [1.0, 2.0], GLOBAL_VEC3, b"", 100)

    def test_boolean(self):
        """Test boolean semantics."""
        validate_property("EAST_NORTH_UP", True, BOOLEAN, b"", 1)
        with pytest.raises(TileFormatError, match="must be a boolean"):
            validate_property("EAST_NORTH_UP", 1, BOOLEAN, b"", 1)
        with pytest.raises(TileFormatError, match="must be a boolean"):
            validate_property("EAST_NORTH_UP", {"byteOffset": 0}, BOOLEAN, b"\x00" * 8, 1)

    def test_descriptor_default_component_type(self):
        """Test descriptor without componentType uses the default."""
        validate_property("POSITION", {"byteOffset": 0}, VEC3_FLOAT, b"\x00" * 24, 2)

    def test_descriptor_invalid_component_type(self):
        """Test descriptor with a component type the property does not allow."""
        with pytest.raises(TileFormatError) as exc_info:
            validate_property("POSITION", {"byteOffset": 0, "componentType": "DOUBLE"},
                              VEC3_FLOAT, b"\x00" * 48, 2)
        assert str(exc_info.value) == (
            'Feature table binary property "POSITION" has invalid componentType "DOUBLE".'
        )

    def test_descriptor_allowed_override(self):
        """Test descriptor overriding the component type from the allowed list."""
        definition = PNTS_SEMANTICS["BATCH_ID"]
        validate_property("BATCH_ID", {"byteOffset": 0, "componentType": "UNSIGNED_INT"},
                          definition, b"\x00" * 8, 2)
        with pytest.raises(TileFormatError, match="exceeds feature table binary byte length"):
            validate_property("BATCH_ID", {"byteOffset": 0, "componentType": "UNSIGNED_INT"},
                              definition, b"\x00" * 8, 3)


class TestValidateFeatureTable:
    """Test whole-table validation."""

    def test_unknown_property(self):
        """Test a property outside the format's semantics."""
        with pytest.raises(TileFormatError) as exc_info:
            validate_feature_table({"BATCH_LENGTH": 0, "INVALID": 0}, b"", B3DM_SEMANTICS, 0)
        assert str(exc_info.value) == 'Invalid feature table property "INVALID".'

    def test_first_failure_wins(self):
        """Test properties are checked in insertion order."""
        table = {"POSITION": [0.0], "INVALID": 0}
        with pytest.raises(TileFormatError, match="POSITION"):
            validate_feature_table(table, b"", PNTS_SEMANTICS, 1)

    def test_b3dm_unknown_property(self):
        """Test b3dm rejects everything but BATCH_LENGTH."""
        data = B3dmBuilder.build_tile(feature_table={"BATCH_LENGTH": 0, "RTC_CENTER": [0, 0, 0]})
        result = B3dmParser().validate(data)
        assert result.message == 'Invalid feature table property "RTC_CENTER".'


class TestCounts:
    """Test count resolution and batch ids."""

    def test_resolve_literal(self):
        """Test literal count."""
        assert resolve_count({"BATCH_LENGTH": 5}, b"", "BATCH_LENGTH", B3DM_SEMANTICS) == 5

    def test_resolve_integral_float(self):
        """Test integral float count."""
        assert resolve_count({"BATCH_LENGTH": 5.0}, b"", "BATCH_LENGTH", B3DM_SEMANTICS) == 5

    @pytest.mark.parametrize("value", [-1, 2.5])
    def test_resolve_invalid(self, value):
        """Test counts that are not non-negative integers."""
        with pytest.raises(TileFormatError, match="must be a non-negative integer"):
            resolve_count({"BATCH_LENGTH": value}, b"", "BATCH_LENGTH", B3DM_SEMANTICS)

    def test_resolve_from_binary(self):
        """Test count read through a binary descriptor."""
        binary = struct.pack("<I", 7) + b"\x00" * 4
        table = {"BATCH_LENGTH": {"byteOffset": 0}}
        assert resolve_count(table, binary, "BATCH_LENGTH", B3DM_SEMANTICS) == 7

    def test_b3dm_binary_batch_length(self):
        """Test a b3dm whose BATCH_LENGTH lives in the binary chunk."""
        data = B3dmBuilder.build_tile(
            feature_table={"BATCH_LENGTH": {"byteOffset": 0}},
            feature_table_binary=struct.pack("<I", 2),
            batch_table={"height": [1.0, 2.0]},
        )
        tile = B3dmParser().parse(data)
        assert tile.batch_length == 2

    def test_max_batch_id_inline(self):
        """Test highest inline batch id."""
        table = {"BATCH_ID": [0, 4, 2]}
        assert max_batch_id(table, b"", PNTS_SEMANTICS["BATCH_ID"], 3) == 4

    def test_max_batch_id_binary(self):
        """Test highest batch id read from the binary chunk."""
        table = {"BATCH_ID": {"byteOffset": 0, "componentType": "UNSIGNED_BYTE"}}
        binary = bytes([3, 9, 1, 0, 0, 0, 0, 0])
        assert max_batch_id(table, binary, PNTS_SEMANTICS["BATCH_ID"], 3) == 9

    def test_max_batch_id_no_features(self):
        """Test no features means no batch ids."""
        assert max_batch_id({"BATCH_ID": []}, b"", PNTS_SEMANTICS["BATCH_ID"], 0) is None


class TestRequireProperties:
    """Test required property messages."""

    def test_present(self):
        """Test nothing is raised when all are present."""
        require_properties({"POINTS_LENGTH": 1, "POSITION": []}, "POINTS_LENGTH", "POSITION")

    def test_article(self):
        """Test article agrees with the property name."""
        with pytest.raises(TileFormatError, match="^Feature table must contain a BATCH_LENGTH property.$"):
            require_properties({}, "BATCH_LENGTH")
        with pytest.raises(TileFormatError, match="^Feature table must contain an INSTANCES_LENGTH property.$"):
            require_properties({}, "INSTANCES_LENGTH")


def test_max_batch_id_rejects_fractional_ids():
    """Test fractional inline batch ids."""
    with pytest.raises(TileFormatError, match="must contain non-negative integers"):
        max_batch_id({"BATCH_ID": [0, 1.5]}, b"", PNTS_SEMANTICS["BATCH_ID"], 2)
