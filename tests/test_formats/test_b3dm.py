"""Tests for tileset_tools.formats.b3dm module."""

import io
import struct

import pytest

from tileset_tools.core.integrity import TileFormatError
from tileset_tools.formats.b3dm import B3dmBuilder, B3dmParser, B3dmTile, is_b3dm


class TestB3dmParser:
    """Test b3dm parsing and validation."""

    def test_parse_valid(self, sample_b3dm, sample_glb):
        """Test parsing a well-formed tile."""
        tile = B3dmParser().parse(sample_b3dm)

        assert isinstance(tile, B3dmTile)
        assert tile.feature_table == {"BATCH_LENGTH": 0}
        assert tile.batch_length == 0
        assert tile.glb == sample_glb

    def test_parse_stream(self, sample_b3dm):
        """Test parsing from a binary stream."""
        tile = B3dmParser().parse(io.BytesIO(sample_b3dm))
        assert tile.header.byte_length == len(sample_b3dm)

    def test_validate_valid(self, sample_b3dm):
        """Test validation result of a well-formed tile."""
        result = B3dmParser().validate(sample_b3dm)
        assert result.valid is True
        assert result.message is None

    def test_canonical_empty_tile(self):
        """Test a bare header with no sections."""
        data = b"b3dm" + struct.pack("<IIIIII", 1, 28, 0, 0, 0, 0)
        result = B3dmParser().validate(data)
        assert result.valid is False
        assert result.message == "Feature table must contain a BATCH_LENGTH property."

    def test_missing_batch_length(self, invalid_b3dm):
        """Test feature table without BATCH_LENGTH."""
        result = B3dmParser().validate(invalid_b3dm)
        assert result.message == "Feature table must contain a BATCH_LENGTH property."

    def test_parse_raises(self, invalid_b3dm):
        """Test parse raises where validate reports."""
        with pytest.raises(TileFormatError):
            B3dmParser().parse(invalid_b3dm)

    def test_batch_table_with_binary(self):
        """Test batch table mixing inline and binary properties."""
        data = B3dmBuilder.build_tile(
            feature_table={"BATCH_LENGTH": 2},
            batch_table={
                "name": ["a", "b"],
                "height": {"byteOffset": 0, "componentType": "DOUBLE", "type": "SCALAR"},
            },
            batch_table_binary=struct.pack("<2d", 1.0, 2.0),
        )
        tile = B3dmParser().parse(data)
        assert tile.batch_length == 2
        assert len(tile.batch_table_binary) == 16


class TestB3dmBuilder:
    """Test b3dm building."""

    def test_default_feature_table(self):
        """Test builder defaults to BATCH_LENGTH 0."""
        tile = B3dmParser().parse(B3dmBuilder.build_tile())
        assert tile.feature_table == {"BATCH_LENGTH": 0}

    def test_sections_aligned(self, sample_glb):
        """Test built sections start on 8-byte boundaries."""
        data = B3dmBuilder.build_tile(
            feature_table={"BATCH_LENGTH": 1},
            batch_table={"id": [7]},
            batch_table_binary=b"\x01\x02\x03",
            glb=sample_glb,
        )
        lengths = struct.unpack_from("<IIII", data, 12)
        offset = 28
        for length in lengths:
            offset += length
            assert offset % 8 == 0
        assert data[offset:] == sample_glb

    def test_parser_build_round_trip(self, sample_b3dm):
        """Test parse then build reproduces the tile."""
        parser = B3dmParser()
        assert parser.build(parser.parse(sample_b3dm)) == sample_b3dm

    def test_build_file(self, sample_b3dm, tmp_path):
        """Test writing and reading a tile file."""
        parser = B3dmParser()
        path = tmp_path / "tile.b3dm"
        parser.build_file(parser.parse(sample_b3dm), str(path))

        assert path.read_bytes() == sample_b3dm
        assert parser.parse_file(str(path)).batch_length == 0

    def test_parse_missing_file(self, tmp_path):
        """Test reading a file that does not exist."""
        with pytest.raises(ValueError, match="Cannot read file"):
            B3dmParser().parse_file(str(tmp_path / "missing.b3dm"))


def test_is_b3dm(sample_b3dm, sample_pnts):
    """Test magic probe."""
    assert is_b3dm(sample_b3dm)
    assert not is_b3dm(sample_pnts)
    assert not is_b3dm(b"b3")
