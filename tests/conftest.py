"""Pytest configuration and shared fixtures for tileset_tools tests."""

import struct
from collections.abc import Callable
from typing import Any

import pytest

from tileset_tools.formats.b3dm import B3dmBuilder
from tileset_tools.formats.i3dm import I3dmBuilder
from tileset_tools.formats.pnts import PntsBuilder

# Minimal binary glTF header: magic, version 2, length 12
SAMPLE_GLB = b"glTF" + struct.pack("<II", 2, 12) + b"\x00" * 4


def assemble_tile(
    magic: bytes = b"b3dm",
    feature_table_json: bytes = b"",
    feature_table_binary: bytes = b"",
    batch_table_json: bytes = b"",
    batch_table_binary: bytes = b"",
    payload: bytes = b"",
) -> bytes:
    """Assemble a 28-byte-header tile from raw, unpadded sections."""
    sections = (feature_table_json, feature_table_binary, batch_table_json, batch_table_binary)
    body = b"".join(sections) + payload
    header = magic + struct.pack("<II", 1, 28 + len(body))
    header += struct.pack("<IIII", *(len(s) for s in sections))
    return header + body


@pytest.fixture
def tile_assembler() -> Callable[..., bytes]:
    """Assemble tiles section by section without padding."""
    return assemble_tile


@pytest.fixture
def sample_b3dm() -> bytes:
    """Valid b3dm with no batches and a small glb."""
    return B3dmBuilder.build_tile(feature_table={"BATCH_LENGTH": 0}, glb=SAMPLE_GLB)


@pytest.fixture
def invalid_b3dm() -> bytes:
    """b3dm whose feature table lacks BATCH_LENGTH."""
    return B3dmBuilder.build_tile(feature_table={"PROPERTY": 0}, glb=SAMPLE_GLB)


@pytest.fixture
def sample_i3dm() -> bytes:
    """Valid i3dm with two instances positioned from binary."""
    positions = struct.pack("<6f", 0.0, 0.0, 0.0, 1.0, 1.0, 1.0)
    return I3dmBuilder.build_tile(
        feature_table={"INSTANCES_LENGTH": 2, "POSITION": {"byteOffset": 0}},
        feature_table_binary=positions,
        gltf=SAMPLE_GLB,
    )


@pytest.fixture
def sample_pnts() -> bytes:
    """Valid pnts with two colored points."""
    positions = struct.pack("<6f", 0.0, 0.0, 0.0, 1.0, 1.0, 1.0)
    colors = bytes([255, 0, 0, 0, 255, 0])
    return PntsBuilder.build_tile(
        feature_table={
            "POINTS_LENGTH": 2,
            "POSITION": {"byteOffset": 0},
            "RGB": {"byteOffset": 24},
        },
        feature_table_binary=positions + colors,
    )


def make_tile(
    geometric_error: float,
    region: list[float] | None = None,
    url: str | None = None,
    content_region: list[float] | None = None,
    children: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a tile node as it appears in tileset JSON."""
    tile: dict[str, Any] = {
        "boundingVolume": {"region": region or [0.0, 0.0, 1.0, 1.0, 0.0, 100.0]},
        "geometricError": geometric_error,
        "children": children or [],
    }
    if url is not None or content_region is not None:
        content: dict[str, Any] = {}
        if url is not None:
            content["url"] = url
        if content_region is not None:
            content["boundingVolume"] = {"region": content_region}
        tile["content"] = content
    return tile


@pytest.fixture
def tile_factory() -> Callable[..., dict[str, Any]]:
    """Build tileset JSON tile nodes."""
    return make_tile


@pytest.fixture
def sample_tileset() -> dict[str, Any]:
    """Valid tileset with decreasing geometric error and contained regions."""
    return {
        "asset": {"version": "0.0"},
        "geometricError": 500,
        "root": make_tile(
            100,
            url="root.b3dm",
            content_region=[0.0, 0.0, 1.0, 1.0, 0.0, 50.0],
            children=[
                make_tile(50, url="a.b3dm"),
                make_tile(20, url="b.pnts", children=[make_tile(10, url="c.i3dm")]),
            ],
        ),
    }


# Pytest configuration
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest settings."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def sample_glb() -> bytes:
    """Minimal binary glTF payload."""
    return SAMPLE_GLB
