"""Examine command for binary tile headers and tables."""

from __future__ import annotations

import json
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from tileset_tools.core.config import AppConfig
from tileset_tools.core.integrity import TileFormatError
from tileset_tools.core.utils import format_size
from tileset_tools.formats.dispatch import detect_tile_format, get_parser

logger = structlog.get_logger()


@click.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def examine(ctx: click.Context, input_path: Path) -> None:
    """Show the header and table layout of a binary tile."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]

    data = input_path.read_bytes()
    tile_format = detect_tile_format(data)
    if not tile_format.is_checked:
        raise click.ClickException(f"Unsupported tile format: {tile_format.value}")

    try:
        parsed = get_parser(tile_format).parse(data)
    except TileFormatError as e:
        raise click.ClickException(f"Invalid {tile_format.value}: {e}") from e

    header = parsed.header
    info = {
        "file": str(input_path),
        "format": tile_format.value,
        "version": header.version,
        "byte_length": header.byte_length,
        "feature_table_json_byte_length": header.feature_table_json_byte_length,
        "feature_table_binary_byte_length": header.feature_table_binary_byte_length,
        "batch_table_json_byte_length": header.batch_table_json_byte_length,
        "batch_table_binary_byte_length": header.batch_table_binary_byte_length,
        "batch_length": parsed.batch_length,
        "feature_table_properties": list(parsed.feature_table),
        "batch_table_properties": list(parsed.batch_table),
    }
    if header.gltf_format is not None:
        info["gltf_format"] = header.gltf_format

    if config.output_format == "json":
        print(json.dumps(info, indent=2))
        return

    table = Table(title=f"Tile: {input_path.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Format", tile_format.value)
    table.add_row("Version", str(header.version))
    table.add_row("Byte Length", f"{header.byte_length} ({format_size(header.byte_length)})")
    table.add_row("Feature Table JSON", str(header.feature_table_json_byte_length))
    table.add_row("Feature Table Binary", str(header.feature_table_binary_byte_length))
    table.add_row("Batch Table JSON", str(header.batch_table_json_byte_length))
    table.add_row("Batch Table Binary", str(header.batch_table_binary_byte_length))
    if header.gltf_format is not None:
        table.add_row("glTF Format", str(header.gltf_format))
    table.add_row("Batch Length", str(parsed.batch_length))
    table.add_row("Feature Table Properties", ", ".join(parsed.feature_table) or "-")
    table.add_row("Batch Table Properties", ", ".join(parsed.batch_table) or "-")
    console.print(table)
