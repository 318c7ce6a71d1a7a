"""Validate commands for tiles and tilesets."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import httpx
import structlog
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from tileset_tools.core.config import AppConfig
from tileset_tools.core.fetch import TileFetcher, is_remote
from tileset_tools.core.tileset import TilesetValidator
from tileset_tools.core.types import TileFormat, Tileset
from tileset_tools.core.utils import format_size
from tileset_tools.formats.dispatch import detect_tile_format, get_parser

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract common context objects."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]
    verbose: bool = ctx.obj["verbose"]
    debug: bool = ctx.obj["debug"]
    return config, console, verbose, debug


def _output_json(data: dict[str, Any]) -> None:
    """Output data as JSON."""
    print(json.dumps(data, indent=2, default=str))


def _status(valid: bool) -> str:
    return "[green]✓[/green]" if valid else "[red]✗[/red]"


def _read_tile(path: Path) -> bytes:
    """Read tile content from disk."""
    try:
        return path.read_bytes()
    except OSError as e:
        raise click.ClickException(f"Failed to read file {path}: {e}") from e


def _load_tileset(location: str, config: AppConfig) -> Tileset:
    """Load a tileset document from a path or URL."""
    try:
        if is_remote(location):
            response = httpx.get(location, timeout=config.fetch_timeout,
                                 verify=config.verify_ssl, follow_redirects=True)
            response.raise_for_status()
            document = response.json()
        else:
            with open(location) as f:
                document = json.load(f)
    except (OSError, httpx.HTTPError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Failed to load tileset {location}: {e}") from e

    try:
        return Tileset.model_validate(document)
    except ValidationError as e:
        raise click.ClickException(f"Invalid tileset document: {e}") from e


@click.group()
def validate() -> None:
    """Validate 3D Tiles tilesets and binary tiles."""
    pass


@validate.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format-type", "-t",
    type=click.Choice(["b3dm", "i3dm", "pnts"]),
    help="Force specific format type (auto-detect if not specified)"
)
@click.pass_context
def tile(ctx: click.Context, input_path: Path, format_type: str | None) -> None:
    """Validate a single binary tile."""
    config, console, _verbose, _debug = _get_context_objects(ctx)

    data = _read_tile(input_path)
    tile_format = TileFormat(format_type) if format_type else detect_tile_format(data)
    if not tile_format.is_checked:
        raise click.ClickException(
            f"Unsupported tile format: {tile_format.value}. Use --format-type to specify."
        )

    result = get_parser(tile_format).validate(data)

    if config.output_format == "json":
        _output_json({
            "file": str(input_path),
            "format_type": tile_format.value,
            "file_size": len(data),
            "valid": result.valid,
            "message": result.message,
        })
    else:
        table = Table(title=f"Tile Validation: {tile_format.value}")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("File", str(input_path))
        table.add_row("Format Type", tile_format.value)
        table.add_row("File Size", format_size(len(data)))
        table.add_row("Valid", _status(result.valid))
        console.print(table)

        if not result.valid:
            console.print(f"[red]Error: {result.message}[/red]")

    if not result.valid:
        sys.exit(1)


@validate.command()
@click.argument("location", type=str)
@click.option(
    "--detailed", "-D",
    is_flag=True,
    help="Include the tile format error in the result message"
)
@click.pass_context
def tileset(ctx: click.Context, location: str, detailed: bool) -> None:
    """Validate a tileset and the tiles it references.

    LOCATION can be a file path or an http(s) URL.
    """
    config, console, verbose, _debug = _get_context_objects(ctx)
    if detailed:
        config = config.model_copy(update={"detailed_messages": True})

    document = _load_tileset(location, config)

    try:
        with TileFetcher.for_tileset(location, config.fetch_config()) as fetcher:
            result = TilesetValidator(fetch=fetcher.fetch, config=config).validate(document)
    except (OSError, httpx.HTTPError) as e:
        logger.error("Failed to fetch tile content", error=str(e))
        raise click.ClickException(f"Failed to fetch tile content: {e}") from e

    if config.output_format == "json":
        _output_json({"tileset": location, **result.model_dump()})
    else:
        table = Table(title="Tileset Validation")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Tileset", location)
        table.add_row("Valid", _status(result.valid))
        table.add_row("Message", result.message)
        if result.url:
            table.add_row("Tile", result.url)
        if verbose and result.detail:
            table.add_row("Detail", result.detail)
        console.print(table)

    if not result.valid:
        sys.exit(1)
