"""Command line entry point for tileset-tools."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import structlog
from pydantic import ValidationError
from rich.console import Console

from tileset_tools import __version__
from tileset_tools.commands.examine import examine
from tileset_tools.commands.validate import validate
from tileset_tools.core.config import AppConfig


def configure_logging(colors: bool = False) -> None:
    """Route structlog events through the stdlib logging machinery."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging()

logger = structlog.get_logger()


@click.group()
@click.version_option(version=__version__, prog_name="tileset-tools")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Show result details")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["rich", "json"], case_sensitive=False),
    default=None,
    help="Output format, overriding the configuration file",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool, debug: bool, output: str | None) -> None:
    """Python tools for 3D Tiles tileset validation."""
    try:
        app_config = AppConfig.load(config)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error("config_load_failed", path=str(config), error=str(e))
        sys.exit(1)

    overrides: dict[str, Any] = {}
    if output is not None:
        overrides["output_format"] = output.lower()
    if debug:
        overrides["log_level"] = "DEBUG"
        configure_logging(colors=True)
    if overrides:
        app_config = app_config.model_copy(update=overrides)

    ctx.obj = {
        "config": app_config,
        "console": Console(highlight=False),
        "verbose": verbose or debug,
        "debug": debug,
    }
    logger.debug("cli_initialized", output_format=app_config.output_format, config_file=str(config))


@main.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show version information."""
    config: AppConfig = ctx.obj["config"]

    if config.output_format == "json":
        print(json.dumps({"name": "tileset-tools", "version": __version__, "platform": sys.platform}, indent=2))
        return

    console: Console = ctx.obj["console"]
    console.print(f"tileset-tools {__version__}")
    if ctx.obj["verbose"]:
        console.print(f"Python {sys.version.split()[0]} on {sys.platform}")


main.add_command(examine)
main.add_command(validate)


def handle_exception(exc_type: type[BaseException], exc_value: BaseException, exc_traceback: Any) -> None:
    """Log uncaught exceptions and exit non-zero."""
    if issubclass(exc_type, KeyboardInterrupt):
        logger.info("cancelled")
        sys.exit(130)

    logger.error("uncaught_exception", exc_info=(exc_type, exc_value, exc_traceback))
    sys.exit(1)


if __name__ == "__main__":
    sys.excepthook = handle_exception
    main()
