"""Configuration management for tileset-tools."""

from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, field_validator

logger = structlog.get_logger()

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "tileset-tools" / "config.json"


class FetchConfig(BaseModel):
    """Tile content fetch configuration."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    max_retries: int = Field(default=3, description="Maximum attempts per tile")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout value."""
        if v <= 0:
            raise ValueError("Timeout must be positive")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate max retries value."""
        if v < 1:
            raise ValueError("Max retries must be at least 1")
        return v


class AppConfig(BaseModel):
    """Application configuration."""

    config_dir: Path = Field(
        default=Path.home() / ".config" / "tileset-tools",
        description="Configuration directory"
    )

    # Fetch settings
    fetch_timeout: float = Field(default=30.0, description="Tile fetch timeout")
    fetch_max_retries: int = Field(default=3, description="Tile fetch attempts")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")

    # Validation settings
    max_concurrency: int = Field(default=8, description="Tiles validated concurrently")
    detailed_messages: bool = Field(
        default=False,
        description="Include the tile format error in tileset results"
    )

    # Output settings
    output_format: str = Field(
        default="rich",
        description="Output format (rich, json)"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    def fetch_config(self) -> FetchConfig:
        """Build the fetch configuration from these settings."""
        return FetchConfig(
            timeout=self.fetch_timeout,
            max_retries=self.fetch_max_retries,
            verify_ssl=self.verify_ssl,
        )

    @classmethod
    def load(cls, config_file: Path | None = None) -> AppConfig:
        """Load configuration from file.

        Args:
            config_file: Path to config file, uses default if None

        Returns:
            Application configuration
        """
        if config_file is None:
            config_file = DEFAULT_CONFIG_FILE

        if config_file.exists():
            with open(config_file) as f:
                data = json.load(f)
                return cls(**data)

        # Return defaults
        return cls()

    def save(self, config_file: Path | None = None) -> None:
        """Save configuration to file.

        Args:
            config_file: Path to config file, uses default if None
        """
        if config_file is None:
            config_file = self.config_dir / "config.json"

        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

        logger.info("config_saved", path=str(config_file))

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate output format."""
        valid_formats = {"rich", "json"}
        if v not in valid_formats:
            raise ValueError(f"Invalid output format: {v}. Valid formats: {valid_formats}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {valid_levels}")
        return v

    @field_validator("fetch_timeout")
    @classmethod
    def validate_fetch_timeout(cls, v: float) -> float:
        """Validate fetch timeout value."""
        if v <= 0:
            raise ValueError("Fetch timeout must be positive")
        return v

    @field_validator("fetch_max_retries", "max_concurrency")
    @classmethod
    def validate_positive_count(cls, v: int) -> int:
        """Validate retry and concurrency counts."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v
