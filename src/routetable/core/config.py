"""Configuration management module for routetable.

This module handles loading and validating configuration from multiple sources:
- Configuration files (YAML)
- Environment variables
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Server port")
    keepalive_timeout: int = Field(default=75, ge=1, description="Keep-alive timeout in seconds")
    client_max_size: int = Field(
        default=1024 * 1024, ge=1, description="Maximum request body size in bytes"
    )


class RoutingConfig(BaseModel):
    """Route table configuration."""

    route_files: list[str] = Field(
        default_factory=list, description="Route files (YAML or JSON), merged in order"
    )
    routes: list[Any] = Field(
        default_factory=list, description="Inline route declarations, merged after files"
    )
    compiled_table: str | None = Field(
        default=None, description="Path of a compiled table to import instead of compiling"
    )
    default_controller: str | None = Field(
        default=None, description="Controller returned when no route matches"
    )
    namespace_separator: str = Field(
        default=".", min_length=1, description="Separator used in derived controller names"
    )
    mime_header: str = Field(
        default="content-type", description="Header carrying the request content type"
    )

    @field_validator("mime_header")
    @classmethod
    def validate_mime_header(cls, v: str) -> str:
        """Header names are compared case-insensitively."""
        return v.lower()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json or text)")
    output: str = Field(default="stdout", description="Log output (stdout, stderr or file path)")
    correlation_id_header: str = Field(
        default="X-Request-ID", description="Header name for correlation ID"
    )
    redact_fields: list[str] = Field(
        default_factory=lambda: ["Authorization", "Cookie", "Set-Cookie"],
        description="Fields to redact from logs",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is valid."""
        v_lower = v.lower()
        if v_lower not in ("json", "text"):
            raise ValueError(f"Invalid log format: {v}. Must be one of ['json', 'text']")
        return v_lower


class MetricsConfig(BaseModel):
    """Metrics configuration."""

    enabled: bool = Field(default=True, description="Enable metrics collection")
    endpoint: str = Field(default="/metrics", description="Metrics endpoint path")


class AppConfig(BaseModel):
    """Main routetable configuration."""

    environment: str = Field(default="development", description="Environment name")
    server: ServerConfig = Field(default_factory=ServerConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


class ConfigLoader:
    """Loads and validates configuration from multiple sources."""

    def __init__(self, config_path: str | None = None):
        """Initialize the configuration loader.

        Args:
            config_path: Path to configuration file. If None, uses environment variable
                        ROUTETABLE_CONFIG_PATH or defaults to config/routetable.yaml
        """
        self.config_path = self._resolve_config_path(config_path)

    def _resolve_config_path(self, config_path: str | None) -> Path:
        """Resolve configuration file path."""
        if config_path:
            return Path(config_path)

        env_path = os.getenv("ROUTETABLE_CONFIG_PATH")
        if env_path:
            return Path(env_path)

        # Try environment-specific config first
        env = os.getenv("ROUTETABLE_ENV", "development")
        env_specific = Path(f"config/routetable.{env}.yaml")
        if env_specific.exists():
            return env_specific

        return Path("config/routetable.yaml")

    def load(self) -> AppConfig:
        """Load and validate configuration.

        Returns:
            Validated AppConfig instance

        Raises:
            ValueError: If configuration is invalid
        """
        config_dict = self._load_from_file()
        config_dict = self._override_from_env(config_dict)

        try:
            config = AppConfig(**config_dict)
        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return config

    def _load_from_file(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            # Missing file means defaults
            return {}

        with open(self.config_path) as f:
            config_dict = yaml.safe_load(f) or {}

        if not isinstance(config_dict, dict):
            raise ValueError(f"Configuration file {self.config_path} must contain a mapping")

        return config_dict

    def _override_from_env(self, config_dict: dict[str, Any]) -> dict[str, Any]:
        """Override configuration with environment variables.

        Environment variables follow the pattern: ROUTETABLE_<SECTION>_<KEY>
        For example: ROUTETABLE_SERVER_PORT=8080
        """
        # Server config
        if host := os.getenv("ROUTETABLE_SERVER_HOST"):
            config_dict.setdefault("server", {})["host"] = host
        if port := os.getenv("ROUTETABLE_SERVER_PORT"):
            config_dict.setdefault("server", {})["port"] = int(port)

        # Logging config
        if log_level := os.getenv("ROUTETABLE_LOG_LEVEL"):
            config_dict.setdefault("logging", {})["level"] = log_level
        if log_format := os.getenv("ROUTETABLE_LOG_FORMAT"):
            config_dict.setdefault("logging", {})["format"] = log_format

        # Routing config
        if default_controller := os.getenv("ROUTETABLE_DEFAULT_CONTROLLER"):
            config_dict.setdefault("routing", {})["default_controller"] = default_controller
        if compiled_table := os.getenv("ROUTETABLE_COMPILED_TABLE"):
            config_dict.setdefault("routing", {})["compiled_table"] = compiled_table

        # Environment
        if env := os.getenv("ROUTETABLE_ENV"):
            config_dict["environment"] = env

        return config_dict


def load_config(config_path: str | None = None) -> AppConfig:
    """Load configuration (convenience function).

    Args:
        config_path: Optional path to configuration file

    Returns:
        Validated AppConfig instance
    """
    loader = ConfigLoader(config_path)
    return loader.load()
