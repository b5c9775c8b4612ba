"""
Configuration management for the mcp-zero server framework.

This module implements the configuration Pydantic models and layered
configuration loading.

Configuration is loaded from multiple sources with layered precedence:
1. Built-in defaults (Pydantic model defaults)
2. YAML config file (--config path or explicit argument)
3. Environment variables (MCP_ZERO_* prefix, __ for nesting)
4. Command-line arguments (highest precedence)

All models are frozen: configuration is merged once and never mutated.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3000
DEFAULT_MCP_PATH = "/mcp"

# =============================================================================
# Server Configuration
# =============================================================================


class ServerConfig(BaseModel):
    """Server identity and settings.

    Attributes:
        name: Server name reported during initialize.
        version: Server version reported during initialize.
        log_level: Initial application log level.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        default="MyMcpServer",
        min_length=1,
        description="Server name reported to clients",
    )
    version: str = Field(
        default="1.0.0",
        min_length=1,
        description="Server version reported to clients",
    )
    log_level: str = Field(
        default="info",
        description="Log level: debug, info, warn, error",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"debug", "info", "warn", "warning", "error", "critical"}
        v_lower = v.lower()
        if v_lower not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        # Normalize 'warn' to 'warning'
        if v_lower == "warn":
            return "warning"
        return v_lower


# =============================================================================
# HTTP Transport Configuration
# =============================================================================


class HttpTransportOptions(BaseModel):
    """HTTP transport configuration.

    Attributes:
        host: Interface to bind.
        port: Port to bind (0 picks an ephemeral port).
        path: Path of the MCP JSON-RPC endpoint.
        allowed_origins: "*" or an explicit list of allowed CORS origins.
        tool_timeout: Optional per-call handler timeout in seconds; None
            means handlers may run indefinitely.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(
        default=DEFAULT_HOST,
        description="Interface to bind",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        ge=0,
        le=65535,
        description="Port to bind",
    )
    path: str = Field(
        default=DEFAULT_MCP_PATH,
        description="Path of the MCP JSON-RPC endpoint",
    )
    allowed_origins: Literal["*"] | tuple[str, ...] = Field(
        default="*",
        description="CORS allowed origins: '*' or a list of origins",
    )
    tool_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Tool handler timeout in seconds (unbounded if unset)",
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Require an absolute request path."""
        if not v.startswith("/"):
            raise ValueError(f"MCP path must start with '/': {v}")
        return v

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def validate_allowed_origins(cls, v: Any) -> Any:
        """Accept a single origin string as a one-element allow-list."""
        if isinstance(v, str) and v != "*":
            return (v,)
        if isinstance(v, list):
            return tuple(v)
        return v

    @property
    def allows_any_origin(self) -> bool:
        """Check if the CORS policy is the wildcard."""
        return self.allowed_origins == "*"


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level.
        log_to_stdout: Whether to log to stdout.
        json_format: Whether to emit JSON records.
    """

    model_config = ConfigDict(frozen=True)

    level: str = Field(
        default="info",
        description="Log level",
    )
    log_to_stdout: bool = Field(
        default=True,
        description="Whether to log to stdout",
    )
    json_format: bool = Field(
        default=True,
        description="Emit JSON-formatted log records",
    )


# =============================================================================
# Main Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """
    Main application configuration model.

    Attributes:
        server: Server identity and settings.
        http: HTTP transport options.
        logging: Logging configuration.
    """

    model_config = ConfigDict(frozen=True)

    server: ServerConfig = Field(
        default_factory=ServerConfig,
        description="Server settings",
    )
    http: HttpTransportOptions = Field(
        default_factory=HttpTransportOptions,
        description="HTTP transport options",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return base updated with override, merging nested sections key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML configuration file; an empty file yields an empty mapping.

    Raises:
        FileNotFoundError: If config_path does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_path.open() as f:
        return yaml.safe_load(f) or {}


def _parse_env_value(value: str) -> Any:
    """
    Convert an environment string to bool, int, float, list or str.

    Booleans accept true/yes/on and false/no/off in any case. A value
    containing commas becomes a list of converted items, so
    MCP_ZERO_HTTP__ALLOWED_ORIGINS=https://a.example,https://b.example sets
    an allow-list.
    """
    lowered = value.lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False

    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            continue

    if "," in value:
        return [_parse_env_value(item.strip()) for item in value.split(",")]

    return value


def _load_env_config(prefix: str = "MCP_ZERO_") -> dict[str, Any]:
    """
    Collect configuration overrides from the environment.

    Keys are lowercased after the prefix is stripped and nested on double
    underscores: MCP_ZERO_HTTP__PORT=8080 becomes {"http": {"port": 8080}}.
    """
    overrides: dict[str, Any] = {}

    for name, raw in os.environ.items():
        if not name.startswith(prefix):
            continue

        *sections, leaf = name[len(prefix) :].lower().split("__")
        target = overrides
        for section in sections:
            target = target.setdefault(section, {})
        target[leaf] = _parse_env_value(raw)

    return overrides


def _parse_cli_args(args: list[str]) -> dict[str, Any]:
    """
    Turn command-line flags into a configuration override mapping.

    The --config path is returned under the private "_config_path" key so
    load_config() can pick the YAML file before merging.
    """
    parser = argparse.ArgumentParser(
        description="mcp-zero MCP server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", "-c", type=str, help="Path to configuration file")
    parser.add_argument("--host", type=str, help="Interface to bind")
    parser.add_argument("--port", type=int, help="Port to bind")
    parser.add_argument("--path", type=str, help="MCP endpoint path")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        help="Log level for the server and its log handler",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Debug logging in plain-text format",
    )

    parsed = parser.parse_args(args)
    overrides: dict[str, Any] = {}

    if parsed.config:
        overrides["_config_path"] = parsed.config

    http = {
        key: getattr(parsed, key)
        for key in ("host", "port", "path")
        if getattr(parsed, key) is not None
    }
    if http:
        overrides["http"] = http

    if parsed.debug:
        overrides["server"] = {"log_level": "debug"}
        overrides["logging"] = {"level": "debug", "json_format": False}
    elif parsed.log_level:
        overrides["server"] = {"log_level": parsed.log_level}
        overrides["logging"] = {"level": parsed.log_level}

    return overrides


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = "MCP_ZERO_",
    cli_args: list[str] | None = None,
) -> AppConfig:
    """
    Build the application configuration from every source.

    Sources are merged in increasing precedence: model defaults, the YAML
    file, environment variables, command-line flags. An explicit config_path
    wins over --config.

    Args:
        config_path: YAML file to load, if any.
        env_prefix: Prefix of the environment variables to read.
        cli_args: Command-line flags; None means no flags, sys.argv is never
            read implicitly.

    Returns:
        The merged, validated AppConfig.

    Raises:
        FileNotFoundError: If the YAML file does not exist.
        pydantic.ValidationError: If the merged values are invalid.

    Example:
        >>> config = load_config(cli_args=["--port", "8080"])
        >>> config.http.port
        8080
    """
    cli_config = _parse_cli_args(cli_args or [])
    cli_config_path = cli_config.pop("_config_path", None)

    if config_path is None and cli_config_path is not None:
        config_path = cli_config_path

    merged: dict[str, Any] = {}
    if config_path is not None:
        merged = _load_yaml_config(Path(config_path))

    merged = _deep_merge(merged, _load_env_config(env_prefix))
    merged = _deep_merge(merged, cli_config)

    return AppConfig.model_validate(merged)
