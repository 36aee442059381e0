"""Configuration loader for the Inferable client.

Supports two config file sources plus environment overrides:

1. **kind: Config YAML**: loaded via explicit path or the
   ``INFERABLE_CONFIG_PATH`` env var.
2. **pyproject.toml [tool.inferable]**: auto-discovery fallback.

Environment variables always win over file values:
``INFERABLE_API_ENDPOINT``, ``INFERABLE_API_SECRET``, ``INFERABLE_MACHINE_ID``
and the ``INFERABLE_LOG_*`` family.
"""

from __future__ import annotations

import os
import re
import tomllib
from pathlib import Path
from typing import Any, Literal, cast

import yaml

from inferable.kernel.config.models import DEFAULT_API_ENDPOINT, InferableConfig, LoggingConfig
from inferable.kernel.exceptions import ConfigurationError
from inferable.kernel.logging import get_logger

# Constants for boolean environment variable parsing
_TRUTHY_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})
_FALSY_VALUES = frozenset({"false", "0", "no", "off", "disabled"})

# Numeric settings copied verbatim from the config file
_NUMERIC_KEYS: dict[str, type] = {
    "heartbeat_interval": float,
    "poll_limit": int,
    "default_retry_after": float,
    "max_consecutive_poll_failures": int,
    "request_timeout": float,
}

logger = get_logger(__name__)


def _parse_bool_env(value: str) -> bool:
    """Parse boolean from environment variable value.

    Parameters
    ----------
    value : str
        Environment variable value

    Returns
    -------
    bool
        Parsed boolean value

    Raises
    ------
    ValueError
        If value is not a recognized boolean string
    """
    normalized = value.lower().strip()
    if normalized in _TRUTHY_VALUES:
        return True
    if normalized in _FALSY_VALUES:
        return False
    expected = _TRUTHY_VALUES | _FALSY_VALUES
    raise ValueError(f"Invalid boolean value: {value!r}. Expected one of: {expected}")


class ConfigLoader:
    """Loads and processes Inferable client configuration files."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

    def load_config_file(self, path: str | Path | None = None) -> InferableConfig:
        """Load configuration from YAML or pyproject.toml.

        Parameters
        ----------
        path : str | Path | None
            Path to config file. If None, searches using discovery order.

        Returns
        -------
        InferableConfig
            Parsed configuration with environment variables substituted

        Raises
        ------
        FileNotFoundError
            If no configuration file is found
        """
        config_path = self._find_config_file(path)
        logger.info("Loading configuration from {path}", path=config_path)

        if config_path.suffix in (".yaml", ".yml"):
            return self._load_yaml_config(config_path)
        return self._load_toml_config(config_path)

    def _load_yaml_config(self, config_path: Path) -> InferableConfig:
        """Load and parse a kind: Config YAML file.

        Raises
        ------
        ConfigurationError
            If the YAML file is not a valid kind: Config manifest
        """
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ConfigurationError(
                str(config_path), f"expected a mapping, got {type(data).__name__}"
            )

        kind = data.get("kind")
        if kind != "Config":
            raise ConfigurationError(
                str(config_path),
                f"YAML config file must use 'kind: Config' manifest format, got 'kind: {kind}'",
            )

        spec = data.get("spec", {})
        if not isinstance(spec, dict):
            raise ConfigurationError(str(config_path), "'spec' field must be a mapping")

        return self.parse(self._substitute_env_vars(spec))

    def _load_toml_config(self, config_path: Path) -> InferableConfig:
        """Load and parse a TOML config file (pyproject.toml or flat TOML)."""
        with config_path.open("rb") as f:
            data = tomllib.load(f)

        if "tool" in data and "inferable" in data.get("tool", {}):
            section = data["tool"]["inferable"]
        elif config_path.name == "pyproject.toml":
            logger.warning("No [tool.inferable] section found in pyproject.toml, using defaults")
            section = {}
        else:
            section = data

        return self.parse(self._substitute_env_vars(section))

    def _find_config_file(self, path: str | Path | None) -> Path:
        """Find configuration file.

        Discovery order:
        1. Explicit path argument
        2. ``INFERABLE_CONFIG_PATH`` env var
        3. ``pyproject.toml`` in CWD or a parent directory with ``[tool.inferable]``

        Raises
        ------
        FileNotFoundError
            If no configuration file is found
        """
        if path:
            config_path = Path(path)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return config_path

        if env_path := os.getenv("INFERABLE_CONFIG_PATH"):
            config_path = Path(env_path)
            if config_path.exists():
                logger.debug("Using config from INFERABLE_CONFIG_PATH: {}", config_path)
                return config_path
            logger.warning("INFERABLE_CONFIG_PATH set but file not found: {}", config_path)

        current = Path.cwd()
        while True:
            pyproject = current / "pyproject.toml"
            if pyproject.exists():
                with pyproject.open("rb") as f:
                    data = tomllib.load(f)
                if "inferable" in data.get("tool", {}):
                    return pyproject
            if current == current.parent:
                break
            current = current.parent

        raise FileNotFoundError(
            "No configuration file found. Provide a kind: Config YAML path, "
            "set INFERABLE_CONFIG_PATH, or add [tool.inferable] to pyproject.toml"
        )

    def _substitute_env_vars(self, data: Any) -> Any:
        """Recursively replace ``${VAR}`` placeholders with environment values."""
        if isinstance(data, str):

            def replacer(match: re.Match[str]) -> str:
                var_name = match.group(1)
                value = os.environ.get(var_name)
                if value is None:
                    logger.debug(
                        "Environment variable ${{{var_name}}} not found, keeping placeholder",
                        var_name=var_name,
                    )
                    return match.group(0)
                return value

            return self.ENV_VAR_PATTERN.sub(replacer, data)

        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}

        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]

        return data

    def parse(self, data: dict[str, Any]) -> InferableConfig:
        """Parse raw (format-agnostic) configuration data, applying env overrides.

        Parameters
        ----------
        data : dict[str, Any]
            Raw configuration mapping

        Returns
        -------
        InferableConfig
            Parsed configuration object
        """
        kwargs: dict[str, Any] = {
            "api_endpoint": os.getenv("INFERABLE_API_ENDPOINT")
            or data.get("api_endpoint")
            or DEFAULT_API_ENDPOINT,
            "api_secret": os.getenv("INFERABLE_API_SECRET") or data.get("api_secret"),
            "machine_id": os.getenv("INFERABLE_MACHINE_ID") or data.get("machine_id"),
            "logging": self._parse_logging_config(data.get("logging", {})),
        }

        for key, cast_type in _NUMERIC_KEYS.items():
            if key in data:
                try:
                    kwargs[key] = cast_type(data[key])
                except (TypeError, ValueError) as e:
                    raise ConfigurationError(key, f"expected {cast_type.__name__}: {e}") from e

        return InferableConfig(**kwargs)

    def _parse_logging_config(self, logging_data: dict[str, Any]) -> LoggingConfig:
        """Parse logging configuration with environment variable overrides.

        Environment variables take precedence over config file values:
        - INFERABLE_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        - INFERABLE_LOG_FORMAT: Output format (console, json, structured, rich)
        - INFERABLE_LOG_FILE: Optional file path for log output
        - INFERABLE_LOG_COLOR: Use color output (true/false)
        - INFERABLE_LOG_STDLIB_BRIDGE: Route stdlib logging through Loguru (true/false)
        """
        level = logging_data.get("level", "INFO")
        format_type = logging_data.get("format", "structured")
        output_file = logging_data.get("output_file")
        use_color = logging_data.get("use_color", True)
        include_timestamp = logging_data.get("include_timestamp", True)
        enable_stdlib_bridge = logging_data.get("enable_stdlib_bridge", False)

        if env_level := os.getenv("INFERABLE_LOG_LEVEL"):
            level = env_level.upper()
            logger.debug("Overriding log level from env: {}", level)

        if env_format := os.getenv("INFERABLE_LOG_FORMAT"):
            format_type = env_format.lower()
            logger.debug("Overriding log format from env: {}", format_type)

        if env_file := os.getenv("INFERABLE_LOG_FILE"):
            output_file = env_file

        if env_color := os.getenv("INFERABLE_LOG_COLOR"):
            try:
                use_color = _parse_bool_env(env_color)
            except ValueError as e:
                logger.warning("Invalid INFERABLE_LOG_COLOR value: {}", e)

        if env_bridge := os.getenv("INFERABLE_LOG_STDLIB_BRIDGE"):
            try:
                enable_stdlib_bridge = _parse_bool_env(env_bridge)
            except ValueError as e:
                logger.warning("Invalid INFERABLE_LOG_STDLIB_BRIDGE value: {}", e)

        return LoggingConfig(
            level=cast("Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']", level),
            format=cast("Literal['console', 'json', 'structured', 'rich']", format_type),
            output_file=output_file,
            use_color=use_color,
            include_timestamp=include_timestamp,
            enable_stdlib_bridge=enable_stdlib_bridge,
        )


def load_config(path: str | Path | None = None) -> InferableConfig:
    """Load configuration from file, or defaults plus env overrides if none is found.

    Parameters
    ----------
    path : str | Path | None
        Path to configuration file or None to search

    Returns
    -------
    InferableConfig
        Loaded configuration
    """
    loader = ConfigLoader()
    try:
        return loader.load_config_file(path)
    except FileNotFoundError:
        if path:
            raise
        logger.debug("No configuration file found, using defaults")
        return loader.parse({})


def get_default_config() -> InferableConfig:
    """Get the built-in defaults, ignoring files and environment."""
    return InferableConfig()
