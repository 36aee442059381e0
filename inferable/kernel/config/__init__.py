"""Configuration loading and management for the Inferable client."""

from inferable.kernel.config.loader import ConfigLoader, get_default_config, load_config
from inferable.kernel.config.models import DEFAULT_API_ENDPOINT, InferableConfig, LoggingConfig

__all__ = [
    "DEFAULT_API_ENDPOINT",
    "ConfigLoader",
    "InferableConfig",
    "LoggingConfig",
    "get_default_config",
    "load_config",
]
