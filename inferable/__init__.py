"""Inferable client for Python.

Register local functions as remotely invokable tools, then poll the
Inferable control plane for calls and report their results.
"""

# Version is defined in pyproject.toml and read dynamically
try:
    from importlib.metadata import version

    __version__ = version("inferable")
except Exception:
    __version__ = "0.0.0.dev0"  # Fallback for development installs

from inferable.client import DEFAULT_SERVICE_NAME, Inferable
from inferable.kernel.config import InferableConfig, LoggingConfig, load_config
from inferable.kernel.domain import (
    CacheConfig,
    CallMessage,
    FunctionConfig,
    Rejection,
    Resolution,
    ResultEnvelope,
    ResultType,
    ServiceState,
)
from inferable.kernel.exceptions import (
    ConfigurationError,
    DuplicateFunctionError,
    DuplicateServiceError,
    FunctionNotFoundError,
    HandshakeError,
    InferableError,
    InvalidHandlerError,
    RegistrationError,
    ServiceStartError,
)
from inferable.kernel.logging import configure_logging, get_logger
from inferable.kernel.service import Service

__all__ = [
    # Version
    "__version__",
    # Client
    "Inferable",
    "Service",
    "DEFAULT_SERVICE_NAME",
    # Configuration
    "InferableConfig",
    "LoggingConfig",
    "load_config",
    "configure_logging",
    "get_logger",
    # Domain
    "CacheConfig",
    "CallMessage",
    "FunctionConfig",
    "Rejection",
    "Resolution",
    "ResultEnvelope",
    "ResultType",
    "ServiceState",
    # Errors
    "InferableError",
    "ConfigurationError",
    "DuplicateFunctionError",
    "DuplicateServiceError",
    "FunctionNotFoundError",
    "HandshakeError",
    "InvalidHandlerError",
    "RegistrationError",
    "ServiceStartError",
]
