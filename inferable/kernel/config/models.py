"""Configuration data models for the Inferable client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from inferable.kernel.exceptions import ValidationError

DEFAULT_API_ENDPOINT = "https://api.inferable.ai"


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration for the Inferable client.

    Attributes
    ----------
    level : str, default="INFO"
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    format : str, default="structured"
        Output format (console, json, structured, rich)
    output_file : str | None, default=None
        Optional file path to write logs to
    use_color : bool, default=True
        Use ANSI color codes (auto-disabled for non-TTY)
    include_timestamp : bool, default=True
        Include timestamp in log output
    enable_stdlib_bridge : bool, default=False
        Route stdlib logging (httpx) through Loguru

    Examples
    --------
    TOML configuration:

    ```toml
    [tool.inferable.logging]
    level = "DEBUG"
    format = "rich"
    ```

    Environment variable overrides:

    ```bash
    export INFERABLE_LOG_LEVEL=DEBUG
    export INFERABLE_LOG_FORMAT=json
    export INFERABLE_LOG_FILE=/var/log/inferable/client.log
    ```
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True
    enable_stdlib_bridge: bool = False


@dataclass(frozen=True, slots=True)
class InferableConfig:
    """Client configuration.

    Attributes
    ----------
    api_endpoint : str
        Base URL of the control plane. Must start with ``http://`` or ``https://``.
    api_secret : str | None
        Bearer credential sent with every request.
    machine_id : str | None
        Stable machine identifier. Derived from the host when ``None``.
    heartbeat_interval : float
        Seconds between two ``/v2/ping`` heartbeats.
    poll_limit : int
        Maximum number of pending calls fetched per poll cycle.
    default_retry_after : float
        Initial backoff in seconds when the handshake does not suggest one.
    max_consecutive_poll_failures : int
        Consecutive failed fetches after which a service stops itself.
    request_timeout : float
        HTTP request timeout in seconds.
    logging : LoggingConfig
        Logging settings.
    """

    api_endpoint: str = DEFAULT_API_ENDPOINT
    api_secret: str | None = None
    machine_id: str | None = None
    heartbeat_interval: float = 10.0
    poll_limit: int = 10
    default_retry_after: float = 0.0
    max_consecutive_poll_failures: int = 50
    request_timeout: float = 30.0
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        """Validate numeric settings.

        Raises
        ------
        ValidationError
            If an interval, limit or timeout is out of range
        """
        if self.heartbeat_interval <= 0:
            raise ValidationError("heartbeat_interval", "must be positive", self.heartbeat_interval)
        if self.poll_limit <= 0:
            raise ValidationError("poll_limit", "must be positive", self.poll_limit)
        if self.default_retry_after < 0:
            raise ValidationError(
                "default_retry_after", "cannot be negative", self.default_retry_after
            )
        if self.max_consecutive_poll_failures <= 0:
            raise ValidationError(
                "max_consecutive_poll_failures",
                "must be positive",
                self.max_consecutive_poll_failures,
            )
        if self.request_timeout <= 0:
            raise ValidationError("request_timeout", "must be positive", self.request_timeout)
