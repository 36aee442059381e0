"""Centralized logging configuration for the Inferable client using Loguru.

The client runs its poll loops and heartbeat detached from the caller's
stack, so logs are the main place their failures show up. This module keeps
that output consistent:

- Multiple output formats (console, JSON, structured, rich)
- Environment-based defaults (``INFERABLE_LOG_LEVEL``, ``INFERABLE_LOG_FORMAT``)
- Idempotent configuration
- Optional bridge for stdlib logging (``httpx`` logs through ``logging``)

Examples
--------
Basic usage:

>>> from inferable.kernel.logging import get_logger
>>> logger = get_logger(__name__)
>>> logger.info("Service started", service="default")

Configure logging globally::

    from inferable.kernel.logging import configure_logging
    configure_logging(level="DEBUG", format="json")
"""

import logging
import os
import sys
from contextlib import suppress
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    import types

    from loguru import Logger

from loguru import logger
from rich.logging import RichHandler

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["console", "json", "structured", "rich"]

_CURRENT_CONFIG: dict | None = None
_HANDLER_IDS: list[int] = []


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "structured",
    output_file: str | Path | None = None,
    use_color: bool = True,
    include_timestamp: bool = True,
    force_reconfigure: bool = False,
    enable_stdlib_bridge: bool = False,
    backtrace: bool = True,
    diagnose: bool = False,
) -> None:
    """Configure global logging for the Inferable client.

    This function is idempotent - calling it multiple times with the same
    configuration will not duplicate handlers or change settings.

    Parameters
    ----------
    level : LogLevel, default="INFO"
        Minimum log level to output (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
    format : LogFormat, default="structured"
        Output format:
        - "console": Simple console output (no colors, basic format)
        - "json": JSON format for log aggregation
        - "structured": Enhanced structured format with colors (Loguru native)
        - "rich": Rich console handler
    output_file : str | Path | None, default=None
        Optional file path to write logs to (in addition to console)
    use_color : bool, default=True
        Use ANSI color codes in structured format (auto-disabled for non-TTY)
    include_timestamp : bool, default=True
        Include timestamp in log output
    force_reconfigure : bool, default=False
        Force reconfiguration even if already configured with same settings
    enable_stdlib_bridge : bool, default=False
        Route stdlib logging (httpx, asyncio) through Loguru
    backtrace : bool, default=True
        Enable extended backtraces
    diagnose : bool, default=False
        Show variable values in tracebacks. Off by default because handler
        inputs and the API secret would end up in the logs.

    Examples
    --------
    Production setup::

        configure_logging(level="INFO", format="json", output_file="/var/log/inferable.log")

    Testing setup::

        configure_logging(level="WARNING", format="console")
    """
    global _CURRENT_CONFIG

    current_config = {
        "level": level,
        "format": format,
        "output_file": str(output_file) if output_file else None,
        "use_color": use_color,
        "include_timestamp": include_timestamp,
        "enable_stdlib_bridge": enable_stdlib_bridge,
        "backtrace": backtrace,
        "diagnose": diagnose,
    }

    if not force_reconfigure and current_config == _CURRENT_CONFIG:
        return

    # Remove only our previously added handlers (not external ones)
    for handler_id in _HANDLER_IDS:
        with suppress(ValueError):
            logger.remove(handler_id)
    _HANDLER_IDS.clear()

    if format == "rich":
        rich_handler = RichHandler(
            rich_tracebacks=True,
            markup=False,
            show_time=include_timestamp,
            show_level=True,
            show_path=True,
        )
        handler_id = logger.add(
            sink=rich_handler,
            level=level,
            format="{message}",
            backtrace=backtrace,
            diagnose=diagnose,
        )
        _HANDLER_IDS.append(handler_id)

    elif format == "json":
        handler_id = logger.add(
            sink=sys.stderr,
            level=level,
            serialize=True,
            backtrace=backtrace,
            diagnose=diagnose,
        )
        _HANDLER_IDS.append(handler_id)

    elif format == "structured":
        timestamp_fmt = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> " if include_timestamp else ""
        color_level = (
            "<level>{level: <8}</level>" if use_color and sys.stderr.isatty() else "{level: <8}"
        )
        structured_format = (
            f"{timestamp_fmt}[{color_level}]"
            "<cyan>{name}:{function}:{line}</cyan> | <level>{message}</level>"
        )

        handler_id = logger.add(
            sink=sys.stderr,
            level=level,
            format=structured_format,
            colorize=use_color and sys.stderr.isatty(),
            backtrace=backtrace,
            diagnose=diagnose,
        )
        _HANDLER_IDS.append(handler_id)

    else:  # console
        timestamp_fmt = "{time:YYYY-MM-DD HH:mm:ss} " if include_timestamp else ""
        console_format = f"{timestamp_fmt}{{level: <8}} | {{name}} | {{message}}"

        handler_id = logger.add(
            sink=sys.stderr,
            level=level,
            format=console_format,
            colorize=False,
            backtrace=backtrace,
            diagnose=diagnose,
        )
        _HANDLER_IDS.append(handler_id)

    if output_file:
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        # File output always uses JSON for easier parsing
        handler_id = logger.add(
            sink=output_path,
            level=level,
            serialize=True,
            rotation="10 MB",
            retention="1 week",
            backtrace=backtrace,
            diagnose=diagnose,
        )
        _HANDLER_IDS.append(handler_id)

    if enable_stdlib_bridge:
        enable_stdlib_logging_bridge()

    _CURRENT_CONFIG = current_config


@lru_cache(maxsize=256)
def get_logger(name: str) -> "Logger":
    """Get a logger instance with the given name (cached).

    Parameters
    ----------
    name : str
        Logger name, typically __name__ from the calling module

    Returns
    -------
    loguru.Logger
        Configured logger instance bound with the module name

    Notes
    -----
    - If configure_logging() hasn't been called, initializes with defaults
      read from ``INFERABLE_LOG_LEVEL`` and ``INFERABLE_LOG_FORMAT``
    - Extra context can be passed as keyword arguments
    """
    _ensure_configured()
    return logger.bind(module=name)


def enable_stdlib_logging_bridge() -> None:
    """Redirect stdlib ``logging`` records (e.g. from httpx) to Loguru."""

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            level: str | int
            try:
                level = logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

            # Find caller from where originated the logged message
            frame: types.FrameType | None = sys._getframe(6)
            depth = 6
            while frame and frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def _ensure_configured() -> None:
    """Ensure logging has at least basic configuration (lazy initialization)."""
    if _CURRENT_CONFIG is None:
        level = os.getenv("INFERABLE_LOG_LEVEL", "INFO").upper()
        format_type = os.getenv("INFERABLE_LOG_FORMAT", "structured").lower()
        configure_logging(level=level, format=format_type)  # type: ignore[arg-type]
