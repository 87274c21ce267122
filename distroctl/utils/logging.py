"""Unified logging for distroctl.

This module provides:
1. Centralized logging configuration under the "distroctl" logger tree
2. Debug mode via DISTROCTL_DEBUG env var or programmatic flag
3. Log levels via DISTROCTL_LOG_LEVEL env var
4. Dual output: Rich console for CLI, rotating file for post-mortems

Usage:
    from distroctl.utils.logging import get_logger, configure_logging

    # In CLI entry point:
    configure_logging(debug=debug)

    # In CLI commands:
    logger = get_logger(__name__)
    logger.info("Booting distro")
    logger.success("User daemon ready")

Library modules log through logging.getLogger(__name__); their records
reach the same handlers because they live under "distroctl".

Environment Variables:
    DISTROCTL_DEBUG=1          Enable debug mode (verbose output)
    DISTROCTL_LOG_LEVEL=DEBUG  Set log level (DEBUG, INFO, WARNING, ERROR)
    DISTROCTL_LOG_FILE=/path   Override log file location
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console

from distroctl.paths import HostPaths

# Global state
_configured = False
_debug_mode = False
_console_level = logging.INFO
_log_file: Optional[Path] = None

# Shared Rich console instance
console = Console()

# Custom log level for success messages
SUCCESS_LEVEL = 25
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

ROOT_LOGGER = "distroctl"


def _get_log_file() -> Path:
    """Get the log file path, creating its directory if needed."""
    global _log_file
    if _log_file:
        return _log_file

    env_log_file = os.environ.get("DISTROCTL_LOG_FILE")
    if env_log_file:
        _log_file = Path(env_log_file)
    else:
        _log_file = HostPaths.log_dir() / "distroctl.log"

    _log_file.parent.mkdir(parents=True, exist_ok=True)
    return _log_file


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return _debug_mode or os.environ.get("DISTROCTL_DEBUG", "").lower() in ("1", "true", "yes")


def configure_logging(debug: bool = False) -> None:
    """Configure the logging system.

    Should be called once at startup (CLI entry point or pytest configure).

    Args:
        debug: Enable debug mode (verbose output, debug to console)
    """
    global _configured, _debug_mode, _console_level

    if _configured:
        return

    _debug_mode = debug or is_debug_mode()

    level_name = os.environ.get("DISTROCTL_LOG_LEVEL", "DEBUG" if _debug_mode else "INFO").upper()
    _console_level = getattr(logging, level_name, logging.INFO)
    if not isinstance(_console_level, int):
        _console_level = logging.INFO

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    # File handler with rotation (always enabled, captures all logs)
    try:
        file_handler = RotatingFileHandler(
            _get_log_file(),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)
    except OSError:
        # Can't write log file, continue without it
        pass

    _configured = True

    root_logger.debug(f"Logging configured: level={level_name}, debug={_debug_mode}")
    if _log_file:
        root_logger.debug(f"Log file: {_log_file}")


def _shown(level: int) -> bool:
    return level >= _console_level


class DistroctlLogger:
    """Logger with Rich console output for CLI commands.

    Records always go to the "distroctl" logger tree (and so to the log
    file); console output is added on top for records at or above the
    DISTROCTL_LOG_LEVEL threshold.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self.console = console

    def debug(self, message: str) -> None:
        """Log debug message. Shown on console only in debug mode."""
        self.logger.debug(message)
        if is_debug_mode() and _shown(logging.DEBUG):
            self.console.print(f"[dim][DEBUG] {message}[/dim]")

    def info(self, message: str) -> None:
        self.logger.info(message)
        if _shown(logging.INFO):
            self.console.print(f"[blue]{message}[/blue]")

    def success(self, message: str) -> None:
        self.logger.log(SUCCESS_LEVEL, message)
        if _shown(SUCCESS_LEVEL):
            self.console.print(f"[green]✓ {message}[/green]")

    def warning(self, message: str) -> None:
        self.logger.warning(message)
        if _shown(logging.WARNING):
            self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def error(self, message: str) -> None:
        """Log error message (red output, always shown)."""
        self.logger.error(message)
        self.console.print(f"[red]✗ {message}[/red]")

    def print(self, message: str, style: Optional[str] = None) -> None:
        """Print to console without logging."""
        if style:
            self.console.print(f"[{style}]{message}[/{style}]")
        else:
            self.console.print(message)


def get_logger(name: str) -> DistroctlLogger:
    """Get a console-aware logger for a module.

    Args:
        name: Module name (typically __name__)
    """
    if not _configured:
        configure_logging()

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return DistroctlLogger(name)


def log_startup_info() -> None:
    """Log startup diagnostic information (call from main entry points)."""
    logger = get_logger("distroctl.startup")
    logger.debug(f"Python: {sys.version}")
    logger.debug(f"Platform: {sys.platform}")
    logger.debug(f"CWD: {os.getcwd()}")
    logger.debug(f"Debug mode: {is_debug_mode()}")

    for var in [
        "DISTROCTL_DEBUG",
        "DISTROCTL_LOG_LEVEL",
        "DISTROCTL_CONFIG",
        "DISTROCTL_BACKEND",
        "WSL_INTEROP",
    ]:
        value = os.environ.get(var)
        if value:
            logger.debug(f"ENV {var}={value}")
