"""Shared utilities for Calibrator CLI commands.

This module contains helpers used across the command modules:
- Output level and logging configuration state set by the global options
- Config and store loading
- Argument parsing shared by commands taking pattern ids
- A context manager mapping domain errors to ``Error: ...`` and exit 1
"""

from __future__ import annotations

import re
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

import typer
from rich.console import Console

from calibrator.core.config import CalibratorConfig
from calibrator.core.constants import MAX_ROW_ID
from calibrator.core.errors import CalibratorError, InvalidInputError
from calibrator.core.logging import configure_logging, get_logger
from calibrator.store import CalibratorStore

from .output import print_error

# =============================================================================
# Module-level logger
# =============================================================================

_logger = get_logger("cli")


# =============================================================================
# Error message constants
# =============================================================================


class ErrorMessages:
    """Constants for CLI error messages."""

    NOT_INITIALIZED = "Calibrator is not initialized. Run 'calibrator init' first."
    PATTERN_NOT_FOUND = "Pattern not found"
    DATABASE_ERROR = "Database error"


# =============================================================================
# Output level management
# =============================================================================


class OutputLevel(str, Enum):
    """Output verbosity level."""

    QUIET = "quiet"  # Minimal output (errors only)
    NORMAL = "normal"
    VERBOSE = "verbose"


_output_level: OutputLevel = OutputLevel.NORMAL


def set_output_level(level: OutputLevel) -> None:
    """Set the output level."""
    global _output_level
    _output_level = level


def is_verbose() -> bool:
    return _output_level == OutputLevel.VERBOSE


def is_quiet() -> bool:
    return _output_level == OutputLevel.QUIET


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """CLI logging configuration collected from the global options."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console", "both"] = "console"
    configured: bool = False


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    """Set the log level (DEBUG, INFO, WARNING, ERROR)."""
    _log_config.level = level.upper()  # type: ignore[assignment]


def set_log_file(path: Path | None) -> None:
    """Set the log file path.

    Logs written to a file use the JSON format unless ``--log-format``
    says otherwise.
    """
    _log_config.file = path
    if path and _log_config.format == "console":
        _log_config.format = "json"


def set_log_format(fmt: str) -> None:
    """Set the log format (json, console, both)."""
    _log_config.format = fmt.lower()  # type: ignore[assignment]


def configure_global_logging(console: Console) -> None:
    """Configure logging based on global CLI options.

    Called once per process after all option callbacks have run. Logs go
    to stderr or the log file, never to stdout, so command output stays
    machine-readable.

    Args:
        console: Rich console for error output.

    Raises:
        typer.Exit: If logging configuration fails.
    """
    if _log_config.configured:
        return

    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
        _log_config.configured = True
    except ValueError as e:
        # e.g. format="both" without a log file
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None


def reset_logging_state() -> None:
    """Reset CLI logging and output state (primarily for testing)."""
    global _output_level
    _log_config.level = "WARNING"
    _log_config.file = None
    _log_config.format = "console"
    _log_config.configured = False
    _output_level = OutputLevel.NORMAL


# =============================================================================
# Config and store loading
# =============================================================================


def load_config() -> CalibratorConfig:
    """Resolve the project configuration from the environment.

    Raises:
        InvalidInputError: If the config file or an override is malformed.
    """
    config = CalibratorConfig.load()
    _logger.debug(
        "config_resolved",
        project_root=str(config.project_root),
        template=str(config.skill_template_path),
    )
    return config


def open_store(config: CalibratorConfig) -> CalibratorStore:
    """Open the project's store.

    Raises:
        StoreNotFoundError: If the project has not been initialized.
    """
    return CalibratorStore(config.db_path)


# =============================================================================
# Argument parsing
# =============================================================================

_DIGITS = re.compile(r"^[0-9]+$")


def parse_pattern_id(value: str) -> int:
    """Parse a pattern id argument.

    Only plain decimal digits up to the largest SQLite row id are
    accepted: no sign, no whitespace, no exponent.

    Raises:
        InvalidInputError: If ``value`` is not a row id.
    """
    if not _DIGITS.match(value):
        raise InvalidInputError(f"Invalid pattern id '{value}'")
    significant = value.lstrip("0") or "0"
    if len(significant) > len(str(MAX_ROW_ID)) or int(significant) > MAX_ROW_ID:
        raise InvalidInputError(f"Invalid pattern id '{value}'")
    return int(significant)


def parse_count(value: str) -> int:
    """Parse an occurrence count argument.

    Raises:
        InvalidInputError: If ``value`` is not a non-negative integer.
    """
    if not _DIGITS.match(value):
        raise InvalidInputError(f"Invalid count '{value}'")
    return int(value)


# =============================================================================
# Error mapping
# =============================================================================


@contextmanager
def cli_errors() -> Iterator[None]:
    """Turn domain and database errors into ``Error: ...`` plus exit code 1."""
    try:
        yield
    except CalibratorError as e:
        print_error(str(e))
        raise typer.Exit(1) from None
    except sqlite3.Error as e:
        _logger.error("command_database_error", error=str(e))
        print_error(f"{ErrorMessages.DATABASE_ERROR}: {e}")
        raise typer.Exit(1) from None


__all__ = [
    "CliLoggingConfig",
    "ErrorMessages",
    "OutputLevel",
    "cli_errors",
    "configure_global_logging",
    "is_quiet",
    "is_verbose",
    "load_config",
    "open_store",
    "parse_count",
    "parse_pattern_id",
    "reset_logging_state",
    "set_log_file",
    "set_log_format",
    "set_log_level",
    "set_output_level",
]
