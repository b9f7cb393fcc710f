"""Calibrator CLI.

The CLI is built using Typer. Global options (verbosity, logging) are
handled by the app callback, which runs before any command; command logic
lives in the ``commands`` package.

Package structure:
    cli/
    ├── __init__.py           # This file - app assembly
    ├── helpers.py            # Shared state, config/store loading, error mapping
    ├── output.py             # Rich formatting
    └── commands/
        ├── skills.py         # create-skill
        ├── patterns.py       # record-pattern, patterns, dismiss
        ├── store.py          # init, status, reset
        └── detect.py         # hook, auto-detect
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from calibrator import __version__

# Re-export helpers module for direct access to internal state (conftest.py needs this)
from . import helpers as helpers
from .commands import (
    auto_detect,
    create_skill,
    dismiss,
    hook,
    init,
    patterns_list,
    record_pattern,
    reset,
    status,
)
from .helpers import (
    OutputLevel,
    configure_global_logging,
    set_log_file,
    set_log_format,
    set_log_level,
    set_output_level,
)
from .output import console

# =============================================================================
# Typer app definition
# =============================================================================

app = typer.Typer(
    name="calibrator",
    help="Learn recurring failures and promote them to skills",
    add_completion=False,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Calibrator v{__version__}")
        raise typer.Exit()


def verbose_callback(value: bool) -> None:
    if value:
        set_output_level(OutputLevel.VERBOSE)


def quiet_callback(value: bool) -> None:
    if value:
        set_output_level(OutputLevel.QUIET)


def log_level_callback(value: str | None) -> str | None:
    """Set log level from CLI option."""
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    """Set log file path from CLI option."""
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    """Set log format from CLI option."""
    if value:
        set_log_format(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        callback=verbose_callback,
        is_eager=True,
        help="Show detailed output with additional information",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        callback=quiet_callback,
        is_eager=True,
        help="Show minimal output (errors only)",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="CALIBRATOR_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for log file output",
            envvar="CALIBRATOR_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json, console, or both",
            envvar="CALIBRATOR_LOG_FORMAT",
        ),
    ] = None,
) -> None:
    """Calibrator - learn recurring failures and promote them to skills."""
    configure_global_logging(console)


# =============================================================================
# Command registration
# =============================================================================

# Setup and maintenance
app.command()(init)
app.command()(status)
app.command()(reset)

# Automatic detection
app.command(name="auto-detect")(auto_detect)
app.command(hidden=True)(hook)  # Invoked by the PostToolUse hook, not by users

# Pattern review
app.command(name="record-pattern")(record_pattern)
app.command(name="patterns")(patterns_list)
app.command()(dismiss)
app.command(name="create-skill")(create_skill)


# =============================================================================
# Public API
# =============================================================================

__all__ = [
    "app",
    "main",
    "console",
    "OutputLevel",
]
