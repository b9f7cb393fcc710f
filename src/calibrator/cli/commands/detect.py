"""Automatic failure detection commands for the Calibrator CLI.

- hook: PostToolUse entry point, reads the tool payload from stdin
- auto-detect: toggle the sentinel file that gates the hook
"""

from __future__ import annotations

import sys
from enum import Enum

import typer

from calibrator.core.logging import get_logger
from calibrator.detection.hook import is_detection_enabled, run_hook

from ..helpers import ErrorMessages, cli_errors, load_config
from ..output import console, print_error

_logger = get_logger("cli.hook")


class AutoDetectState(str, Enum):
    """Arguments accepted by ``auto-detect``."""

    ON = "on"
    OFF = "off"
    STATUS = "status"


def hook() -> None:
    """Record a failed shell command from a PostToolUse payload on stdin.

    Always exits 0 and prints nothing, whatever the payload or the state
    of the project.
    """
    try:
        raw = sys.stdin.buffer.read().decode("utf-8", "replace")
        run_hook(raw)
    except Exception as e:
        # A hook must never fail the tool call that triggered it
        _logger.warning(
            "hook_failed",
            error_type=type(e).__name__,
            error=str(e),
        )


def auto_detect(
    state: AutoDetectState = typer.Argument(
        AutoDetectState.STATUS,
        help="on, off, or status",
        case_sensitive=False,
    ),
) -> None:
    """Enable, disable, or show automatic failure detection.

    Detection requires an initialized store; enabling it on an
    uninitialized project is an error.
    """
    with cli_errors():
        config = load_config()

    flag = config.auto_detect_flag

    if state is AutoDetectState.ON:
        if not config.db_path.is_file():
            print_error(ErrorMessages.NOT_INITIALIZED)
            raise typer.Exit(1)
        flag.touch()
        _logger.info("auto_detect_enabled", flag=str(flag))
        console.print("Auto-detection [green]enabled[/green]")
    elif state is AutoDetectState.OFF:
        flag.unlink(missing_ok=True)
        _logger.info("auto_detect_disabled", flag=str(flag))
        console.print("Auto-detection [dim]disabled[/dim]")
    elif is_detection_enabled(config):
        console.print("Auto-detection: [green]enabled[/green]")
    elif flag.is_file():
        console.print("Auto-detection: [yellow]enabled, but store not initialized[/yellow]")
    else:
        console.print("Auto-detection: [dim]disabled[/dim]")


__all__ = ["AutoDetectState", "auto_detect", "hook"]
