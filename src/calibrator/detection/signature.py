"""Failure signature extraction.

Turns a failing command and its combined output into a stable
``(kind, situation)`` signature plus the observation category it maps to.

The command text is only ever matched as text, never executed or expanded,
so hostile command strings cannot do anything beyond selecting a kind.
Classification rules are evaluated top to bottom and the first match wins;
the order matters because tool names overlap (``cargo build`` must be a
build, not a package command, and ``make test`` a build, not a test).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from calibrator.core.constants import (
    SITUATION_LINE_MAX_CHARS,
    SITUATION_MAX_CHARS,
    UNKNOWN_ERROR,
)
from calibrator.store.models import ObservationCategory


class CommandKind(str, Enum):
    """Kind of tool a failing command belongs to."""

    LINT = "lint"
    TYPECHECK = "typecheck"
    BUILD = "build"
    TEST = "test"
    PACKAGE = "package"
    GIT = "git"
    OTHER = "other"


def _contains_any(*needles: str) -> Callable[[str], bool]:
    def match(command: str) -> bool:
        return any(needle in command for needle in needles)

    return match


def _is_git(command: str) -> bool:
    return command.startswith("git ") or " git " in command


# Ordered: first match wins.
_RULES: tuple[tuple[CommandKind, Callable[[str], bool]], ...] = (
    (
        CommandKind.LINT,
        _contains_any(
            "eslint", "prettier", "biome", "stylelint", "pylint",
            "flake8", "rubocop", "golint", "clippy", "oxlint",
        ),
    ),
    (
        CommandKind.TYPECHECK,
        _contains_any("tsc", "typescript", "mypy", "flow", "typecheck"),
    ),
    (
        CommandKind.BUILD,
        _contains_any(
            "webpack", "vite", "esbuild", "rollup", "turbo",
            "cargo build", "go build", "make",
        ),
    ),
    (
        CommandKind.TEST,
        _contains_any(
            "jest", "vitest", "pytest", "mocha", "cargo test", "go test", "test",
        ),
    ),
    (
        CommandKind.PACKAGE,
        _contains_any("npm", "yarn", "pnpm", "pip", "cargo", "go mod"),
    ),
    (CommandKind.GIT, _is_git),
)

_CATEGORY_BY_KIND: dict[CommandKind, ObservationCategory] = {
    CommandKind.LINT: ObservationCategory.STYLE,
    CommandKind.TYPECHECK: ObservationCategory.MISSING,
    CommandKind.PACKAGE: ObservationCategory.MISSING,
}

_DIAGNOSTIC_KEYWORDS = ("error", "warning", "warn", "fail")


@dataclass(frozen=True)
class Signature:
    """Stable description of one command failure."""

    kind: CommandKind
    situation: str
    category: ObservationCategory


def classify_command(command: str) -> CommandKind:
    """Classify a command line into a CommandKind."""
    lowered = command.lower()
    for kind, matches in _RULES:
        if matches(lowered):
            return kind
    return CommandKind.OTHER


def map_category(kind: CommandKind) -> ObservationCategory:
    """Map a CommandKind onto the fixed observation categories."""
    return _CATEGORY_BY_KIND.get(kind, ObservationCategory.OTHER)


def _first_diagnostic_line(output: str) -> str:
    lines = output.splitlines()
    for line in lines:
        lowered = line.lower()
        if any(keyword in lowered for keyword in _DIAGNOSTIC_KEYWORDS):
            return line
    for line in lines:
        if line:
            return line
    return ""


def extract_situation(output: str, kind: CommandKind) -> str:
    """Build the situation string for a failure.

    Picks the first line mentioning an error, warning or failure, else the
    first non-empty line, else ``"Unknown error"``; the line is capped at
    200 characters and the prefixed result at 500.
    """
    line = _first_diagnostic_line(output)[:SITUATION_LINE_MAX_CHARS]
    return f"{kind.value}: {line or UNKNOWN_ERROR}"[:SITUATION_MAX_CHARS]


def extract_signature(
    command: str | None,
    exit_code: int | None,
    output: str | None,
) -> Signature | None:
    """Extract the failure signature of a finished command.

    Args:
        command: The command text as issued.
        exit_code: Process exit status; ``0`` or ``None`` means success.
        output: Combined stdout and stderr.

    Returns:
        The signature, or None when the command succeeded or is empty.
    """
    if not exit_code or not command:
        return None

    kind = classify_command(command)
    return Signature(
        kind=kind,
        situation=extract_situation(output or "", kind),
        category=map_category(kind),
    )


__all__ = [
    "CommandKind",
    "Signature",
    "classify_command",
    "extract_signature",
    "extract_situation",
    "map_category",
]
