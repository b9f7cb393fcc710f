"""Pattern commands for the Calibrator CLI.

- record-pattern: aggregate a (situation, instruction) pair
- patterns: list promotion candidates (or every pattern with --all)
- dismiss: decline a pattern for promotion
"""

from __future__ import annotations

import json

import typer
from rich.markup import escape

from ..helpers import (
    ErrorMessages,
    cli_errors,
    is_quiet,
    load_config,
    open_store,
    parse_pattern_id,
)
from ..output import console, create_patterns_table, print_error


def record_pattern(
    situation: str = typer.Argument(..., help="Normalized failure signature"),
    instruction: str = typer.Argument(..., help="How to avoid or fix it"),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON for machine parsing",
    ),
) -> None:
    """Record one occurrence of a pattern.

    An identical (situation, instruction) pair increments the existing
    pattern's count instead of creating a new one.
    """
    with cli_errors():
        store = open_store(load_config())
        pattern = store.upsert_pattern(situation, instruction)

    if json_output:
        console.print(
            json.dumps(pattern.to_dict(), indent=2),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
        return
    if not is_quiet():
        console.print(
            f"Pattern [cyan]{pattern.id}[/cyan] recorded "
            f"(count={pattern.count}): {escape(pattern.situation)}",
            soft_wrap=True,
        )


def patterns_list(
    min_count: int = typer.Option(
        1,
        "--min-count",
        "-m",
        min=1,
        help="Only show patterns seen at least this many times",
    ),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        min=1,
        help="Maximum number of patterns to display",
    ),
    show_all: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Include promoted and dismissed patterns",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON for machine parsing",
    ),
) -> None:
    """List patterns awaiting review, most frequent first.

    Examples:
        calibrator patterns                  # Pending patterns
        calibrator patterns --min-count 3    # Only recurring ones
        calibrator patterns --all --json     # Everything, for scripting
    """
    with cli_errors():
        store = open_store(load_config())
        if show_all:
            patterns = [
                p for p in store.get_all_patterns() if p.count >= min_count
            ][:limit]
        else:
            patterns = store.get_promotion_candidates(min_count=min_count, limit=limit)

    if json_output:
        console.print(
            json.dumps([p.to_dict() for p in patterns], indent=2),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
        return

    if not patterns:
        console.print("[dim]No patterns found.[/dim]")
        return

    title = "Patterns" if show_all else "Promotion Candidates"
    console.print(create_patterns_table(patterns, title=title))


def dismiss(
    pattern_id: str = typer.Argument(..., help="Id of the pattern to dismiss"),
) -> None:
    """Decline a pattern so it no longer shows up as a candidate.

    The pattern keeps counting new occurrences; promoting it later clears
    the dismissal.
    """
    with cli_errors():
        pid = parse_pattern_id(pattern_id)
        store = open_store(load_config())
        dismissed = store.dismiss_pattern(pid)

    if not dismissed:
        print_error(f"{ErrorMessages.PATTERN_NOT_FOUND} (id={pid})")
        raise typer.Exit(1)
    if not is_quiet():
        console.print(f"Pattern [cyan]{pid}[/cyan] dismissed")


__all__ = ["dismiss", "patterns_list", "record_pattern"]
