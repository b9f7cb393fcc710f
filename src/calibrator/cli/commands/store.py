"""Store lifecycle commands for the Calibrator CLI.

- init: create the store (optionally enabling auto-detection)
- status: summary counts and the most frequent observed situations
- reset: recreate the store from the canonical schema
"""

from __future__ import annotations

import json

import typer
from rich.markup import escape

from calibrator.store import CalibratorStore

from ..helpers import cli_errors, is_quiet, is_verbose, load_config, open_store
from ..output import (
    console,
    create_frequencies_table,
    create_patterns_table,
    create_stats_table,
)


def init(
    auto_detect: bool = typer.Option(
        False,
        "--auto-detect",
        help="Also enable automatic failure detection by the hook",
    ),
) -> None:
    """Initialize Calibrator in the current project.

    Creates ``.claude/calibrator/patterns.db`` (owner read/write only).
    Running it again on an initialized project only migrates the schema.
    """
    with cli_errors():
        config = load_config()
        existed = config.db_path.is_file()
        store = CalibratorStore.initialize(config.db_path)
        if auto_detect:
            config.auto_detect_flag.touch()

    if is_quiet():
        return
    if existed:
        console.print(
            f"Store already initialized at {escape(str(store.db_path))}", soft_wrap=True
        )
    else:
        console.print(
            f"[green]Initialized calibrator store[/green] at {escape(str(store.db_path))}",
            soft_wrap=True,
        )
    if auto_detect:
        console.print("Auto-detection [green]enabled[/green]")


def status(
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON for machine parsing",
    ),
    top: int = typer.Option(
        5,
        "--top",
        "-n",
        min=0,
        help="Number of recurring observations to show",
    ),
) -> None:
    """Show store statistics and the most frequent observations."""
    with cli_errors():
        config = load_config()
        store = open_store(config)
        stats = store.get_stats()
        frequencies = store.get_observation_frequencies(limit=top) if top else []
        candidates = store.get_promotion_candidates(limit=top) if top else []
        auto_detect = config.auto_detect_flag.is_file()

    if json_output:
        output = {
            **stats.to_dict(),
            "auto_detect": auto_detect,
            "db_path": str(config.db_path),
            "top_observations": [
                {
                    "situation": f.situation,
                    "category": f.category.value,
                    "occurrences": f.occurrences,
                    "last_seen": f.last_seen.isoformat(sep=" ") if f.last_seen else None,
                }
                for f in frequencies
            ],
        }
        console.print(
            json.dumps(output, indent=2), markup=False, highlight=False, soft_wrap=True
        )
        return

    console.print(create_stats_table(stats))
    state = "[green]enabled[/green]" if auto_detect else "[dim]disabled[/dim]"
    console.print(f"Auto-detection: {state}")

    if is_quiet():
        return
    if frequencies:
        console.print(create_frequencies_table(frequencies))
    if is_verbose() and candidates:
        console.print(create_patterns_table(candidates))


def reset(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip the confirmation prompt",
    ),
) -> None:
    """Delete all observations and patterns and recreate the store.

    Promoted skill directories are left in place.
    """
    with cli_errors():
        config = load_config()
        store = open_store(config)

    if not yes:
        typer.confirm(
            f"Delete all observations and patterns in {config.db_path}?",
            abort=True,
        )

    with cli_errors():
        store.reset()

    if not is_quiet():
        console.print(
            f"[green]Store reset[/green] at {escape(str(store.db_path))}", soft_wrap=True
        )


__all__ = ["init", "reset", "status"]
