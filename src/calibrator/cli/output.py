"""Rich output formatting for the Calibrator CLI.

Centralizes the console instances and table builders so every command
renders patterns and statistics the same way.

Free text coming from the store (situations, instructions) is escaped
before it is handed to Rich, since it originates from command output and
may contain ``[...]`` sequences that Rich would otherwise read as markup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Sequence

    from calibrator.store.models import ObservationFrequency, PatternRecord, StoreStats

# =============================================================================
# Shared console instance
# =============================================================================

console = Console()


# =============================================================================
# Message helpers
# =============================================================================


def print_error(message: str) -> None:
    """Print a single ``Error: ...`` line."""
    console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)


def print_warning(message: str) -> None:
    """Print a single ``Warning: ...`` line."""
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}", soft_wrap=True)


def truncate(text: str, width: int) -> str:
    """Shorten ``text`` to ``width`` characters, marking the cut with ``...``."""
    if len(text) <= width:
        return text
    return text[: max(width - 3, 0)] + "..."


def format_pattern_state(pattern: PatternRecord) -> str:
    """Rich-formatted review state of a pattern."""
    if pattern.promoted:
        return "[green]promoted[/green]"
    if pattern.dismissed:
        return "[dim]dismissed[/dim]"
    return "[yellow]pending[/yellow]"


# =============================================================================
# Table builders
# =============================================================================


def create_patterns_table(
    patterns: Sequence[PatternRecord],
    title: str = "Promotion Candidates",
) -> Table:
    """Create a styled table of patterns.

    Args:
        patterns: Patterns to display, in display order.
        title: Table title.

    Returns:
        Rich Table with one row per pattern.
    """
    table = Table(title=title)
    table.add_column("ID", style="cyan", justify="right", no_wrap=True)
    table.add_column("Count", justify="right")
    table.add_column("State")
    table.add_column("Situation", style="bold")
    table.add_column("Instruction")
    table.add_column("Last Seen", style="dim", no_wrap=True)

    for p in patterns:
        table.add_row(
            str(p.id),
            str(p.count),
            format_pattern_state(p),
            escape(truncate(p.situation, 60)),
            escape(truncate(p.instruction, 60)),
            p.last_seen.strftime("%Y-%m-%d %H:%M") if p.last_seen else "-",
        )
    return table


def create_stats_table(stats: StoreStats) -> Table:
    """Create a two-column summary table of store statistics."""
    table = Table(title="Calibrator Store", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Schema version", stats.schema_version or "-")
    table.add_row("Observations", str(stats.observations))
    table.add_row("Patterns", str(stats.patterns))
    table.add_row("  pending", str(stats.pending))
    table.add_row("  promoted", str(stats.promoted))
    table.add_row("  dismissed", str(stats.dismissed))
    return table


def create_frequencies_table(frequencies: Sequence[ObservationFrequency]) -> Table:
    """Create a table of the most frequent observed situations."""
    table = Table(title="Recurring Observations")
    table.add_column("Seen", justify="right", style="cyan")
    table.add_column("Category", style="yellow")
    table.add_column("Situation")
    table.add_column("Last Seen", style="dim", no_wrap=True)

    for f in frequencies:
        table.add_row(
            str(f.occurrences),
            f.category.value,
            escape(truncate(f.situation, 80)),
            f.last_seen.strftime("%Y-%m-%d %H:%M") if f.last_seen else "-",
        )
    return table


__all__ = [
    "console",
    "create_frequencies_table",
    "create_patterns_table",
    "create_stats_table",
    "format_pattern_state",
    "print_error",
    "print_warning",
    "truncate",
]
