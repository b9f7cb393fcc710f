"""Data models for the calibrator store.

Dataclasses and enums representing rows of the ``observations`` and
``patterns`` tables, plus the aggregate shapes used by review tooling.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class ObservationCategory(str, Enum):
    """Fixed category enumeration enforced by the observations CHECK constraint."""

    MISSING = "missing"
    """Something required was absent (missing import, dependency, type)."""

    EXCESS = "excess"
    """Something was present that should not have been."""

    STYLE = "style"
    """Formatting or lint rule violations."""

    OTHER = "other"
    """Anything not covered above."""


def _parse_timestamp(value: str | None) -> datetime | None:
    """Parse an SQLite ``CURRENT_TIMESTAMP`` value (``YYYY-MM-DD HH:MM:SS``)."""
    if value is None:
        return None
    return datetime.fromisoformat(value)


@dataclass
class ObservationRecord:
    """A single raw failure sighting."""

    id: int
    timestamp: datetime | None
    category: ObservationCategory
    situation: str
    expectation: str
    file_path: str | None = None
    notes: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ObservationRecord:
        return cls(
            id=row["id"],
            timestamp=_parse_timestamp(row["timestamp"]),
            category=ObservationCategory(row["category"]),
            situation=row["situation"],
            expectation=row["expectation"],
            file_path=row["file_path"],
            notes=row["notes"],
        )


@dataclass
class PatternRecord:
    """An aggregated, actionable fix keyed by (situation, instruction).

    ``count`` grows on every identical aggregation; ``promoted`` and
    ``dismissed`` carry the review state. ``skill_path`` is only set once
    the pattern has been promoted to a skill directory.
    """

    id: int
    situation: str
    instruction: str
    count: int
    first_seen: datetime | None
    last_seen: datetime | None
    promoted: bool = False
    dismissed: bool = False
    skill_path: Path | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> PatternRecord:
        skill_path = row["skill_path"]
        return cls(
            id=row["id"],
            situation=row["situation"],
            instruction=row["instruction"],
            count=row["count"],
            first_seen=_parse_timestamp(row["first_seen"]),
            last_seen=_parse_timestamp(row["last_seen"]),
            promoted=bool(row["promoted"]),
            dismissed=bool(row["dismissed"]),
            skill_path=Path(skill_path) if skill_path else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "situation": self.situation,
            "instruction": self.instruction,
            "count": self.count,
            "first_seen": self.first_seen.isoformat(sep=" ") if self.first_seen else None,
            "last_seen": self.last_seen.isoformat(sep=" ") if self.last_seen else None,
            "promoted": self.promoted,
            "dismissed": self.dismissed,
            "skill_path": str(self.skill_path) if self.skill_path else None,
        }


@dataclass
class ObservationFrequency:
    """Observations grouped by situation, used to spot recurring failures."""

    situation: str
    category: ObservationCategory
    occurrences: int
    last_seen: datetime | None


@dataclass
class StoreStats:
    """Row counts summarising the store for the ``status`` command."""

    observations: int = 0
    patterns: int = 0
    promoted: int = 0
    dismissed: int = 0
    pending: int = 0
    schema_version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "observations": self.observations,
            "patterns": self.patterns,
            "promoted": self.promoted,
            "dismissed": self.dismissed,
            "pending": self.pending,
            "schema_version": self.schema_version,
        }


__all__ = [
    "ObservationCategory",
    "ObservationFrequency",
    "ObservationRecord",
    "PatternRecord",
    "StoreStats",
]
