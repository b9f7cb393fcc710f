"""Observation mixin for CalibratorStore.

Observations are the append-only log of failure sightings written by the
hook. They are never deduplicated: recurrence shows up as repeated rows,
and the frequency queries below aggregate them for review tooling.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime

from calibrator.core.constants import EXPECTATION_MAX_CHARS, SITUATION_MAX_CHARS
from calibrator.core.logging import CalibratorLogger
from calibrator.store.models import (
    ObservationCategory,
    ObservationFrequency,
    ObservationRecord,
)


class ObservationMixin:
    """Mixin providing observation recording and frequency queries.

    This mixin requires that the composed class provides:
    - _get_connection(): Context manager yielding sqlite3.Connection
    """

    _logger: CalibratorLogger
    _get_connection: Callable[[], AbstractContextManager[sqlite3.Connection]]

    def record_observation(
        self,
        category: ObservationCategory | str,
        situation: str,
        expectation: str,
        file_path: str | None = None,
        notes: str | None = None,
    ) -> int:
        """Append one observation.

        ``situation`` and ``expectation`` are truncated to their column caps
        so an oversized diagnostic line never turns into a CHECK failure.

        Args:
            category: One of the fixed observation categories.
            situation: Normalized failure signature.
            expectation: What correct behavior would have looked like.
            file_path: Optional file the failure relates to.
            notes: Optional free-form notes.

        Returns:
            The new observation id.

        Raises:
            ValueError: If ``category`` is not a known category.
            sqlite3.Error: If the write fails.
        """
        category = ObservationCategory(category)
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO observations
                    (category, situation, expectation, file_path, notes)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    category.value,
                    situation[:SITUATION_MAX_CHARS],
                    expectation[:EXPECTATION_MAX_CHARS],
                    file_path,
                    notes,
                ),
            )
            observation_id = cursor.lastrowid

        self._logger.debug(
            "observation_recorded",
            observation_id=observation_id,
            category=category.value,
        )
        return int(observation_id or 0)

    def count_observations(self) -> int:
        """Return the total number of observations."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM observations").fetchone()
        return int(row["n"])

    def get_observation_frequencies(
        self,
        min_occurrences: int = 1,
        limit: int = 20,
    ) -> list[ObservationFrequency]:
        """Group observations by situation, most frequent first.

        Args:
            min_occurrences: Hide situations seen fewer times than this.
            limit: Maximum number of groups to return.
        """
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT situation,
                       MAX(category) AS category,
                       COUNT(*) AS occurrences,
                       MAX(timestamp) AS last_seen
                FROM observations
                GROUP BY situation
                HAVING COUNT(*) >= ?
                ORDER BY occurrences DESC, last_seen DESC
                LIMIT ?
                """,
                (min_occurrences, limit),
            ).fetchall()

        return [
            ObservationFrequency(
                situation=row["situation"],
                category=ObservationCategory(row["category"]),
                occurrences=row["occurrences"],
                last_seen=(
                    datetime.fromisoformat(row["last_seen"]) if row["last_seen"] else None
                ),
            )
            for row in rows
        ]

    def get_recent_observations(self, limit: int = 10) -> list[ObservationRecord]:
        """Return the newest observations first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM observations ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [ObservationRecord.from_row(row) for row in rows]


__all__ = ["ObservationMixin"]
