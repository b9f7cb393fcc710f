"""Pattern aggregation mixin for CalibratorStore.

Provides methods for aggregating and reviewing patterns:
- upsert_pattern: Create a pattern or bump the count of an identical one
- get_pattern / get_promotion_candidates: Queries used by review tooling
- dismiss_pattern: Record that the user declined promotion
- mark_promoted: Record the skill directory a pattern was promoted to
- get_stats: Row counts for status output

Patterns are keyed by content: the ``(situation, instruction)`` pair is
unique, so re-aggregating identical content always updates the existing
row instead of inserting a duplicate.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager
from pathlib import Path

from calibrator.core.constants import INSTRUCTION_MAX_CHARS, SITUATION_MAX_CHARS
from calibrator.core.errors import InvalidInputError
from calibrator.core.logging import CalibratorLogger
from calibrator.store.base import WhereBuilder
from calibrator.store.models import PatternRecord, StoreStats


class PatternMixin:
    """Mixin providing pattern aggregation and review state methods.

    This mixin requires that the composed class provides:
    - _get_connection(): Context manager yielding sqlite3.Connection
    - get_schema_version(): For status output
    """

    _logger: CalibratorLogger
    _get_connection: Callable[[], AbstractContextManager[sqlite3.Connection]]
    get_schema_version: Callable[[], str | None]

    def upsert_pattern(self, situation: str, instruction: str) -> PatternRecord:
        """Record one sighting of a ``(situation, instruction)`` pair.

        A new pair is inserted with ``count = 1``; an existing pair has its
        count incremented and ``last_seen`` refreshed. Both happen in a
        single statement, so concurrent callers never create duplicates or
        lose increments. Promotion and dismissal state are left alone.

        Args:
            situation: Normalized failure signature (at most 500 chars).
            instruction: Remediation text (at most 2000 chars).

        Returns:
            The pattern as stored after the upsert.

        Raises:
            InvalidInputError: If either text is empty or over its cap.
        """
        if not situation or not instruction:
            raise InvalidInputError("situation and instruction must not be empty")
        if len(situation) > SITUATION_MAX_CHARS:
            raise InvalidInputError(
                f"situation exceeds {SITUATION_MAX_CHARS} characters"
            )
        if len(instruction) > INSTRUCTION_MAX_CHARS:
            raise InvalidInputError(
                f"instruction exceeds {INSTRUCTION_MAX_CHARS} characters"
            )

        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO patterns (situation, instruction)
                VALUES (?, ?)
                ON CONFLICT(situation, instruction) DO UPDATE SET
                    count = count + 1,
                    last_seen = CURRENT_TIMESTAMP
                """,
                (situation, instruction),
            )
            row = conn.execute(
                "SELECT * FROM patterns WHERE situation = ? AND instruction = ?",
                (situation, instruction),
            ).fetchone()

        pattern = PatternRecord.from_row(row)
        self._logger.debug(
            "pattern_upserted", pattern_id=pattern.id, count=pattern.count
        )
        return pattern

    def get_pattern(self, pattern_id: int) -> PatternRecord | None:
        """Fetch a pattern by id, or None if it does not exist."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM patterns WHERE id = ?", (pattern_id,)
            ).fetchone()
        return PatternRecord.from_row(row) if row else None

    def get_promotion_candidates(
        self,
        min_count: int = 1,
        limit: int | None = None,
    ) -> list[PatternRecord]:
        """Patterns neither promoted nor dismissed, most frequent first.

        Args:
            min_count: Only include patterns seen at least this many times.
            limit: Maximum number of patterns to return (None for all).
        """
        wb = WhereBuilder()
        wb.add("promoted = 0")
        wb.add("(dismissed = 0 OR dismissed IS NULL)")
        wb.add("count >= ?", min_count)
        where_sql, params = wb.build()

        query = f"SELECT * FROM patterns WHERE {where_sql} ORDER BY count DESC, id ASC"
        if limit is not None:
            query += " LIMIT ?"
            params = (*params, limit)

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [PatternRecord.from_row(row) for row in rows]

    def get_all_patterns(self) -> list[PatternRecord]:
        """All patterns, most frequent first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM patterns ORDER BY count DESC, id ASC"
            ).fetchall()
        return [PatternRecord.from_row(row) for row in rows]

    def dismiss_pattern(self, pattern_id: int) -> bool:
        """Mark a pattern as declined for promotion.

        Count and timestamps are unchanged, and later upserts still count
        towards the pattern. Only a promotion clears the flag again.

        Returns:
            True if the pattern exists, False otherwise.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE patterns SET dismissed = 1 WHERE id = ?", (pattern_id,)
            )
            updated = cursor.rowcount > 0

        if updated:
            self._logger.info("pattern_dismissed", pattern_id=pattern_id)
        return updated

    def mark_promoted(self, pattern_id: int, skill_path: Path) -> bool:
        """Record a successful promotion and clear any dismissal.

        Returns:
            True if the pattern exists, False otherwise.

        Raises:
            sqlite3.Error: If the update fails.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE patterns
                SET promoted = 1, dismissed = 0, skill_path = ?
                WHERE id = ?
                """,
                (str(skill_path), pattern_id),
            )
            return cursor.rowcount > 0

    def get_stats(self) -> StoreStats:
        """Row counts across the store."""
        with self._get_connection() as conn:
            observations = conn.execute(
                "SELECT COUNT(*) AS n FROM observations"
            ).fetchone()["n"]
            row = conn.execute(
                """
                SELECT COUNT(*) AS patterns,
                       COALESCE(SUM(promoted), 0) AS promoted,
                       COALESCE(SUM(dismissed), 0) AS dismissed,
                       COALESCE(SUM(CASE WHEN promoted = 0 AND dismissed = 0
                                         THEN 1 ELSE 0 END), 0) AS pending
                FROM patterns
                """
            ).fetchone()

        return StoreStats(
            observations=observations,
            patterns=row["patterns"],
            promoted=row["promoted"],
            dismissed=row["dismissed"],
            pending=row["pending"],
            schema_version=self.get_schema_version(),
        )


__all__ = ["PatternMixin"]
