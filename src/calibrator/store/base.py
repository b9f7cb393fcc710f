"""Base class for CalibratorStore with connection and schema management.

This module provides the foundational `CalibratorStoreBase` class that handles:
- SQLite connection management with WAL mode and a busy timeout
- Schema creation, additive migration and full reset
- File permissions of the store (owner-only read/write)

Mixins inherit from this base to add the observation and pattern operations.
Concurrent writers from parallel hook processes are serialized by SQLite
itself; nothing here adds locking of its own.
"""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Self

from calibrator.core.constants import (
    EXPECTATION_MAX_CHARS,
    INSTRUCTION_MAX_CHARS,
    SITUATION_MAX_CHARS,
    STORE_FILE_MODE,
)
from calibrator.core.errors import StoreNotFoundError
from calibrator.core.logging import get_logger

_logger = get_logger("store")

# SQLite accepts str, int, float, bytes, and None as bind parameters.
SQLParam = str | int | float | bytes | None

# Files SQLite keeps next to the database in WAL mode
_SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")


def parse_version(version: str | None) -> tuple[int, ...]:
    """Turn a dotted schema version into a comparable tuple (``"1.1"`` -> ``(1, 1)``)."""
    if not version:
        return (0,)
    try:
        return tuple(int(part) for part in version.split("."))
    except ValueError:
        return (0,)


class WhereBuilder:
    """Accumulates SQL WHERE clauses and their bound parameters.

    Clauses are joined with AND. Only fixed SQL fragments are passed as
    clauses; every value goes through a ``?`` placeholder.

    Usage::

        wb = WhereBuilder()
        wb.add("promoted = 0")
        wb.add("count >= ?", min_count)
        where_sql, params = wb.build()
        conn.execute(f"SELECT * FROM patterns WHERE {where_sql}", params)
    """

    __slots__ = ("_clauses", "_params")

    def __init__(self) -> None:
        self._clauses: list[str] = []
        self._params: list[SQLParam] = []

    def add(self, clause: str, *params: SQLParam) -> None:
        """Append a WHERE clause with its bound parameters."""
        self._clauses.append(clause)
        self._params.extend(params)

    def build(self) -> tuple[str, tuple[SQLParam, ...]]:
        """Return the combined WHERE fragment and parameter tuple.

        Returns ``("1=1", ())`` when no clauses have been added.
        """
        if not self._clauses:
            return "1=1", ()
        return " AND ".join(self._clauses), tuple(self._params)


class CalibratorStoreBase:
    """SQLite-backed calibrator store base class.

    Opening a store never creates one: the file must already exist (see
    ``initialize``), because the presence of the file is what marks a
    project as initialized. Every open brings the schema up to date.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    # Schema version history
    # 1.0: observations, patterns, schema_version
    # 1.1: patterns.dismissed (user declined promotion) + index
    SCHEMA_VERSION = "1.1"

    # Columns added after initial table creation
    # Format: {table_name: [(column_name, column_definition), ...]}
    _COLUMN_MIGRATIONS: dict[str, list[tuple[str, str]]] = {
        "patterns": [
            # 1.1 addition
            ("dismissed", "INTEGER NOT NULL DEFAULT 0 CHECK(dismissed IN (0, 1))"),
        ],
    }

    def __init__(self, db_path: Path) -> None:
        """Open an existing store and migrate it if needed.

        Args:
            db_path: Path to the SQLite database file.

        Raises:
            StoreNotFoundError: If the database file does not exist.
        """
        self.db_path = Path(db_path)
        self._logger = _logger
        if not self.db_path.is_file():
            raise StoreNotFoundError(f"Database not found at {self.db_path}")
        self.ensure_schema()

    @classmethod
    def initialize(cls, db_path: Path) -> Self:
        """Create the store file and schema, then open it.

        Idempotent: an existing store is simply migrated and opened.

        Args:
            db_path: Path to the SQLite database file.
        """
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        created = not db_path.exists()
        db_path.touch(mode=STORE_FILE_MODE, exist_ok=True)
        os.chmod(db_path, STORE_FILE_MODE)
        if created:
            _logger.info("store_created", db_path=str(db_path))
        return cls(db_path)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper configuration.

        Each call opens a fresh connection, committed on success and rolled
        back on error. WAL mode plus a 30s busy timeout lets parallel hook
        processes wait for each other instead of failing immediately.

        Yields:
            A configured sqlite3.Connection instance.

        Raises:
            sqlite3.Error: If connection or configuration fails.
        """
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=30000")
            conn.row_factory = sqlite3.Row
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            _logger.warning(
                "database_operation_failed",
                db_path=str(self.db_path),
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        finally:
            conn.close()

    def get_schema_version(self) -> str | None:
        """Return the highest applied schema version, or None if unrecorded."""
        with self._get_connection() as conn:
            return self._read_schema_version(conn)

    @staticmethod
    def _read_schema_version(conn: sqlite3.Connection) -> str | None:
        try:
            rows = conn.execute("SELECT version FROM schema_version").fetchall()
        except sqlite3.OperationalError:
            return None
        versions = [str(row["version"]) for row in rows]
        if not versions:
            return None
        return max(versions, key=parse_version)

    def ensure_schema(self) -> None:
        """Create or migrate the database schema.

        Safe to call before every operation: when the recorded version is
        current nothing is executed beyond the version lookup.
        """
        with self._get_connection() as conn:
            current = self._read_schema_version(conn)
            if parse_version(current) >= parse_version(self.SCHEMA_VERSION):
                return

            # Existing tables first, then any missing tables and indexes
            self._migrate_columns(conn)
            self._create_schema(conn)
            self._logger.info(
                "schema_migrated",
                from_version=current,
                to_version=self.SCHEMA_VERSION,
            )

    def reset(self) -> None:
        """Delete the store file and recreate it from the canonical schema.

        All observations and patterns are lost. Skill directories are not
        touched: they live outside the store.
        """
        for path in [self.db_path, *self._sidecar_paths()]:
            path.unlink(missing_ok=True)

        self.db_path.touch(mode=STORE_FILE_MODE)
        os.chmod(self.db_path, STORE_FILE_MODE)
        with self._get_connection() as conn:
            self._create_schema(conn)
        self._logger.warning("store_reset", db_path=str(self.db_path))

    def _sidecar_paths(self) -> list[Path]:
        return [self.db_path.with_name(self.db_path.name + s) for s in _SIDECAR_SUFFIXES]

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create all tables and indexes (IF NOT EXISTS) and record the version."""
        self._create_schema_version_table(conn)
        self._create_observations_table(conn)
        self._create_patterns_table(conn)

        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (self.SCHEMA_VERSION,),
        )

    @staticmethod
    def _create_schema_version_table(conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version    TEXT PRIMARY KEY,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    def _create_observations_table(conn: sqlite3.Connection) -> None:
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS observations (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp   DATETIME DEFAULT CURRENT_TIMESTAMP,
                category    TEXT NOT NULL
                            CHECK(category IN ('missing', 'excess', 'style', 'other')),
                situation   TEXT NOT NULL CHECK(length(situation) <= {SITUATION_MAX_CHARS}),
                expectation TEXT NOT NULL
                            CHECK(length(expectation) <= {EXPECTATION_MAX_CHARS}),
                file_path   TEXT,
                notes       TEXT
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_observations_situation "
            "ON observations(situation)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_observations_timestamp "
            "ON observations(timestamp DESC)"
        )

    @staticmethod
    def _create_patterns_table(conn: sqlite3.Connection) -> None:
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS patterns (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                situation   TEXT NOT NULL CHECK(length(situation) <= {SITUATION_MAX_CHARS}),
                instruction TEXT NOT NULL
                            CHECK(length(instruction) <= {INSTRUCTION_MAX_CHARS}),
                count       INTEGER DEFAULT 1 CHECK(count >= 1),
                first_seen  DATETIME DEFAULT CURRENT_TIMESTAMP,
                last_seen   DATETIME DEFAULT CURRENT_TIMESTAMP,
                promoted    INTEGER NOT NULL DEFAULT 0 CHECK(promoted IN (0, 1)),
                dismissed   INTEGER NOT NULL DEFAULT 0 CHECK(dismissed IN (0, 1)),
                skill_path  TEXT,
                UNIQUE(situation, instruction)
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_patterns_count ON patterns(count DESC)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_patterns_promoted ON patterns(promoted)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_patterns_dismissed ON patterns(dismissed)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_patterns_situation_instruction "
            "ON patterns(situation, instruction)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_patterns_review "
            "ON patterns(promoted, dismissed, count DESC)"
        )

    @staticmethod
    def _get_existing_columns(
        conn: sqlite3.Connection, table_name: str,
    ) -> set[str] | None:
        """Get the column names for a table, or None if the table does not exist."""
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        if not cursor.fetchone():
            return None
        cursor = conn.execute(f"PRAGMA table_info({table_name})")
        return {row["name"] for row in cursor.fetchall()}

    def _migrate_columns(self, conn: sqlite3.Connection) -> None:
        """Add missing columns to tables created by an older schema.

        Tables that do not exist yet are skipped; ``_create_schema`` creates
        them with the full column set.
        """
        for table_name, columns in self._COLUMN_MIGRATIONS.items():
            existing = self._get_existing_columns(conn, table_name)
            if existing is None:
                continue

            for column_name, column_def in columns:
                if column_name in existing:
                    continue
                try:
                    conn.execute(
                        f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_def}"
                    )
                    self._logger.info(
                        "column_added", table=table_name, column=column_name
                    )
                except sqlite3.OperationalError as e:
                    # A concurrent process may have migrated first
                    if "duplicate column name" not in str(e).lower():
                        raise


__all__ = [
    "CalibratorStoreBase",
    "SQLParam",
    "WhereBuilder",
    "parse_version",
]
