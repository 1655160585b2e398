"""SQLite aggregation store.

Keeps one row per (date, source_name) with the number of times the source
was shown that day, the total seconds it stayed visible and the last time
it became visible. A second table holds optional descriptive metadata
(title, category, brand) that reports join onto the counters.

Every write is a single upsert statement scoped to one row, so counters are
never read-modified-written from Python.

Usage:
    store = AggregationStore("./data/obs_tracker.db")
    store.increment_show(date(2024, 5, 1), "Camera1", at=now)
    store.add_duration(date(2024, 5, 1), "Camera1", 47)
    rows = store.read_day(date(2024, 5, 1))
    store.close()
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DayOrder = Literal["recent", "count"]

_ORDER_CLAUSES: dict[str, str] = {
    "recent": "sl.last_visible_at IS NULL, sl.last_visible_at DESC, sl.source_name",
    "count": "sl.visible_count DESC, sl.source_name",
}


class DailyAggregate(BaseModel):
    """Counters for one source on one day, joined with its metadata."""

    date: str
    source_name: str
    visible_count: int = 0
    total_duration_seconds: int = 0
    last_visible_at: str | None = None
    title: str | None = None
    category: str | None = None
    brand: str | None = None

    @property
    def average_duration_seconds(self) -> int:
        """Mean visible seconds per show, rounded half up."""
        if self.visible_count <= 0:
            return 0
        return int(self.total_duration_seconds / self.visible_count + 0.5)


class SourceMetadata(BaseModel):
    """Descriptive labels for a source."""

    source_name: str
    title: str
    category: str
    brand: str = ""


class AggregationStore:
    """Per-day, per-source visibility counters in SQLite."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        # The HTTP app may touch the store from a worker thread
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        if self.db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()
        logger.info(f"Aggregation store initialized: {self.db_path}")

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS source_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                source_name TEXT NOT NULL,
                visible_count INTEGER NOT NULL DEFAULT 0,
                total_duration INTEGER NOT NULL DEFAULT 0,
                last_visible_at TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (date, source_name)
            );

            CREATE TABLE IF NOT EXISTS source_metadata (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_name TEXT UNIQUE NOT NULL,
                title TEXT,
                category TEXT,
                brand TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_source_log_date
                ON source_log(date);
        """)
        self._conn.commit()

    # =========================================================================
    # Counters
    # =========================================================================

    def increment_show(self, day: date, source_name: str, at: datetime) -> None:
        """Count one show of `source_name` on `day` and stamp `at`."""
        self._conn.execute(
            """
            INSERT INTO source_log (date, source_name, visible_count, last_visible_at)
            VALUES (?, ?, 1, ?)
            ON CONFLICT (date, source_name) DO UPDATE SET
                visible_count = visible_count + 1,
                last_visible_at = excluded.last_visible_at
            """,
            (day.isoformat(), source_name, at.isoformat()),
        )
        self._conn.commit()
        logger.debug(f"Show counted for {source_name} on {day}")

    def add_duration(self, day: date, source_name: str, seconds: int) -> None:
        """Add `seconds` of visible time to `source_name` on `day`.

        Creates the row when the session was shown on an earlier day.
        """
        if seconds < 0:
            raise ValueError(f"Duration must not be negative: {seconds}")
        self._conn.execute(
            """
            INSERT INTO source_log (date, source_name, visible_count, total_duration)
            VALUES (?, ?, 0, ?)
            ON CONFLICT (date, source_name) DO UPDATE SET
                total_duration = total_duration + excluded.total_duration
            """,
            (day.isoformat(), source_name, int(seconds)),
        )
        self._conn.commit()
        logger.debug(f"Added {seconds}s for {source_name} on {day}")

    def read_day(self, day: date, order: DayOrder = "recent") -> list[DailyAggregate]:
        """Return every source counted on `day`.

        Args:
            day: Calendar day to read
            order: "recent" (last shown first) or "count" (most shown first)
        """
        if order not in _ORDER_CLAUSES:
            raise ValueError(f"Unknown order: {order}")
        cursor = self._conn.execute(
            f"""
            SELECT sl.date, sl.source_name, sl.visible_count,
                   sl.total_duration, sl.last_visible_at,
                   sm.title, sm.category, sm.brand
            FROM source_log sl
            LEFT JOIN source_metadata sm ON sl.source_name = sm.source_name
            WHERE sl.date = ?
            ORDER BY {_ORDER_CLAUSES[order]}
            """,
            (day.isoformat(),),
        )
        return [
            DailyAggregate(
                date=row["date"],
                source_name=row["source_name"],
                visible_count=row["visible_count"],
                total_duration_seconds=row["total_duration"],
                last_visible_at=row["last_visible_at"],
                title=row["title"],
                category=row["category"],
                brand=row["brand"],
            )
            for row in cursor.fetchall()
        ]

    def list_dates(self) -> list[str]:
        """All days with counters, newest first."""
        cursor = self._conn.execute("SELECT DISTINCT date FROM source_log ORDER BY date DESC")
        return [row["date"] for row in cursor.fetchall()]

    # =========================================================================
    # Metadata
    # =========================================================================

    def list_metadata(self) -> list[SourceMetadata]:
        cursor = self._conn.execute(
            "SELECT source_name, title, category, brand FROM source_metadata "
            "ORDER BY source_name"
        )
        return [self._metadata_from_row(row) for row in cursor.fetchall()]

    def get_metadata(self, source_name: str) -> SourceMetadata | None:
        cursor = self._conn.execute(
            "SELECT source_name, title, category, brand FROM source_metadata "
            "WHERE source_name = ?",
            (source_name,),
        )
        row = cursor.fetchone()
        return self._metadata_from_row(row) if row else None

    def upsert_metadata(self, metadata: SourceMetadata) -> None:
        """Create or replace the metadata for a source."""
        self._conn.execute(
            """
            INSERT INTO source_metadata (source_name, title, category, brand)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (source_name) DO UPDATE SET
                title = excluded.title,
                category = excluded.category,
                brand = excluded.brand
            """,
            (metadata.source_name, metadata.title, metadata.category, metadata.brand),
        )
        self._conn.commit()

    def update_metadata(self, source_name: str, title: str, category: str, brand: str = "") -> bool:
        """Update existing metadata. Returns False if the source has none."""
        cursor = self._conn.execute(
            "UPDATE source_metadata SET title = ?, category = ?, brand = ? "
            "WHERE source_name = ?",
            (title, category, brand, source_name),
        )
        self._conn.commit()
        return cursor.rowcount > 0

    def delete_metadata(self, source_name: str) -> bool:
        """Delete metadata. Returns False if the source had none."""
        cursor = self._conn.execute(
            "DELETE FROM source_metadata WHERE source_name = ?", (source_name,)
        )
        self._conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _metadata_from_row(row: sqlite3.Row) -> SourceMetadata:
        return SourceMetadata(
            source_name=row["source_name"],
            title=row["title"] or "",
            category=row["category"] or "",
            brand=row["brand"] or "",
        )

    def close(self) -> None:
        self._conn.close()
        logger.info(f"Aggregation store closed: {self.db_path}")
