"""Record sinks and the SQLite listing store."""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from zp_agency.models import FIELDS, NormalizedRecord

logger = logging.getLogger(__name__)


class Sink(ABC):
    """Destination for normalized records, keyed by listing id."""

    @abstractmethod
    def exists(self, listing_id: str) -> bool:
        ...

    @abstractmethod
    def save(self, record: NormalizedRecord) -> bool:
        """Persist a record. Returns False when the sink rejected it."""

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class MultiSink(Sink):
    """Fan-out: the same record goes to every sink.

    A listing counts as existing only if every sink already has it.
    """

    def __init__(self, sinks: Iterable[Sink]):
        self.sinks = [s for s in sinks if s is not None]
        if not self.sinks:
            raise ValueError("MultiSink requires at least one sink")

    def exists(self, listing_id: str) -> bool:
        return all(s.exists(listing_id) for s in self.sinks)

    def save(self, record: NormalizedRecord) -> bool:
        """Hand the record to every sink; a raising sink counts as rejected."""
        ok = True
        for s in self.sinks:
            try:
                saved = s.save(record)
            except Exception:
                logger.exception("%s failed to store listing %s", type(s).__name__, record.id)
                saved = False
            ok = ok and bool(saved)
        return ok

    def close(self) -> None:
        for s in self.sinks:
            try:
                s.close()
            except Exception:
                logger.exception("Failed to close %s", type(s).__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS properties (
    id_internal INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    url TEXT NOT NULL,
    operacion TEXT,
    precio TEXT,
    moneda TEXT,
    expensas TEXT,
    calle TEXT,
    altura TEXT,
    barrio TEXT,
    localidad TEXT,
    m2T TEXT,
    m2C TEXT,
    ambientes TEXT,
    dormitorios TEXT,
    banios TEXT,
    cocheras TEXT,
    antiguedad TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_COLUMNS = ", ".join(FIELDS)
_PLACEHOLDERS = ", ".join("?" for _ in FIELDS)
_UPDATES = ", ".join(f"{name} = excluded.{name}" for name in FIELDS if name != "id")

UPSERT_SQL = (
    f"INSERT INTO properties ({_COLUMNS}) VALUES ({_PLACEHOLDERS}) "
    f"ON CONFLICT(id) DO UPDATE SET {_UPDATES}, updated_at = datetime('now')"
)


class Storage(Sink):
    """SQLite store with one row per listing id."""

    def __init__(self, db_path: str):
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path)
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        self.conn.executescript(SCHEMA)
        self._migrate()

    def _migrate(self):
        """Add record columns missing from databases created by older versions."""
        existing = {
            row[1]
            for row in self.conn.execute("PRAGMA table_info(properties)").fetchall()
        }
        for name in FIELDS:
            if name not in existing:
                self.conn.execute(f"ALTER TABLE properties ADD COLUMN {name} TEXT")
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_properties_moneda ON properties(moneda)"
        )
        self.conn.commit()

    def exists(self, listing_id: str) -> bool:
        if not listing_id:
            return False
        row = self.conn.execute(
            "SELECT 1 FROM properties WHERE id = ?", (listing_id,)
        ).fetchone()
        return row is not None

    def save(self, record: NormalizedRecord) -> bool:
        """Insert or update the record by id. Returns False if not stored."""
        if not record.id:
            logger.warning("Not storing record without id: %s", record.url)
            return False
        values = record.as_dict()
        try:
            self.conn.execute(UPSERT_SQL, tuple(values[name] for name in FIELDS))
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error("Failed to store listing %s: %s", record.id, e)
            return False
        return True

    def get_record(self, listing_id: str) -> NormalizedRecord | None:
        row = self.conn.execute(
            "SELECT * FROM properties WHERE id = ?", (listing_id,)
        ).fetchone()
        return NormalizedRecord.from_mapping(dict(row)) if row else None

    def get_all_records(self) -> list[NormalizedRecord]:
        rows = self.conn.execute(
            "SELECT * FROM properties ORDER BY id_internal ASC"
        ).fetchall()
        return [NormalizedRecord.from_mapping(dict(row)) for row in rows]

    def count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM properties").fetchone()[0]

    def close(self):
        self.conn.close()
