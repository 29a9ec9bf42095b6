"""
Durable record store.

``ImageRepository`` is the two-operation contract the pipeline needs;
``SQLiteImageRepository`` is the bundled implementation.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from core.models import ImageRecord
from utils.exceptions import StoreError
from utils.log_config import get_logger

log = get_logger(__name__)

PAGE_SIZE = 10

_CREATE_SQL = """
CREATE TABLE IF NOT EXISTS images (
    file TEXT NOT NULL
);
"""


class ImageRepository(Protocol):
    def create_batch(self, records: Sequence[ImageRecord]) -> None: ...

    def list(self, offset: int) -> List[ImageRecord]: ...


class SQLiteImageRepository:
    """
    Thread-safe SQLite store.

    Uses ONE shared connection protected by a threading.Lock; the batch
    writer and any number of readers share it.
    """

    def __init__(self, db_path: Path, page_size: int = PAGE_SIZE) -> None:
        self._db_path = db_path
        self.page_size = page_size
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._ensure_schema()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self._db_path),
                timeout=30,
                check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
        return self._conn

    def _ensure_schema(self) -> None:
        with self._lock:
            try:
                conn = self._get_conn()
                conn.executescript(_CREATE_SQL)
                conn.commit()
            except sqlite3.Error as exc:
                raise StoreError(f"Cannot open store {self._db_path}: {exc}") from exc

    def create_batch(self, records: Sequence[ImageRecord]) -> None:
        """Insert every record in one transaction, or none of them."""
        if not records:
            return
        with self._lock:
            conn = self._get_conn()
            try:
                with conn:
                    conn.executemany(
                        "INSERT INTO images (file) VALUES (?)",
                        [(r.file,) for r in records],
                    )
            except sqlite3.Error as exc:
                raise StoreError(f"Batch insert of {len(records)} failed: {exc}") from exc
        log.debug("Stored batch of %d records", len(records))

    def list(self, offset: int) -> List[ImageRecord]:
        """Return up to ``page_size`` records starting at *offset*."""
        with self._lock:
            try:
                rows = self._get_conn().execute(
                    "SELECT file FROM images ORDER BY rowid LIMIT ? OFFSET ?",
                    (self.page_size, offset),
                ).fetchall()
            except sqlite3.Error as exc:
                raise StoreError(f"Page read at offset {offset} failed: {exc}") from exc
        return [ImageRecord(file=row[0]) for row in rows]

    def count(self) -> int:
        with self._lock:
            try:
                row = self._get_conn().execute("SELECT COUNT(*) FROM images").fetchone()
            except sqlite3.Error as exc:
                raise StoreError(f"Count failed: {exc}") from exc
        return row[0] if row else 0

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
