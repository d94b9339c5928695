"""SQLite snapshot store."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List

from bitrot.models import ContentRecord, Snapshot

LOGGER = logging.getLogger(__name__)


class StorageError(Exception):
    """Reading or writing persisted snapshots failed."""


class SnapshotNotFoundError(StorageError):
    def __init__(self, snapshot_id: int) -> None:
        super().__init__(f"Snapshot {snapshot_id} not found")
        self.snapshot_id = snapshot_id


class SQLiteSnapshotStore:
    """Persistence layer for directory snapshots."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        try:
            self._conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open {self.db_path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        try:
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute("PRAGMA foreign_keys=ON;")
            self._ensure_schema()
        except (sqlite3.Error, StorageError) as exc:
            self._conn.close()
            raise StorageError(f"Unable to open {self.db_path}: {exc}") from exc

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SQLiteSnapshotStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StorageError(str(exc)) from exc
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS snapshots (
                    id INTEGER PRIMARY KEY,
                    path TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    created_ts REAL NOT NULL DEFAULT 0
                )
                """
            )
            columns = {row["name"] for row in conn.execute("PRAGMA table_info(snapshots)")}
            if "created_ts" not in columns:
                conn.execute("ALTER TABLE snapshots ADD COLUMN created_ts REAL NOT NULL DEFAULT 0")
                conn.executemany(
                    "UPDATE snapshots SET created_ts = ? WHERE id = ?",
                    [
                        (datetime.fromisoformat(row["created_at"]).timestamp(), row["id"])
                        for row in conn.execute("SELECT id, created_at FROM snapshots").fetchall()
                    ],
                )
                LOGGER.info("Added created_ts ordering column to %s", self.db_path)
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS entries (
                    id INTEGER PRIMARY KEY,
                    snapshot_id INTEGER NOT NULL,
                    rel_path TEXT NOT NULL,
                    checksum TEXT NOT NULL,
                    mod_time TEXT NOT NULL,
                    UNIQUE(snapshot_id, rel_path),
                    FOREIGN KEY(snapshot_id) REFERENCES snapshots(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_snapshots_path_created
                    ON snapshots(path, created_ts)
                """
            )

    def save(self, snapshot: Snapshot) -> int:
        """Persist a snapshot and return its id."""
        with self.transaction() as conn:
            snapshot_id = conn.execute(
                "INSERT INTO snapshots(path, created_at, created_ts) VALUES (?, ?, ?)",
                (snapshot.path, snapshot.created_at.isoformat(), snapshot.created_at.timestamp()),
            ).lastrowid
            conn.executemany(
                """
                INSERT INTO entries(snapshot_id, rel_path, checksum, mod_time)
                VALUES (?, ?, ?, ?)
                """,
                (
                    (snapshot_id, rel_path, record.checksum, record.mod_time.isoformat())
                    for rel_path, record in snapshot.entries.items()
                ),
            )
        LOGGER.debug("Saved snapshot %s of %s (%d entries)", snapshot_id, snapshot.path, len(snapshot))
        return int(snapshot_id)

    def load(self, snapshot_id: int) -> Snapshot:
        try:
            row = self._conn.execute(
                "SELECT id, path, created_at FROM snapshots WHERE id = ?",
                (snapshot_id,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        if row is None:
            raise SnapshotNotFoundError(snapshot_id)
        return self._build_snapshot(row)

    def latest(self, path: str) -> Snapshot | None:
        """Most recent snapshot of a root path, or None if it was never scanned."""
        try:
            row = self._conn.execute(
                """
                SELECT id, path, created_at FROM snapshots
                WHERE path = ?
                ORDER BY created_ts DESC, id DESC
                LIMIT 1
                """,
                (path,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        if row is None:
            return None
        return self._build_snapshot(row)

    def _build_snapshot(self, row: sqlite3.Row) -> Snapshot:
        try:
            entry_rows = self._conn.execute(
                "SELECT rel_path, checksum, mod_time FROM entries WHERE snapshot_id = ?",
                (row["id"],),
            ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        entries = {
            entry["rel_path"]: ContentRecord(
                checksum=entry["checksum"],
                mod_time=datetime.fromisoformat(entry["mod_time"]),
            )
            for entry in entry_rows
        }
        return Snapshot(
            path=row["path"],
            created_at=datetime.fromisoformat(row["created_at"]),
            entries=entries,
        )

    def list_snapshots(self, path: str | None = None) -> List[dict]:
        """List stored snapshots, newest first."""
        query = """
            SELECT s.id AS id, s.path AS path, s.created_at AS created_at,
                   COUNT(e.id) AS entry_count
            FROM snapshots s
            LEFT JOIN entries e ON e.snapshot_id = s.id
            {where}
            GROUP BY s.id
            ORDER BY s.created_ts DESC, s.id DESC
        """
        params: tuple = ()
        where = ""
        if path is not None:
            where = "WHERE s.path = ?"
            params = (path,)
        try:
            rows = self._conn.execute(query.format(where=where), params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        return [
            {
                "id": row["id"],
                "path": row["path"],
                "created_at": row["created_at"],
                "entry_count": row["entry_count"],
            }
            for row in rows
        ]

    def prune(self, path: str, *, keep: int = 1) -> int:
        """Delete all but the newest ``keep`` snapshots of a root path."""
        if keep < 0:
            raise ValueError("keep must be non-negative")
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT id FROM snapshots WHERE path = ? ORDER BY created_ts DESC, id DESC",
                (path,),
            ).fetchall()
            stale = [row["id"] for row in rows[keep:]]
            for snapshot_id in stale:
                conn.execute("DELETE FROM entries WHERE snapshot_id = ?", (snapshot_id,))
                conn.execute("DELETE FROM snapshots WHERE id = ?", (snapshot_id,))
        if stale:
            LOGGER.info("Pruned %d snapshots of %s", len(stale), path)
        return len(stale)
