"""
Tagged-files state: when each note was last tagged successfully.

This map is the engine's only persistent state. It drives the staleness
check (a note is re-tagged only once modified after its last tagging) and
is injected into the annotator and batch controller rather than read from
a global settings object.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

STATE_FILENAME = "tagged.db"


@runtime_checkable
class TaggedFilesStore(Protocol):
    """Path -> last tagged time (epoch seconds)."""

    def get(self, path: str) -> Optional[float]:
        ...

    def set(self, path: str, tagged_at: float) -> None:
        ...

    def remove(self, path: str) -> None:
        ...

    def persist(self) -> None:
        """Make pending changes durable."""
        ...

    def all(self) -> dict[str, float]:
        ...


class MemoryTaggedStore:
    """In-process store; nothing survives the process."""

    def __init__(self, initial: dict[str, float] | None = None):
        self._data: dict[str, float] = dict(initial or {})
        self.persist_calls = 0

    def get(self, path: str) -> Optional[float]:
        return self._data.get(path)

    def set(self, path: str, tagged_at: float) -> None:
        self._data[path] = tagged_at

    def remove(self, path: str) -> None:
        self._data.pop(path, None)

    def persist(self) -> None:
        self.persist_calls += 1

    def all(self) -> dict[str, float]:
        return dict(self._data)


class SqliteTaggedStore:
    """
    SQLite-backed store in the vault's config directory.

    Writes are committed by ``persist()``; callers persist after each
    successful write-back so a crash loses at most the note in flight.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        # WAL mode for concurrent readers (e.g. `notetagger watch` alongside a batch)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS tagged_files (
                path TEXT PRIMARY KEY,
                tagged_at REAL NOT NULL
            )
        """)
        self._conn.commit()

    def get(self, path: str) -> Optional[float]:
        with self._lock:
            row = self._conn.execute(
                "SELECT tagged_at FROM tagged_files WHERE path = ?", (path,)
            ).fetchone()
        return row[0] if row else None

    def set(self, path: str, tagged_at: float) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO tagged_files (path, tagged_at) VALUES (?, ?)",
                (path, tagged_at),
            )

    def remove(self, path: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM tagged_files WHERE path = ?", (path,))

    def persist(self) -> None:
        with self._lock:
            self._conn.commit()

    def all(self) -> dict[str, float]:
        with self._lock:
            rows = self._conn.execute("SELECT path, tagged_at FROM tagged_files").fetchall()
        return {path: tagged_at for path, tagged_at in rows}

    def close(self) -> None:
        """Commit and close the connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.commit()
                self._conn.close()
                self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
