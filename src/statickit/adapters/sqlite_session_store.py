"""SQLite-backed local session store."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from statickit.domain.images import StorageQuotaExceededError, StoredImage
from statickit.domain.records import CURRENT_SESSION_KEY, SessionRecord
from statickit.services.storage import SessionStore

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS images (
    id TEXT PRIMARY KEY,
    data BLOB NOT NULL,
    mime_type TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""

IN_MEMORY = ":memory:"


@dataclass
class SQLiteSessionStore(SessionStore):
    """Embedded SQLite implementation with a sessions and an images table."""

    connection: sqlite3.Connection
    quota_bytes: int | None = None

    @classmethod
    def create(
        cls, path: str | Path, quota_bytes: int | None = None
    ) -> "SQLiteSessionStore":
        """Open (and initialise) the database at ``path``."""
        if str(path) != IN_MEMORY:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(str(path), check_same_thread=False)
        connection.executescript(_SCHEMA)
        return cls(connection=connection, quota_bytes=quota_bytes)

    def put_session(self, record: SessionRecord) -> None:
        """Replace the current session row."""
        payload = record.model_dump_json()
        current = self._session_json_length()
        self._check_quota(len(payload) - current)
        self._write(
            "INSERT OR REPLACE INTO sessions (key, data) VALUES (?, ?)",
            (CURRENT_SESSION_KEY, payload),
        )

    def get_session(self) -> SessionRecord | None:
        """Return the current session row, if present."""
        row = self.connection.execute(
            "SELECT data FROM sessions WHERE key = ?", (CURRENT_SESSION_KEY,)
        ).fetchone()
        if row is None:
            return None
        return SessionRecord.model_validate_json(row[0])

    def delete_session(self) -> None:
        self._write("DELETE FROM sessions WHERE key = ?", (CURRENT_SESSION_KEY,))

    def put_image(self, image: StoredImage) -> None:
        """Insert or replace an image row."""
        self._check_quota(image.size)
        self._write(
            "INSERT OR REPLACE INTO images (id, data, mime_type, created_at) "
            "VALUES (?, ?, ?, ?)",
            (image.id, image.data, image.mime_type, image.created_at.isoformat()),
        )

    def get_image(self, image_id: str) -> StoredImage | None:
        row = self.connection.execute(
            "SELECT id, data, mime_type, created_at FROM images WHERE id = ?",
            (image_id,),
        ).fetchone()
        if row is None:
            return None
        return StoredImage(
            id=row[0],
            data=bytes(row[1]),
            mime_type=row[2],
            created_at=datetime.fromisoformat(row[3]),
        )

    def has_image(self, image_id: str) -> bool:
        row = self.connection.execute(
            "SELECT 1 FROM images WHERE id = ?", (image_id,)
        ).fetchone()
        return row is not None

    def delete_image(self, image_id: str) -> None:
        self._write("DELETE FROM images WHERE id = ?", (image_id,))

    def image_count(self) -> int:
        row = self.connection.execute("SELECT COUNT(*) FROM images").fetchone()
        return int(row[0])

    def total_image_bytes(self) -> int:
        row = self.connection.execute(
            "SELECT COALESCE(SUM(LENGTH(data)), 0) FROM images"
        ).fetchone()
        return int(row[0])

    def close(self) -> None:
        """Close the database connection."""
        self.connection.close()

    def _session_json_length(self) -> int:
        row = self.connection.execute(
            "SELECT LENGTH(data) FROM sessions WHERE key = ?", (CURRENT_SESSION_KEY,)
        ).fetchone()
        return int(row[0]) if row else 0

    def _check_quota(self, additional_bytes: int) -> None:
        if self.quota_bytes is None or additional_bytes <= 0:
            return
        used = self.total_image_bytes() + self._session_json_length()
        if used + additional_bytes > self.quota_bytes:
            raise StorageQuotaExceededError(
                f"Storage quota of {self.quota_bytes} bytes exceeded"
            )

    def _write(self, statement: str, params: tuple[object, ...]) -> None:
        try:
            with self.connection:
                self.connection.execute(statement, params)
        except sqlite3.OperationalError as exc:
            if getattr(exc, "sqlite_errorcode", None) == sqlite3.SQLITE_FULL:
                raise StorageQuotaExceededError("Local database is full") from exc
            raise
