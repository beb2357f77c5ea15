"""Async SQLite medium for date-keyed payloads.

Same contract as DateKeyCache, for callers that run inside an event loop
and want storage I/O off their main execution context. Uses WAL mode so
readers are not blocked by a writer.
"""

import contextlib
import logging
import os
from datetime import datetime, timezone, tzinfo

import aiosqlite

from screentime.config import AppConfig
from screentime.constants import DEFAULT_KEY_PREFIX, DEFAULT_TIMEZONE
from screentime.errors import StorageError, ValidationError
from screentime.storage.date_key_cache import derive_cache_key, resolve_timezone

logger = logging.getLogger(__name__)


class SqliteDateKeyCache:
    """Async date-keyed cache on a single SQLite file."""

    def __init__(
        self,
        db_path: str,
        timezone: str | tzinfo = DEFAULT_TIMEZONE,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ):
        self.db_path = str(db_path)
        self.tz = resolve_timezone(timezone)
        self.key_prefix = key_prefix
        self._conn: aiosqlite.Connection | None = None

    @classmethod
    def from_config(cls, config: AppConfig):
        """Cache on config.paths.db_path with the configured zone and prefix."""
        return cls(
            config.paths.db_path,
            timezone=config.cache.timezone,
            key_prefix=config.cache.key_prefix,
        )

    async def initialize(self) -> None:
        """Create database, enable WAL mode, and ensure schema exists."""
        try:
            os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
            self._conn = await aiosqlite.connect(self.db_path)
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA busy_timeout=5000")
            await self._conn.execute("""
                CREATE TABLE IF NOT EXISTS blobs (
                    key TEXT PRIMARY KEY,
                    payload BLOB NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._conn.commit()
        except (aiosqlite.Error, OSError) as exc:
            logger.error("Failed to open cache database %s: %s", self.db_path, exc)
            raise StorageError(f"Failed to open cache database {self.db_path}: {exc}") from exc

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Cache not initialized. Call initialize() first.")
        return self._conn

    def derive_key(self, value) -> str:
        return derive_cache_key(value, self.tz, self.key_prefix)

    async def get(self, key: str) -> bytes | None:
        """Stored payload for ``key``, or None when nothing was written."""
        conn = self._require_conn()
        if not isinstance(key, str):
            raise ValidationError(f"Cache key must be a string, got {type(key).__name__}")
        try:
            cursor = await conn.execute("SELECT payload FROM blobs WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            logger.error("Cache read failed for %r: %s", key, exc)
            raise StorageError(f"Failed to read cache entry {key!r}: {exc}") from exc
        logger.debug("Cache %s for %s", "hit" if row is not None else "miss", key)
        if row is None:
            return None
        return bytes(row[0])

    async def put(self, key: str, payload: bytes) -> None:
        """Upsert ``payload`` under ``key`` in one transaction."""
        conn = self._require_conn()
        if not isinstance(key, str):
            raise ValidationError(f"Cache key must be a string, got {type(key).__name__}")
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise ValidationError(f"Payload must be bytes, got {type(payload).__name__}")
        now = datetime.now(timezone.utc).isoformat()
        try:
            await conn.execute(
                """INSERT INTO blobs (key, payload, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       payload = excluded.payload,
                       updated_at = excluded.updated_at""",
                (key, bytes(payload), now),
            )
            await conn.commit()
        except aiosqlite.Error as exc:
            with contextlib.suppress(aiosqlite.Error):
                await conn.rollback()
            logger.error("Cache write failed for %r: %s", key, exc)
            raise StorageError(f"Failed to write cache entry {key!r}: {exc}") from exc
        logger.debug("Cached %d bytes under %s", len(payload), key)

    async def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        conn = self._require_conn()
        try:
            cursor = await conn.execute("DELETE FROM blobs WHERE key = ?", (key,))
            await conn.commit()
        except aiosqlite.Error as exc:
            logger.error("Cache delete failed for %r: %s", key, exc)
            raise StorageError(f"Failed to delete cache entry {key!r}: {exc}") from exc
        return cursor.rowcount > 0

    async def list_keys(self) -> list[str]:
        """All stored keys, sorted."""
        conn = self._require_conn()
        try:
            cursor = await conn.execute("SELECT key FROM blobs ORDER BY key")
            rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            logger.error("Failed to list cache keys in %s: %s", self.db_path, exc)
            raise StorageError(f"Failed to list cache keys: {exc}") from exc
        return [row[0] for row in rows]
