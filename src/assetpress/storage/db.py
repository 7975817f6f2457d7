"""SQLite-backed compression cache persisted across builds."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from assetpress.core.assets import RawSource
from assetpress.core.cache import CachedResult, LazyContentTag

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
DEFAULT_CACHE_PATH = Path(".assetpress") / "cache.sqlite"

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    """Return the current UTC timestamp in ISO format."""

    return datetime.now(timezone.utc).strftime(ISO_FORMAT)


def _is_locked(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc).lower()


@dataclass(slots=True)
class CacheEntryRecord:
    """Row of the ``cache_entries`` table."""

    key: str
    tag: str
    size: int
    has_source: bool
    updated_at: str


@dataclass(slots=True)
class SqliteCacheItem:
    cache: SqliteCache
    key: str
    tag: LazyContentTag | str

    async def get(self) -> CachedResult | None:
        return await asyncio.to_thread(self.cache.lookup, self.key, self.tag)

    async def store(self, result: CachedResult) -> None:
        # hash on the loop thread so the tag memoises where later lookups see it
        tag = str(self.tag)
        await asyncio.to_thread(self.cache.put, self.key, tag, result)


class SqliteCache:
    """Compression cache stored in a single SQLite file.

    One row per cache key; a row is only returned when its tag matches the requested content tag.
    """

    def __init__(self, path: Optional[Path] = None, *, write_attempts: int = 5) -> None:
        self.path = (path or Path.cwd() / DEFAULT_CACHE_PATH).resolve()
        self._retrying = Retrying(
            stop=stop_after_attempt(max(1, write_attempts)),
            wait=wait_exponential_jitter(initial=0.05, max=1.0),
            retry=retry_if_exception(_is_locked),
            reraise=True,
        )

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Provide a SQLite connection."""

        connection = sqlite3.connect(self.path, timeout=5.0, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        try:
            yield connection
        finally:
            connection.close()

    def initialize(self) -> None:
        """Create the cache table if it does not exist."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    tag TEXT NOT NULL,
                    compressed BLOB NOT NULL,
                    has_source INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL
                );
                """
            )
            connection.commit()

    def get_item_cache(self, key: str, tag: LazyContentTag | str) -> SqliteCacheItem:
        return SqliteCacheItem(cache=self, key=key, tag=tag)

    def lookup(self, key: str, tag: LazyContentTag | str) -> CachedResult | None:
        """Return the entry for ``key`` when its stored tag equals ``tag``."""

        with self.connect() as connection:
            row = connection.execute(
                "SELECT tag, compressed, has_source FROM cache_entries WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None or row["tag"] != str(tag):
            return None

        compressed = bytes(row["compressed"])
        source = RawSource(compressed) if row["has_source"] else None
        return CachedResult(compressed=compressed, source=source)

    def put(self, key: str, tag: str, result: CachedResult) -> None:
        """Insert or replace the entry for ``key``."""

        compressed = result.compressed
        if compressed is None and result.source is not None:
            compressed = result.source.buffer()
        if compressed is None:
            raise ValueError("Cannot cache a result without compressed bytes.")

        for attempt in self._retrying.copy():
            with attempt:
                with self.connect() as connection:
                    connection.execute(
                        """
                        INSERT INTO cache_entries (key, tag, compressed, has_source, updated_at)
                        VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET
                            tag = excluded.tag,
                            compressed = excluded.compressed,
                            has_source = excluded.has_source,
                            updated_at = excluded.updated_at
                        """,
                        (key, tag, sqlite3.Binary(compressed), int(result.source is not None), _utcnow()),
                    )
                    connection.commit()
            if attempt.retry_state.outcome is not None and attempt.retry_state.outcome.failed:
                logger.debug(
                    "Cache write for %s hit a locked database (attempt %s)",
                    key,
                    attempt.retry_state.attempt_number,
                )

    def count_entries(self) -> int:
        with self.connect() as connection:
            row = connection.execute("SELECT COUNT(*) AS total FROM cache_entries").fetchone()
        return int(row["total"])

    def list_entries(self) -> list[CacheEntryRecord]:
        with self.connect() as connection:
            rows = connection.execute(
                """
                SELECT key, tag, LENGTH(compressed) AS size, has_source, updated_at
                FROM cache_entries
                ORDER BY updated_at DESC
                """
            ).fetchall()
        return [
            CacheEntryRecord(
                key=row["key"],
                tag=row["tag"],
                size=int(row["size"]),
                has_source=bool(row["has_source"]),
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    def clear(self) -> int:
        """Delete every entry; returns the number removed."""

        with self.connect() as connection:
            cursor = connection.execute("DELETE FROM cache_entries")
            connection.commit()
            return cursor.rowcount
