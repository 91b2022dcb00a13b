"""
Privacy Cash Client SQLite Cache Store

Async SQLite persistence for note caches.
"""

from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import aiosqlite

from privacy_cash.core.types import CacheRecord
from privacy_cash.storage.cache import (
    CacheStore,
    entry_names,
    encode_outputs,
    decode_outputs,
)

logger = logging.getLogger(__name__)


# Schema version for migrations
SCHEMA_VERSION = 1


CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    key TEXT PRIMARY KEY,
    value TEXT
);

-- Cache entries (offset and outputs rows per cache key)
CREATE TABLE IF NOT EXISTS cache_entries (
    name TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SQLiteCacheStore(CacheStore):
    """
    SQLite-backed note cache.

    Both entries of a key are written in a single transaction.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._connect_lock = asyncio.Lock()
        # One writer transaction at a time on the shared connection
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        """
        Open database connection and initialize schema.

        Concurrent callers share one connection; it is published only once
        the schema is in place.
        """
        async with self._connect_lock:
            if self._conn is not None:
                return

            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            conn = await aiosqlite.connect(self.db_path, isolation_level=None)
            try:
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA synchronous=NORMAL")
                await conn.executescript(CREATE_TABLES_SQL)
                await conn.execute(
                    "INSERT OR IGNORE INTO schema_info (key, value) VALUES ('version', ?)",
                    (str(SCHEMA_VERSION),)
                )
            except BaseException:
                await conn.close()
                raise
            self._conn = conn

        logger.info(f"Connected to cache storage: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("Closed cache storage")

    async def __aenter__(self) -> "SQLiteCacheStore":
        await self.connect()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _ensure_connected(self) -> aiosqlite.Connection:
        if self._conn is None:
            await self.connect()
        return self._conn

    # =========================================================================
    # CacheStore
    # =========================================================================

    async def load(self, key: str) -> Optional[CacheRecord]:
        conn = await self._ensure_connected()
        offset_name, outputs_name = entry_names(key)

        async with conn.execute(
            "SELECT name, value FROM cache_entries WHERE name IN (?, ?)",
            (offset_name, outputs_name)
        ) as cursor:
            rows = {name: value async for name, value in cursor}

        if offset_name not in rows or outputs_name not in rows:
            return None
        return CacheRecord(
            offset=int(rows[offset_name]),
            encrypted_outputs=decode_outputs(rows[outputs_name]),
        )

    async def save(self, key: str, record: CacheRecord) -> None:
        offset_name, outputs_name = entry_names(key)
        async with self._transaction() as conn:
            await conn.executemany(
                """INSERT INTO cache_entries (name, value) VALUES (?, ?)
                   ON CONFLICT(name) DO UPDATE SET value = excluded.value""",
                [
                    (offset_name, str(record.offset)),
                    (outputs_name, encode_outputs(record.encrypted_outputs)),
                ]
            )

    async def delete(self, key: str) -> None:
        offset_name, outputs_name = entry_names(key)
        async with self._transaction() as conn:
            await conn.execute(
                "DELETE FROM cache_entries WHERE name IN (?, ?)",
                (offset_name, outputs_name)
            )

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Single writer transaction; rolled back on any exit but success."""
        conn = await self._ensure_connected()
        async with self._write_lock:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.execute("ROLLBACK")
                raise
            await conn.execute("COMMIT")

    # =========================================================================
    # Utility Operations
    # =========================================================================

    async def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics."""
        conn = await self._ensure_connected()

        async with conn.execute("SELECT COUNT(*) FROM cache_entries") as cursor:
            row = await cursor.fetchone()

        return {
            "db_path": self.db_path,
            "schema_version": SCHEMA_VERSION,
            "entry_count": row[0],
        }
