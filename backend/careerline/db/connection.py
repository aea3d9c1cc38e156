"""Async SQLite connection wrapper with WAL mode, schema init, and transactions."""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from contextvars import ContextVar

import aiosqlite

from careerline.db.schema import SCHEMA_SQL

MEMORY_PATH = ":memory:"


class Database:
    """Thin async wrapper around aiosqlite with WAL mode and auto-schema.

    Writes go through one connection, serialized by an asyncio lock. Outside
    a transaction each write commits on its own; inside ``transaction()`` the
    lock is held until commit or rollback.

    File databases get a second, read-only connection. Reads made outside a
    transaction use it without taking the lock: WAL lets them see the last
    commit while a write is in flight, and never a half-applied one. An
    in-memory database cannot be shared between connections, so there reads
    go through the write connection and wait on the lock.
    """

    def __init__(
        self,
        connection: aiosqlite.Connection,
        reader: aiosqlite.Connection | None = None,
    ) -> None:
        self._conn = connection
        self._reader = reader
        self._lock = asyncio.Lock()
        # Set while the current task is inside this instance's transaction()
        self._in_transaction: ContextVar[bool] = ContextVar(
            f"careerline_db_transaction_{id(self)}", default=False,
        )

    @classmethod
    async def connect(cls, path: str = "careerline.db") -> "Database":
        """Create connections with WAL mode, foreign keys, and schema init."""
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        await conn.execute("PRAGMA busy_timeout=5000")
        db = cls(conn)
        await db._ensure_schema()

        if path != MEMORY_PATH:
            reader = await aiosqlite.connect(path, isolation_level=None)
            reader.row_factory = aiosqlite.Row
            await reader.execute("PRAGMA query_only=ON")
            await reader.execute("PRAGMA foreign_keys=ON")
            await reader.execute("PRAGMA busy_timeout=5000")
            db._reader = reader
        return db

    async def _ensure_schema(self) -> None:
        """Create tables if they don't exist. Idempotent."""
        async with self._lock:
            await self._conn.executescript(SCHEMA_SQL)
            await self._conn.commit()

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction.get()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run the enclosed statements atomically.

        Takes SQLite's write lock up front (BEGIN IMMEDIATE). Nested use joins
        the outer transaction.
        """
        if self._in_transaction.get():
            yield
            return

        async with self._lock:
            token = self._in_transaction.set(True)
            try:
                await self._conn.execute("BEGIN IMMEDIATE")
                try:
                    yield
                except BaseException:
                    await self._conn.rollback()
                    raise
                await self._conn.commit()
            finally:
                self._in_transaction.reset(token)

    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor:
        """Execute a single SQL statement."""
        if self._in_transaction.get():
            return await self._conn.execute(sql, params or ())
        async with self._lock:
            try:
                cursor = await self._conn.execute(sql, params or ())
            except Exception:
                await self._conn.rollback()
                raise
            await self._conn.commit()
            return cursor

    async def executemany(self, sql: str, params: Iterable[tuple]) -> aiosqlite.Cursor:
        """Execute a statement once per parameter tuple."""
        if self._in_transaction.get():
            return await self._conn.executemany(sql, params)
        async with self._lock:
            try:
                cursor = await self._conn.executemany(sql, params)
            except Exception:
                await self._conn.rollback()
                raise
            await self._conn.commit()
            return cursor

    async def fetchone(self, sql: str, params: tuple | None = None) -> aiosqlite.Row | None:
        """Execute and return a single row."""
        if self._in_transaction.get():
            cursor = await self._conn.execute(sql, params or ())
            return await cursor.fetchone()
        if self._reader is not None:
            # Closing the cursor ends the read snapshot
            async with self._reader.execute(sql, params or ()) as cursor:
                return await cursor.fetchone()
        async with self._lock:
            cursor = await self._conn.execute(sql, params or ())
            return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple | None = None) -> list[aiosqlite.Row]:
        """Execute and return all rows."""
        if self._in_transaction.get():
            cursor = await self._conn.execute(sql, params or ())
            return list(await cursor.fetchall())
        if self._reader is not None:
            async with self._reader.execute(sql, params or ()) as cursor:
                return list(await cursor.fetchall())
        async with self._lock:
            cursor = await self._conn.execute(sql, params or ())
            return list(await cursor.fetchall())

    async def close(self) -> None:
        """Close the database connections."""
        if self._reader is not None:
            await self._reader.close()
        await self._conn.close()
