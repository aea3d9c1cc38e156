"""Integration tests for database connection, schema, and transactions.

Verifies SQLite setup (WAL mode, foreign keys, table creation) and that
Database.transaction() commits or rolls back as a unit.
"""

import asyncio
import os
import sqlite3
import tempfile

import pytest

from careerline.db.connection import Database


class TestDatabaseConnection:
    async def test_connect_creates_tables(self):
        """Database.connect creates node, closure, and insight tables."""
        db = await Database.connect(":memory:")
        try:
            rows = await db.fetchall(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            )
            table_names = {row["name"] for row in rows}
            assert "timeline_nodes" in table_names
            assert "timeline_node_closure" in table_names
            assert "node_insights" in table_names
        finally:
            await db.close()

    async def test_closure_indexes_exist(self, db):
        rows = await db.fetchall(
            "SELECT name FROM sqlite_master WHERE type='index' AND tbl_name='timeline_node_closure'"
        )
        names = {row["name"] for row in rows}
        assert "idx_closure_ancestor_id" in names
        assert "idx_closure_descendant_id" in names

    async def test_wal_mode_on_file_database(self):
        """File-based database uses WAL journal mode."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "test.db")
            db = await Database.connect(path)
            try:
                row = await db.fetchone("PRAGMA journal_mode")
                assert row is not None
                assert row["journal_mode"] == "wal"
            finally:
                await db.close()

    async def test_foreign_keys_enabled(self, db):
        row = await db.fetchone("PRAGMA foreign_keys")
        assert row is not None
        assert row["foreign_keys"] == 1

    async def test_schema_idempotent(self, db):
        """Calling _ensure_schema twice does not error."""
        await db._ensure_schema()
        rows = await db.fetchall("SELECT name FROM sqlite_master WHERE type='table'")
        assert len(rows) >= 3


def _insert_node_sql() -> str:
    return (
        "INSERT INTO timeline_nodes (node_id, type, owner_id, parent_id, meta, created_at, updated_at) "
        "VALUES (?, 'job', 'u', NULL, '{}', 't', 't')"
    )


class TestTransactions:
    async def test_commit_on_success(self, db):
        async with db.transaction():
            assert db.in_transaction
            await db.execute(_insert_node_sql(), ("n1",))
        assert not db.in_transaction
        row = await db.fetchone("SELECT node_id FROM timeline_nodes WHERE node_id = 'n1'")
        assert row is not None

    async def test_rollback_on_error(self, db):
        with pytest.raises(RuntimeError):
            async with db.transaction():
                await db.execute(_insert_node_sql(), ("n1",))
                raise RuntimeError("boom")
        row = await db.fetchone("SELECT node_id FROM timeline_nodes WHERE node_id = 'n1'")
        assert row is None

    async def test_nested_transaction_joins_outer(self, db):
        with pytest.raises(RuntimeError):
            async with db.transaction():
                async with db.transaction():
                    await db.execute(_insert_node_sql(), ("inner",))
                await db.execute(_insert_node_sql(), ("outer",))
                raise RuntimeError("boom")
        rows = await db.fetchall("SELECT node_id FROM timeline_nodes")
        assert rows == []

    async def test_closure_depth_must_be_non_negative(self, db):
        await db.execute(_insert_node_sql(), ("n1",))
        with pytest.raises(sqlite3.IntegrityError):
            await db.execute(
                "INSERT INTO timeline_node_closure (ancestor_id, descendant_id, depth) "
                "VALUES ('n1', 'n1', -1)"
            )


class TestReaderConnection:
    """Reads outside a transaction go to the reader and never wait on a write."""

    async def test_read_not_blocked_by_open_write(self, db):
        await db.execute(_insert_node_sql(), ("n1",))
        holding = asyncio.Event()
        release = asyncio.Event()

        async def hold_write():
            async with db.transaction():
                await db.execute(_insert_node_sql(), ("n2",))
                holding.set()
                await release.wait()

        writer = asyncio.create_task(hold_write())
        await holding.wait()
        try:
            rows = await asyncio.wait_for(
                db.fetchall("SELECT node_id FROM timeline_nodes ORDER BY node_id"), 1.0,
            )
            assert [r["node_id"] for r in rows] == ["n1"]
        finally:
            release.set()
            await writer

        rows = await db.fetchall("SELECT node_id FROM timeline_nodes ORDER BY node_id")
        assert [r["node_id"] for r in rows] == ["n1", "n2"]

    async def test_read_after_write_sees_commit(self, db):
        for i in range(5):
            await db.execute(_insert_node_sql(), (f"n{i}",))
            row = await db.fetchone("SELECT COUNT(*) AS cnt FROM timeline_nodes")
            assert row["cnt"] == i + 1

    async def test_reads_inside_transaction_see_own_writes(self, db):
        async with db.transaction():
            await db.execute(_insert_node_sql(), ("n1",))
            row = await db.fetchone("SELECT node_id FROM timeline_nodes WHERE node_id = 'n1'")
            assert row is not None

    async def test_reader_is_read_only(self, db):
        row = await db.fetchone("PRAGMA query_only")
        assert row is not None
        assert row["query_only"] == 1

    async def test_memory_database_reads_wait_for_write(self, memory_db):
        release = asyncio.Event()

        async def hold_write():
            async with memory_db.transaction():
                await memory_db.execute(_insert_node_sql(), ("n1",))
                await release.wait()

        writer = asyncio.create_task(hold_write())
        await asyncio.sleep(0)
        read = asyncio.create_task(memory_db.fetchall("SELECT node_id FROM timeline_nodes"))
        await asyncio.sleep(0.05)
        assert not read.done()

        release.set()
        await writer
        assert [r["node_id"] for r in await read] == ["n1"]


class TestSeparateInstances:
    async def test_transaction_flag_is_per_database(self, db, memory_db):
        with pytest.raises(RuntimeError):
            async with memory_db.transaction():
                assert memory_db.in_transaction
                assert not db.in_transaction
                await db.execute(_insert_node_sql(), ("other",))
                raise RuntimeError("boom")

        # The write on db committed on its own, outside memory_db's rollback
        row = await db.fetchone("SELECT node_id FROM timeline_nodes WHERE node_id = 'other'")
        assert row is not None
