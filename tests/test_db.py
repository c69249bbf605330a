"""Tests for the Database gateway (pool mocked)."""

from unittest.mock import MagicMock

import psycopg
import pytest
from psycopg_pool import PoolTimeout

from db import Database
from errors import StorageError


def make_pool(cursor):
    pool = MagicMock()
    conn = pool.connection.return_value.__enter__.return_value
    conn.cursor.return_value.__enter__.return_value = cursor
    return pool


class TestExecute:
    def test_returns_rows(self):
        cursor = MagicMock()
        cursor.description = [("ok",)]
        cursor.fetchall.return_value = [{"ok": 1}]
        pool = make_pool(cursor)

        rows = Database(pool).execute("SELECT %s AS ok", (1,))

        assert rows == [{"ok": 1}]
        cursor.execute.assert_called_once_with("SELECT %s AS ok", (1,))
        pool.connection.return_value.__exit__.assert_called_once()

    def test_statement_without_result_set(self):
        cursor = MagicMock()
        cursor.description = None
        pool = make_pool(cursor)

        assert Database(pool).execute("CREATE TABLE t (id int)") == []
        cursor.fetchall.assert_not_called()

    def test_failure_releases_connection_and_raises_storage_error(self):
        cursor = MagicMock()
        cursor.execute.side_effect = psycopg.OperationalError("server closed the connection")
        pool = make_pool(cursor)

        with pytest.raises(StorageError) as exc_info:
            Database(pool).execute("SELECT 1")

        assert isinstance(exc_info.value.__cause__, psycopg.OperationalError)
        assert "server closed" not in exc_info.value.message
        pool.connection.return_value.__exit__.assert_called_once()

    def test_pool_timeout_is_storage_error(self):
        pool = MagicMock()
        pool.connection.side_effect = PoolTimeout("couldn't get a connection after 30.00 sec")

        with pytest.raises(StorageError):
            Database(pool).execute("SELECT 1")

    def test_no_retry(self):
        cursor = MagicMock()
        cursor.execute.side_effect = psycopg.OperationalError("boom")
        pool = make_pool(cursor)

        with pytest.raises(StorageError):
            Database(pool).execute("SELECT 1")
        assert cursor.execute.call_count == 1


class TestLifecycle:
    def test_open_and_close(self):
        pool = MagicMock()
        db = Database(pool)

        db.open()
        db.close()

        pool.open.assert_called_once_with(wait=False)
        pool.close.assert_called_once()

    def test_ping(self):
        cursor = MagicMock()
        cursor.description = [("?column?",)]
        cursor.fetchall.return_value = [{"?column?": 1}]
        pool = make_pool(cursor)

        Database(pool).ping()

        cursor.execute.assert_called_once_with("SELECT 1", None)
