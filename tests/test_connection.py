from unittest.mock import MagicMock

import psycopg2
import pytest

from tripcanvas.db import connection


@pytest.fixture
def pool(monkeypatch):
    conn = MagicMock()
    conn.closed = 0
    fake = MagicMock()
    fake.closed = False
    fake.getconn.return_value = conn
    monkeypatch.setattr(connection, "_pool", fake)
    yield fake
    monkeypatch.setattr(connection, "_pool", None)


def test_transaction_commits_and_returns_connection(pool):
    conn = pool.getconn.return_value
    with connection.transaction() as got:
        assert got is conn

    conn.commit.assert_called_once()
    conn.rollback.assert_not_called()
    pool.putconn.assert_called_once_with(conn, close=False)


def test_transaction_rolls_back_on_error(pool):
    conn = pool.getconn.return_value
    with pytest.raises(ValueError):
        with connection.transaction():
            raise ValueError("bad block")

    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()
    pool.putconn.assert_called_once_with(conn, close=False)


def test_broken_connection_is_discarded(pool):
    conn = pool.getconn.return_value
    with pytest.raises(psycopg2.OperationalError):
        with connection.transaction():
            raise psycopg2.OperationalError("server closed the connection")

    conn.rollback.assert_not_called()
    pool.putconn.assert_called_once_with(conn, close=True)


def test_readonly_transaction_resets_session(pool):
    conn = pool.getconn.return_value
    with connection.transaction(readonly=True) as got:
        assert got.readonly is True
    assert conn.readonly is False


def test_database_available(pool):
    assert connection.database_available() is True

    pool.getconn.side_effect = psycopg2.OperationalError("refused")
    assert connection.database_available() is False


def test_pool_is_opened_lazily_with_application_name(monkeypatch):
    built = MagicMock()
    built.closed = False
    factory = MagicMock(return_value=built)
    monkeypatch.setattr(connection, "_pool", None)
    monkeypatch.setattr(connection.psycopg2.pool, "ThreadedConnectionPool", factory)

    assert connection.get_pool() is built
    assert connection.get_pool() is built
    factory.assert_called_once()
    assert factory.call_args.kwargs["application_name"] == "tripcanvas"
    assert "statement_timeout" in factory.call_args.kwargs["options"]

    connection.close_pool()
    built.closeall.assert_called_once()
    assert connection._pool is None
