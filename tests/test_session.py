from __future__ import annotations

import pytest

from dfox.errors import ConnectError, ConnectErrorKind, QueryError, QueryErrorKind
from dfox.models import ConnectionParams, EngineKind


def test_connect_then_browse(session, good_params):
    assert session.connect(EngineKind.POSTGRES, good_params) == "16.2"
    assert session.is_connected()
    assert session.current_engine() == EngineKind.POSTGRES
    assert [d.name for d in session.list_databases()] == ["app_db", "test_db"]

    session.use_database("app_db")
    assert session.current_database() == "app_db"
    assert [t.name for t in session.list_tables()] == ["users", "orders"]
    assert [c.as_tuple() for c in session.describe_table("users").columns] == [
        ("id", "integer", False),
        ("email", "text", False),
    ]


def test_rejected_credentials_store_no_handle(session, fake_client):
    bad = ConnectionParams(host="db.local", port=5432, username="app", secret="wrong")
    with pytest.raises(ConnectError) as exc:
        session.connect(EngineKind.POSTGRES, bad)
    assert exc.value.kind == ConnectErrorKind.AUTH_REJECTED
    assert not session.is_connected()
    assert fake_client.opened == []


def test_reconnect_closes_previous_handle(session, fake_client, good_params):
    session.connect(EngineKind.POSTGRES, good_params)
    first = fake_client.opened[0]
    session.connect(EngineKind.POSTGRES, good_params)
    assert first.connection.closed
    assert len(fake_client.opened) == 2


def test_calls_without_connection_raise_not_connected(session):
    with pytest.raises(QueryError) as exc:
        session.list_tables()
    assert exc.value.kind == QueryErrorKind.NOT_CONNECTED


def test_disconnect_twice_is_harmless(session, fake_client, good_params):
    session.connect(EngineKind.POSTGRES, good_params)
    session.disconnect()
    session.disconnect()
    assert not session.is_connected()
    assert fake_client.opened[0].connection.closed


def test_connection_lost_drops_handle(session, fake_client, good_params):
    session.connect(EngineKind.POSTGRES, good_params)
    fake_client.query_errors["SELECT 1"] = QueryError(QueryErrorKind.CONNECTION_LOST, "server closed the connection")
    with pytest.raises(QueryError):
        session.execute_query("SELECT 1")
    assert not session.is_connected()


def test_ordinary_query_error_keeps_connection(session, fake_client, good_params):
    session.connect(EngineKind.POSTGRES, good_params)
    fake_client.query_errors["SELECT 1/0"] = QueryError(QueryErrorKind.OTHER, "division by zero")
    with pytest.raises(QueryError) as exc:
        session.execute_query("SELECT 1/0")
    assert exc.value.message == "division by zero"
    assert session.is_connected()


def test_unknown_database_keeps_current(session, good_params):
    session.connect(EngineKind.POSTGRES, good_params)
    session.use_database("app_db")
    with pytest.raises(QueryError):
        session.use_database("ghosts")
    assert session.current_database() == "app_db"


def test_events_are_recorded_without_secret(session, debug_log, good_params):
    session.connect(EngineKind.POSTGRES, good_params)
    session.execute_query("SELECT 1")
    kinds = [e.kind for e in debug_log.entries()]
    assert kinds == ["Connect", "Query"]
    assert all("secret" not in e.message for e in debug_log.entries())
    assert debug_log.entries()[1].duration is not None


def test_failures_are_recorded(session, debug_log):
    with pytest.raises(QueryError):
        session.describe_table("users")
    [event] = debug_log.entries()
    assert event.kind == "Error"
    assert event.message.startswith("describe users:")


def test_interrupt_reaches_client(session, fake_client, good_params):
    session.interrupt()
    assert not fake_client.interrupted.is_set()
    session.connect(EngineKind.POSTGRES, good_params)
    session.interrupt()
    assert fake_client.interrupted.is_set()


def test_debug_log_capacity():
    from dfox.logging import DebugLog

    log = DebugLog(capacity=3)
    for i in range(5):
        log.info(f"event {i}")
    assert [e.message for e in log.entries()] == ["event 2", "event 3", "event 4"]
    assert len(log) == 3
