import sqlite3
from pathlib import Path

from statcast_leaderboards.db.connection import create_connection, create_event_table, load_events
from statcast_leaderboards.domain.event import EVENT_COLUMNS, EVENT_TABLE


class TestCreateConnection:
    def test_returns_connection(self, tmp_path: Path) -> None:
        conn = create_connection(tmp_path / "events.db")
        assert isinstance(conn, sqlite3.Connection)
        conn.close()

    def test_enables_wal_mode(self, tmp_path: Path) -> None:
        conn = create_connection(tmp_path / "events.db")
        result = conn.execute("PRAGMA journal_mode").fetchone()
        assert result is not None
        assert result[0] == "wal"
        conn.close()

    def test_creates_event_table(self) -> None:
        conn = create_connection()
        columns = [row["name"] for row in conn.execute(f"PRAGMA table_info({EVENT_TABLE})")]
        assert columns == list(EVENT_COLUMNS)
        conn.close()

    def test_create_event_table_is_idempotent(self) -> None:
        conn = create_connection()
        create_event_table(conn)
        create_event_table(conn, "shadow")
        tables = {row["name"] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        assert tables == {EVENT_TABLE, "shadow"}
        conn.close()


class TestLoadEvents:
    def test_inserts_and_coerces(self) -> None:
        conn = create_connection()
        count = load_events(
            conn,
            [
                {"pitcher": "123", "pitch_type": "FF", "release_speed": "95.5", "unknown_column": 1},
                {"pitcher": 124.0, "pitch_type": "SL", "release_speed": float("nan")},
            ],
        )
        assert count == 2
        rows = conn.execute(f"SELECT pitcher, pitch_type, release_speed FROM {EVENT_TABLE} ORDER BY pitcher").fetchall()
        assert [tuple(r) for r in rows] == [(123, "FF", 95.5), (124, "SL", None)]
        conn.close()

    def test_empty_input(self) -> None:
        conn = create_connection()
        assert load_events(conn, []) == 0
        conn.close()
