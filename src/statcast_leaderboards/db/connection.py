import sqlite3
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from statcast_leaderboards.domain.event import EVENT_COLUMNS, EVENT_TABLE


def create_connection(path: str | Path = ":memory:", *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open a SQLite connection with the event table created if it does not exist."""
    conn = sqlite3.connect(str(path), check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    if str(path) != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    create_event_table(conn)
    return conn


def create_event_table(conn: sqlite3.Connection, table: str = EVENT_TABLE) -> None:
    columns = ", ".join(f"{name} {column_type.value}" for name, column_type in EVENT_COLUMNS.items())
    conn.execute(f"CREATE TABLE IF NOT EXISTS {table} ({columns})")
    conn.commit()


def load_events(conn: sqlite3.Connection, rows: Iterable[Mapping[str, Any]], table: str = EVENT_TABLE) -> int:
    """Insert event rows, keeping only schema columns and coercing values to their column type."""
    names = list(EVENT_COLUMNS)
    placeholders = ", ".join("?" for _ in names)
    params = [tuple(EVENT_COLUMNS[n].coerce(row.get(n)) for n in names) for row in rows]
    conn.executemany(f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})", params)
    conn.commit()
    return len(params)
