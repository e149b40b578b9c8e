from __future__ import annotations

import logging
import sqlite3
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class QueryExecutionError(Exception):
    """The query execution facility rejected or failed a query."""


class QueryExecutor(Protocol):
    def run_query(self, query_text: str) -> list[dict[str, Any]]: ...


class SqliteQueryExecutor:
    """Runs parameter-free query text against a local SQLite database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def run_query(self, query_text: str) -> list[dict[str, Any]]:
        logger.debug("Running query: %s", query_text)
        try:
            cursor = self._conn.execute(query_text)
        except sqlite3.Error as exc:
            raise QueryExecutionError(str(exc)) from exc
        columns = [d[0] for d in cursor.description or ()]
        return [dict(zip(columns, row, strict=True)) for row in cursor.fetchall()]
