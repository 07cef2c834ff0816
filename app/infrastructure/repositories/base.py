"""Base repository protocol and utilities.

This module defines the interface that all repositories must implement.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Protocol
import sqlite3


class ConnectionProtocol(Protocol):
    """Protocol for database connection."""

    def execute(self, sql: str, parameters: tuple = ...) -> sqlite3.Cursor: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


def utc_now() -> str:
    """Current UTC time in the text format SQLite's datetime() produces.

    Microseconds are kept so that rows created in quick succession still
    sort in creation order.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")


def utc_in(hours: float) -> str:
    """utc_now() shifted by `hours` (negative for the past)."""
    moment = datetime.now(timezone.utc) + timedelta(hours=hours)
    return moment.strftime("%Y-%m-%d %H:%M:%S.%f")


class Repository:
    """Base repository class.

    All repositories should inherit from this class.

    Example:
        class CourseRepository(Repository):
            def get_by_id(self, course_id: str) -> dict | None:
                cursor = self._execute("SELECT * FROM courses WHERE id = ?", (course_id,))
                return self._row_to_dict(cursor.fetchone())
    """

    def __init__(self, connection: ConnectionProtocol):
        """Initialize repository with database connection.

        Args:
            connection: Database connection (sqlite3.Connection or compatible)
        """
        self._conn = connection

    def _execute(self, sql: str, parameters: tuple = ()) -> sqlite3.Cursor:
        """Execute SQL query with parameters.

        Args:
            sql: SQL query string
            parameters: Query parameters (prevents SQL injection)

        Returns:
            sqlite3.Cursor with results
        """
        return self._conn.execute(sql, parameters)

    def _execute_many(self, sql: str, parameters_list: list[tuple]) -> sqlite3.Cursor:
        """Execute SQL query multiple times.

        Args:
            sql: SQL query string
            parameters_list: List of parameter tuples

        Returns:
            sqlite3.Cursor
        """
        return self._conn.executemany(sql, parameters_list)

    def _commit(self) -> None:
        """Commit current transaction."""
        self._conn.commit()

    def _rollback(self) -> None:
        """Discard the current transaction."""
        self._conn.rollback()

    def _row_to_dict(self, row: sqlite3.Row | None) -> dict | None:
        """Convert sqlite3.Row to dictionary.

        Args:
            row: Database row or None

        Returns:
            Dictionary representation or None
        """
        return dict(row) if row else None

    def _fetchone(self, sql: str, parameters: tuple = ()) -> dict | None:
        """Fetch single row and return as dict."""
        return self._row_to_dict(self._execute(sql, parameters).fetchone())

    def _fetchall(self, sql: str, parameters: tuple = ()) -> list[dict]:
        """Fetch all rows and return as list of dicts."""
        return [dict(row) for row in self._execute(sql, parameters).fetchall()]

    def _count(self, sql: str, parameters: tuple = ()) -> int:
        """Run a ``SELECT COUNT(*) AS count ...`` query."""
        row = self._execute(sql, parameters).fetchone()
        return row["count"] if row else 0

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now() -> str:
        return utc_now()
