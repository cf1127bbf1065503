"""
Shared plumbing for the Snowflake repositories.

Most of what the app reads comes from pre-built views in the warehouse
(one view per page), so reading is almost always the same shape:
`SELECT * FROM <view> WHERE ... ORDER BY ... LIMIT ...`. `ViewQuery`
renders exactly that shape, and `SnowflakeRepository` runs it and hands
back rows as dicts keyed by lower-case column name.

The mock connection (see client.py) understands the same narrow SQL
dialect, so every repository works unchanged against it.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional, Protocol
from uuid import UUID

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_OPERATORS = ("=", "!=", ">", ">=", "<", "<=")


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    database: str = "FITCOACH"
    schema: str = "COACHING"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class DataQueryError(Exception):
    """Raised when a query against the warehouse fails."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class RecordNotFoundError(Exception):
    """Raised when a row that must exist doesn't."""
    pass


def _identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def to_param(value: Any) -> Any:
    """Convert a Python value to something the connector can bind."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass
class ViewQuery:
    """
    Builder for single-source SELECT statements.

    Usage:
        sql, params = (
            ViewQuery("session_history_view")
            .where("user_id", user_id)
            .order_by("seance_date", descending=True)
            .limit(50)
            .render()
        )
    """
    source: str
    filters: list[tuple[str, str, Any]] = field(default_factory=list)
    ordering: Optional[tuple[str, bool]] = None
    max_rows: Optional[int] = None

    def where(self, column: str, value: Any, op: str = "=") -> "ViewQuery":
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op}")
        self.filters.append((_identifier(column), op, value))
        return self

    def order_by(self, column: str, descending: bool = False) -> "ViewQuery":
        self.ordering = (_identifier(column), descending)
        return self

    def limit(self, rows: int) -> "ViewQuery":
        if rows < 1:
            raise ValueError("Limit must be positive")
        self.max_rows = rows
        return self

    def render(self) -> tuple[str, tuple]:
        sql = f"SELECT * FROM {_identifier(self.source)}"
        params: list[Any] = []

        if self.filters:
            conditions = []
            for column, op, value in self.filters:
                conditions.append(f"{column} {op} %s")
                params.append(to_param(value))
            sql += " WHERE " + " AND ".join(conditions)

        if self.ordering:
            column, descending = self.ordering
            sql += f" ORDER BY {column} {'DESC' if descending else 'ASC'}"

        if self.max_rows is not None:
            sql += " LIMIT %s"
            params.append(self.max_rows)

        return sql, tuple(params)


def rows_as_dicts(cursor) -> list[dict[str, Any]]:
    """Pair fetched rows with column names from `cursor.description`."""
    columns = [column[0].lower() for column in (cursor.description or [])]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def as_uuid(value: Any) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    return UUID(str(value))


def as_datetime(value: Any) -> Optional[datetime]:
    """Coerce a column to an aware datetime. Values without an offset are UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class SnowflakeRepository:
    """
    Base class for repositories.

    Subclasses describe what they read and write in domain terms; this
    class owns cursors, commits and error translation.
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def _select(self, query: ViewQuery) -> list[dict[str, Any]]:
        sql, params = query.render()
        cursor = self._conn.cursor()

        try:
            cursor.execute(sql, params)
            return rows_as_dicts(cursor)
        except Exception as e:
            logger.error(
                "Query failed",
                extra={"source": query.source, "error": str(e)}
            )
            raise DataQueryError(query.source, str(e)) from e
        finally:
            cursor.close()

    def _select_one(self, query: ViewQuery) -> Optional[dict[str, Any]]:
        rows = self._select(query.limit(1))
        return rows[0] if rows else None

    def _execute(self, table: str, sql: str, params: tuple) -> int:
        cursor = self._conn.cursor()

        try:
            cursor.execute(sql, params)
            self._conn.commit()
            return cursor.rowcount
        except Exception as e:
            logger.error(
                "Write failed",
                extra={"table": table, "error": str(e)}
            )
            raise DataQueryError(table, str(e)) from e
        finally:
            cursor.close()

    def _insert(self, table: str, values: dict[str, Any]) -> int:
        columns = [_identifier(column) for column in values]
        sql = (
            f"INSERT INTO {_identifier(table)} ({', '.join(columns)}) "
            f"VALUES ({', '.join(['%s'] * len(columns))})"
        )
        return self._execute(table, sql, tuple(to_param(v) for v in values.values()))

    def _update(self, table: str, values: dict[str, Any], where: dict[str, Any]) -> int:
        assignments = ", ".join(f"{_identifier(column)} = %s" for column in values)
        conditions = " AND ".join(f"{_identifier(column)} = %s" for column in where)
        sql = f"UPDATE {_identifier(table)} SET {assignments} WHERE {conditions}"
        params = tuple(to_param(v) for v in [*values.values(), *where.values()])
        return self._execute(table, sql, params)

    def _delete(self, table: str, where: dict[str, Any]) -> int:
        conditions = " AND ".join(f"{_identifier(column)} = %s" for column in where)
        sql = f"DELETE FROM {_identifier(table)} WHERE {conditions}"
        return self._execute(table, sql, tuple(to_param(v) for v in where.values()))
