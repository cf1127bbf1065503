"""
Snowflake database connection management.

Provides connection factory and context manager for Snowflake operations.
Includes mock mode with in-memory storage for local development.

Using the repository pattern means most code never touches this module
directly - it goes through the repositories, which translate between
domain models and rows.
"""

import logging
import re
import threading
from contextlib import contextmanager
from typing import Any, Generator, Optional

from .repositories.base import SnowflakeConfig, SnowflakeConnection, to_param

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(key_path: str) -> bytes:
    """
    Load private key from file for key-pair authentication.

    Snowflake requires the private key as DER-encoded PKCS8 bytes,
    not a file path.
    """
    from cryptography.hazmat.primitives import serialization

    with open(key_path, "rb") as key_file:
        private_key = serialization.load_pem_private_key(
            key_file.read(),
            password=None,
        )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If private_key_path is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    import snowflake.connector

    conn = None
    try:
        connect_params = {
            "account": config.account,
            "user": config.user,
            "database": config.database,
            "schema": config.schema,
            "warehouse": config.warehouse,
            "role": config.role,
            "client_session_keep_alive": True,
        }

        if config.private_key_path:
            logger.info("Using key-pair authentication for Snowflake")
            connect_params["private_key"] = _load_private_key(config.private_key_path)
        elif config.password:
            logger.info("Using password authentication for Snowflake")
            connect_params["password"] = config.password
        else:
            raise SnowflakeConnectionError(
                "Either password or private_key_path must be provided"
            )

        conn = snowflake.connector.connect(**connect_params)

        logger.debug(
            "Established Snowflake connection",
            extra={
                "account": config.account,
                "database": config.database,
                "schema": config.schema,
            }
        )

    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

_SELECT = re.compile(
    r"^SELECT \* FROM (?P<table>\w+)"
    r"(?: WHERE (?P<where>.+?))?"
    r"(?: ORDER BY (?P<order>\w+) (?P<direction>ASC|DESC))?"
    r"(?P<limit> LIMIT %s)?$",
    re.IGNORECASE,
)
_INSERT = re.compile(
    r"^INSERT INTO (?P<table>\w+) \((?P<columns>[\w, ]+)\) VALUES \([%s, ]+\)$",
    re.IGNORECASE,
)
_UPDATE = re.compile(
    r"^UPDATE (?P<table>\w+) SET (?P<assignments>.+?) WHERE (?P<where>.+)$",
    re.IGNORECASE,
)
_DELETE = re.compile(
    r"^DELETE FROM (?P<table>\w+) WHERE (?P<where>.+)$",
    re.IGNORECASE,
)
_CONDITION = re.compile(r"^(?P<column>\w+) (?P<op>=|!=|>=|<=|>|<) %s$")

_COMPARE = {
    "=": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
}


def _parse_conditions(where: Optional[str]) -> list[tuple[str, str]]:
    if not where:
        return []
    conditions = []
    for part in re.split(r" AND ", where.strip(), flags=re.IGNORECASE):
        match = _CONDITION.match(part.strip())
        if not match:
            raise ValueError(f"Mock cursor cannot parse condition: {part}")
        conditions.append((match["column"].lower(), match["op"]))
    return conditions


def _matches(row: dict, conditions: list[tuple[str, str]], values: tuple) -> bool:
    for (column, op), value in zip(conditions, values):
        current = row.get(column)
        if op not in ("=", "!=") and (current is None or value is None):
            return False
        if not _COMPARE[op](current, value):
            return False
    return True


class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface for the repositories:
    the single-table SELECT / INSERT / UPDATE / DELETE statements they
    render, plus `SELECT 1` for readiness checks and DDL as a no-op.

    Rows live in the connection's storage as plain dicts keyed by
    lower-case column name.
    """

    def __init__(self, storage: dict[str, list[dict]], lock: threading.Lock) -> None:
        self._storage = storage
        self._lock = lock
        self._results: list[tuple] = []
        self._rowcount: int = 0
        self.description: Optional[list[tuple]] = None

    def execute(self, query: str, params: Optional[tuple] = None) -> "MockSnowflakeCursor":
        """
        Execute a query against mock storage.

        Statements are matched against the fixed shapes the repositories
        emit. Anything else raises, like a syntax error would.
        """
        logger.debug(
            "Mock cursor execute",
            extra={"query": query[:100]}
        )

        statement = " ".join(query.split())
        params = tuple(params or ())
        self._results = []
        self._rowcount = 0
        self.description = None

        with self._lock:
            if statement.upper() == "SELECT 1":
                self.description = [("1",)]
                self._results = [(1,)]
            elif statement.upper().startswith("CREATE "):
                pass
            else:
                self._dispatch(statement, params)

        return self

    def _dispatch(self, statement: str, params: tuple) -> None:
        handlers = (
            (_SELECT, self._handle_select),
            (_INSERT, self._handle_insert),
            (_UPDATE, self._handle_update),
            (_DELETE, self._handle_delete),
        )
        for pattern, handler in handlers:
            match = pattern.match(statement)
            if match:
                handler(match, params)
                return
        raise ValueError(f"Mock cursor cannot execute: {statement[:80]}")

    def _table(self, name: str) -> list[dict]:
        return self._storage.setdefault(name.lower(), [])

    def _handle_select(self, match: re.Match, params: tuple) -> None:
        conditions = _parse_conditions(match["where"])
        rows = [
            row for row in self._table(match["table"])
            if _matches(row, conditions, params[:len(conditions)])
        ]

        if match["order"]:
            column = match["order"].lower()
            present = [row for row in rows if row.get(column) is not None]
            missing = [row for row in rows if row.get(column) is None]
            present.sort(
                key=lambda row: row[column],
                reverse=match["direction"].upper() == "DESC",
            )
            rows = present + missing

        if match["limit"]:
            rows = rows[:params[-1]]

        columns: list[str] = []
        for row in rows:
            columns.extend(column for column in row if column not in columns)

        self.description = [(column.upper(),) for column in columns]
        self._results = [tuple(row.get(column) for column in columns) for row in rows]

    def _handle_insert(self, match: re.Match, params: tuple) -> None:
        columns = [column.strip().lower() for column in match["columns"].split(",")]
        if len(columns) != len(params):
            raise ValueError("Column count does not match parameter count")
        self._table(match["table"]).append(dict(zip(columns, params)))
        self._rowcount = 1

    def _handle_update(self, match: re.Match, params: tuple) -> None:
        assignments = [
            part.split("=")[0].strip().lower()
            for part in match["assignments"].split(",")
        ]
        conditions = _parse_conditions(match["where"])
        values, filters = params[:len(assignments)], params[len(assignments):]

        for row in self._table(match["table"]):
            if _matches(row, conditions, filters):
                row.update(zip(assignments, values))
                self._rowcount += 1

    def _handle_delete(self, match: re.Match, params: tuple) -> None:
        conditions = _parse_conditions(match["where"])
        table = self._table(match["table"])
        keep = [row for row in table if not _matches(row, conditions, params)]
        self._rowcount = len(table) - len(keep)
        table[:] = keep

    def fetchone(self) -> Optional[tuple]:
        """Fetch one row from results."""
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list[tuple]:
        """Fetch all rows from results."""
        return list(self._results)

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass

    @property
    def rowcount(self) -> int:
        """Return number of rows affected."""
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores data in memory as `{table_or_view_name: [row_dict, ...]}`.
    Pre-built warehouse views are just tables here: seed them with the
    rows the real view would return.

    Not suitable for production, but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        self._storage: dict[str, list[dict]] = {}
        self._lock = threading.Lock()

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        """Create a mock cursor."""
        return MockSnowflakeCursor(self._storage, self._lock)

    def commit(self) -> None:
        """Commit transaction (no-op for mock, always auto-commits)."""
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        """Rollback transaction (no-op for mock)."""
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        """Close connection (no-op for mock)."""
        logger.debug("Mock connection close")

    # Helper methods for testing
    def _seed(self, table: str, *rows: dict[str, Any]) -> None:
        """Add rows to mock storage (for test setup)."""
        with self._lock:
            self._storage.setdefault(table.lower(), []).extend(
                {key.lower(): to_param(value) for key, value in row.items()} for row in rows
            )

    def _rows(self, table: str) -> list[dict[str, Any]]:
        """Get a table's rows from mock storage (for test assertions)."""
        with self._lock:
            return [dict(row) for row in self._storage.get(table.lower(), [])]

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        with self._lock:
            self._storage.clear()


@contextmanager
def get_mock_snowflake_connection() -> Generator[MockSnowflakeConnection, None, None]:
    """
    Provide mock Snowflake connection for local development.

    Returns a connection that stores data in memory.
    """
    conn = MockSnowflakeConnection()
    try:
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, return mock connection for testing

    Yields:
        SnowflakeConnection implementation (real or mock)
    """
    if mock_mode:
        with get_mock_snowflake_connection() as conn:
            yield conn
    else:
        if config is None:
            raise ValueError("config is required when not in mock mode")

        with get_snowflake_connection(config) as conn:
            yield conn
