"""SQLite-backed structured store.

Stands in for the hosted relational store: generic select / insert / update /
upsert / delete against named tables, no joins. Every committed write is
reported to an optional change listener, which is how the realtime hub learns
about row changes.
"""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..logging_config import get_logger
from ..models import ChangeEvent, ChangeType

logger = get_logger(__name__)


ChangeListener = Callable[[ChangeEvent], Awaitable[None]]


class IStore(Protocol):
    """Remote-table client: filter / order / limit queries, no joins."""

    async def init(self) -> None:
        """Open the connection and create tables."""
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...

    def set_change_listener(self, listener: ChangeListener | None) -> None:
        """Receive a ChangeEvent after every committed write."""
        ...

    async def select(
        self,
        table: str,
        *,
        eq: dict[str, Any] | None = None,
        in_: dict[str, Iterable[Any]] | None = None,
        or_eq: dict[str, Any] | None = None,
        ilike: dict[str, str] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        """Select rows. `or_eq` and `ilike` are each OR-ed internally."""
        ...

    async def insert(self, table: str, row: dict) -> dict:
        """Insert a row, filling `id` and `created_at` when absent."""
        ...

    async def update(self, table: str, values: dict, *, eq: dict[str, Any]) -> list[dict]:
        """Update matching rows and return them as updated."""
        ...

    async def upsert(self, table: str, row: dict, *, on_conflict: tuple[str, ...]) -> dict:
        """Insert or update on the given unique columns."""
        ...

    async def delete(self, table: str, *, eq: dict[str, Any]) -> list[dict]:
        """Delete matching rows and return them."""
        ...

    async def clear(self) -> None:
        """Delete every row of every table."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._columns: dict[str, set[str]] = {}
        self._listener: ChangeListener | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

        # Table and column names are interpolated into SQL, so only names
        # known to the schema are accepted.
        cursor = await self._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        )
        for (table,) in await cursor.fetchall():
            info = await self._conn.execute(f'PRAGMA table_info("{table}")')
            self._columns[table] = {row[1] for row in await info.fetchall()}

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def set_change_listener(self, listener: ChangeListener | None) -> None:
        self._listener = listener

    @property
    def tables(self) -> list[str]:
        return sorted(self._columns)

    # Queries
    async def select(
        self,
        table: str,
        *,
        eq: dict[str, Any] | None = None,
        in_: dict[str, Iterable[Any]] | None = None,
        or_eq: dict[str, Any] | None = None,
        ilike: dict[str, str] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        """Select rows with optional filters, ordering and limit."""
        conn = self._require_conn()
        self._check_columns(table, eq, in_, or_eq, ilike)

        conditions, params = self._where(eq)

        for column, values in (in_ or {}).items():
            values = list(values)
            if not values:
                # `IN ()` matches nothing
                return []
            placeholders = ",".join("?" * len(values))
            conditions.append(f"{column} IN ({placeholders})")
            params.extend(values)

        if or_eq:
            conditions.append(
                "(" + " OR ".join(f"{column} = ?" for column in or_eq) + ")"
            )
            params.extend(or_eq.values())

        if ilike:
            conditions.append(
                "(" + " OR ".join(f"lower({column}) LIKE lower(?)" for column in ilike) + ")"
            )
            params.extend(ilike.values())

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        order_clause = ""
        if order_by:
            self._check_columns(table, {order_by: None})
            # rowid keeps insertion order for equal sort keys
            direction = "DESC" if descending else "ASC"
            order_clause = f"ORDER BY {order_by} {direction}, rowid {direction}"

        query = f'SELECT * FROM "{table}" {where_clause} {order_clause}'
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    # Writes
    async def insert(self, table: str, row: dict) -> dict:
        """Insert a row, filling `id` and `created_at` when absent."""
        conn = self._require_conn()
        row = self._with_defaults(table, row)
        self._check_columns(table, row)

        columns = ", ".join(row)
        placeholders = ", ".join("?" * len(row))
        await conn.execute(
            f'INSERT INTO "{table}" ({columns}) VALUES ({placeholders})',
            list(row.values()),
        )
        await conn.commit()

        stored = await self._fetch_by_id(table, row["id"])
        await self._emit(table, ChangeType.INSERT, new=stored, old={})
        return stored

    async def update(self, table: str, values: dict, *, eq: dict[str, Any]) -> list[dict]:
        """Update matching rows and return them as updated."""
        conn = self._require_conn()
        if not eq:
            raise ValueError("update() requires at least one filter")
        self._check_columns(table, values, eq)

        before = await self.select(table, eq=eq)
        if not before:
            return []

        assignments = ", ".join(f"{column} = ?" for column in values)
        conditions, params = self._where(eq)
        where_sql = " AND ".join(conditions)
        await conn.execute(
            f'UPDATE "{table}" SET {assignments} WHERE {where_sql}',
            list(values.values()) + params,
        )
        await conn.commit()

        updated = []
        for old in before:
            new = await self._fetch_by_id(table, old["id"])
            updated.append(new)
            await self._emit(table, ChangeType.UPDATE, new=new, old=old)
        return updated

    async def upsert(self, table: str, row: dict, *, on_conflict: tuple[str, ...]) -> dict:
        """Insert, or update the row matching the `on_conflict` columns."""
        key = {column: row[column] for column in on_conflict}
        existing = await self.select(table, eq=key, limit=1)
        if not existing:
            return await self.insert(table, row)

        values = {k: v for k, v in row.items() if k not in on_conflict and k != "id"}
        if not values:
            return existing[0]
        updated = await self.update(table, values, eq={"id": existing[0]["id"]})
        return updated[0]

    async def delete(self, table: str, *, eq: dict[str, Any]) -> list[dict]:
        """Delete matching rows and return them."""
        conn = self._require_conn()
        if not eq:
            raise ValueError("delete() requires at least one filter")
        self._check_columns(table, eq)

        removed = await self.select(table, eq=eq)
        if not removed:
            return []

        conditions, params = self._where(eq)
        where_sql = " AND ".join(conditions)
        await conn.execute(f'DELETE FROM "{table}" WHERE {where_sql}', params)
        await conn.commit()

        for old in removed:
            await self._emit(table, ChangeType.DELETE, new={}, old=old)
        return removed

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()
        for table in self._columns:
            await conn.execute(f'DELETE FROM "{table}"')
        await conn.commit()

    # Helpers
    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    def _check_columns(self, table: str, *column_maps: dict | None) -> None:
        known = self._columns.get(table)
        if known is None:
            raise ValueError(f"Unknown table: {table}")
        for columns in column_maps:
            unknown = set(columns or {}) - known
            if unknown:
                raise ValueError(f"Unknown columns for {table}: {sorted(unknown)}")

    def _with_defaults(self, table: str, row: dict) -> dict:
        row = dict(row)
        if not row.get("id"):
            row["id"] = str(uuid.uuid4())
        if "created_at" in self._columns.get(table, ()) and not row.get("created_at"):
            row["created_at"] = datetime.now(timezone.utc).isoformat()
        return row

    @staticmethod
    def _where(eq: dict[str, Any] | None) -> tuple[list[str], list[Any]]:
        conditions = []
        params: list[Any] = []
        for column, value in (eq or {}).items():
            if value is None:
                conditions.append(f"{column} IS NULL")
            else:
                conditions.append(f"{column} = ?")
                params.append(value)
        return conditions, params

    async def _fetch_by_id(self, table: str, row_id: str) -> dict:
        rows = await self.select(table, eq={"id": row_id}, limit=1)
        return rows[0]

    async def _emit(self, table: str, event_type: ChangeType, new: dict, old: dict) -> None:
        if self._listener is None:
            return
        event = ChangeEvent(
            table=table,
            event_type=event_type,
            new=new,
            old=old,
            timestamp=datetime.now(timezone.utc),
        )
        logger.debug("Row change %s on %s", event_type.value, table)
        await self._listener(event)
