from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import psycopg2
from psycopg2 import sql

"""Record store collaborators.

``RecordStore`` is the contract the row pipeline depends on: field/label
introspection for configuration, equality queries for coalescence and
create/update for persistence. ``PostgresRecordStore`` implements it on a
psycopg2 cursor; every statement is a single round trip so the caller decides
the transaction policy (the CLI runs in autocommit, one row = one unit of work).
"""

__all__ = [
    "RecordStore",
    "RecordStoreError",
    "PostgresRecordStore",
    "SYSTEM_FIELD_PREFIX",
    "is_valid_identifier",
]

logger = logging.getLogger(__name__)

SYSTEM_FIELD_PREFIX = "sys_"


class RecordStoreError(Exception):
    """Raised when the underlying store rejects a query or write."""


class RecordStore(Protocol):
    def fields_of(self, table: str) -> list[str]:
        """Non-system field names of ``table``."""
        ...

    def label_of(self, table: str, field: str) -> str:
        """Display label of ``field``."""
        ...

    def query(self, table: str, conditions: Mapping[str, Any]) -> Sequence[Any]:
        """Identifiers of records whose fields equal every condition (AND)."""
        ...

    def create(self, table: str, values: Mapping[str, Any]) -> Any:
        ...

    def update(self, table: str, record_id: Any, values: Mapping[str, Any]) -> Any:
        ...


def is_valid_identifier(name: str) -> bool:
    """Basic validation for table/column names (alphanumeric and underscores only)."""
    return bool(name) and name.replace("_", "").isalnum()


class PostgresRecordStore:
    """RecordStore backed by a PostgreSQL table through a psycopg2 cursor.

    Parameters
    ----------
    cursor: psycopg2 cursor (autocommit connection recommended)
    id_column: primary key column, returned as the record identifier
    schema: schema used for column introspection
    """

    def __init__(self, cursor: Any, id_column: str = "id", schema: str = "public") -> None:
        if not is_valid_identifier(id_column):
            raise ValueError(f"invalid id column name: {id_column!r}")
        self._cursor = cursor
        self._id_column = id_column
        self._schema = schema
        self._labels: dict[str, dict[str, str]] = {}

    def _describe(self, table: str) -> dict[str, str]:
        """Column name -> label (column comment, falling back to the name)."""
        if table in self._labels:
            return self._labels[table]
        if not is_valid_identifier(table):
            raise RecordStoreError(f"invalid table name: {table!r}")
        try:
            self._cursor.execute(
                "SELECT c.column_name, col_description(to_regclass(%s)::oid, c.ordinal_position) "
                "FROM information_schema.columns c "
                "WHERE c.table_schema = %s AND c.table_name = %s "
                "ORDER BY c.ordinal_position",
                (f"{self._schema}.{table}", self._schema, table),
            )
            rows = self._cursor.fetchall()
        except psycopg2.Error as e:
            raise RecordStoreError(f"failed to describe table '{table}': {e}") from e
        if not rows:
            raise RecordStoreError(f"no table with name '{table}' in schema '{self._schema}'")
        columns: dict[str, str] = {}
        for name, comment in rows:
            if name == self._id_column or name.startswith(SYSTEM_FIELD_PREFIX):
                continue
            columns[name] = comment or name
        logger.debug("table=%s fields=%s", table, list(columns))
        self._labels[table] = columns
        return columns

    def fields_of(self, table: str) -> list[str]:
        return list(self._describe(table))

    def label_of(self, table: str, field: str) -> str:
        return self._describe(table).get(field, field)

    def query(self, table: str, conditions: Mapping[str, Any]) -> list[Any]:
        where = sql.SQL(" AND ").join(
            sql.SQL("{} = %s").format(sql.Identifier(col)) for col in conditions
        )
        stmt = sql.SQL("SELECT {id} FROM {table} WHERE {where} ORDER BY {id}").format(
            id=sql.Identifier(self._id_column),
            table=sql.Identifier(table),
            where=where,
        )
        try:
            self._cursor.execute(stmt, list(conditions.values()))
            return [r[0] for r in self._cursor.fetchall()]
        except psycopg2.Error as e:
            raise RecordStoreError(f"query on '{table}' failed: {e}") from e

    def create(self, table: str, values: Mapping[str, Any]) -> Any:
        if values:
            stmt = sql.SQL("INSERT INTO {table} ({cols}) VALUES ({vals}) RETURNING {id}").format(
                table=sql.Identifier(table),
                cols=sql.SQL(",").join(sql.Identifier(c) for c in values),
                vals=sql.SQL(",").join(sql.Placeholder() for _ in values),
                id=sql.Identifier(self._id_column),
            )
        else:
            # 値なし行: 既定値だけでレコード作成
            stmt = sql.SQL("INSERT INTO {table} DEFAULT VALUES RETURNING {id}").format(
                table=sql.Identifier(table),
                id=sql.Identifier(self._id_column),
            )
        return self._execute_returning(stmt, list(values.values()), f"insert into '{table}'")

    def update(self, table: str, record_id: Any, values: Mapping[str, Any]) -> Any:
        if not values:
            return record_id
        stmt = sql.SQL("UPDATE {table} SET {assignments} WHERE {id} = %s RETURNING {id}").format(
            table=sql.Identifier(table),
            assignments=sql.SQL(",").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in values
            ),
            id=sql.Identifier(self._id_column),
        )
        return self._execute_returning(
            stmt, [*values.values(), record_id], f"update of '{table}' id={record_id}"
        )

    def _execute_returning(self, stmt: Any, params: list[Any], action: str) -> Any:
        try:
            self._cursor.execute(stmt, params)
            row = self._cursor.fetchone()
        except psycopg2.Error as e:
            raise RecordStoreError(f"{action} failed: {e}") from e
        if row is None:
            raise RecordStoreError(f"{action} returned no identifier")
        return row[0]
