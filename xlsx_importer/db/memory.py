from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .store import SYSTEM_FIELD_PREFIX, RecordStoreError

"""In-memory RecordStore for dry runs and tests.

Records are kept per table in insertion order; identifiers are 32 char hex
strings like a sys_id.
"""

__all__ = [
    "InMemoryRecordStore",
    "WriteCall",
]


@dataclass(frozen=True)
class WriteCall:
    action: str  # create / update
    table: str
    record_id: str
    values: dict[str, Any]


@dataclass
class InMemoryRecordStore:
    """Dictionary backed store.

    ``tables`` maps table name -> {field name: label}. Fields starting with
    ``sys_`` are treated as system fields and hidden from ``fields_of``.
    """
    tables: dict[str, dict[str, str]]
    records: dict[str, dict[str, dict[str, Any]]] = field(default_factory=dict)
    writes: list[WriteCall] = field(default_factory=list)

    def _table(self, table: str) -> dict[str, str]:
        try:
            return self.tables[table]
        except KeyError:
            raise RecordStoreError(f"no table with name '{table}'") from None

    def fields_of(self, table: str) -> list[str]:
        return [f for f in self._table(table) if not f.startswith(SYSTEM_FIELD_PREFIX)]

    def label_of(self, table: str, field: str) -> str:
        return self._table(table).get(field, field)

    def query(self, table: str, conditions: Mapping[str, Any]) -> list[str]:
        self._table(table)
        return [
            record_id
            for record_id, values in self.records.get(table, {}).items()
            if all(values.get(k) == v for k, v in conditions.items())
        ]

    def insert(self, table: str, values: Mapping[str, Any]) -> str:
        """Seed a record without recording a write (test setup helper)."""
        record_id = uuid.uuid4().hex
        self.records.setdefault(table, {})[record_id] = dict(values)
        return record_id

    def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        return self.records.get(table, {}).get(record_id)

    def create(self, table: str, values: Mapping[str, Any]) -> str:
        self._table(table)
        record_id = self.insert(table, values)
        self.writes.append(WriteCall("create", table, record_id, dict(values)))
        return record_id

    def update(self, table: str, record_id: Any, values: Mapping[str, Any]) -> str:
        stored = self.records.get(table, {}).get(record_id)
        if stored is None:
            raise RecordStoreError(f"no record '{record_id}' in table '{table}'")
        stored.update(values)
        self.writes.append(WriteCall("update", table, record_id, dict(values)))
        return record_id
