from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from xlsx_importer.db.store import RecordStore

from .events import Event, EventBus, Verdict

"""Coalescence: decide whether a row updates an existing record or creates one.

The coalescing fields present in the row form a conjunctive equality query.
Each candidate, in store order, is offered to the onCoalesce handler; the first
one not rejected (handler returned False) is the match. No coalescing field,
no usable value, or no accepted candidate means "create".
"""

__all__ = [
    "CoalescenceResolver",
]

logger = logging.getLogger(__name__)


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


class CoalescenceResolver:
    def __init__(
        self,
        table: str,
        coalescing: Sequence[str],
        store: RecordStore,
        events: EventBus | None = None,
    ) -> None:
        self.table = table
        self.coalescing = tuple(coalescing)
        self._store = store
        self._events = events or EventBus()

    def conditions(self, row: Mapping[str, Any]) -> dict[str, Any]:
        conditions: dict[str, Any] = {}
        for field in self.coalescing:
            if field not in row or not _has_value(row[field]):
                logger.warning(
                    "Skipping coalescing field: '%s', no value in the row for table '%s'",
                    field,
                    self.table,
                )
                continue
            conditions[field] = row[field]
        return conditions

    def resolve(self, row: Mapping[str, Any]) -> Any | None:
        """Return the identifier of the matching record, or None to create."""
        if not self.coalescing:
            return None
        conditions = self.conditions(row)
        if not conditions:
            # 条件ゼロ件で全件一致させない -> 新規作成扱い
            logger.debug("no coalescing value available, forcing create on '%s'", self.table)
            return None
        for candidate in self._store.query(self.table, conditions):
            dispatch = self._events.dispatch(Event.ON_COALESCE, sys_id=candidate)
            if dispatch.verdict is Verdict.ERROR and dispatch.error is not None:
                raise dispatch.error
            if dispatch.verdict is Verdict.SKIP:
                logger.debug("candidate %s rejected by onCoalesce", candidate)
                continue
            return candidate
        return None
