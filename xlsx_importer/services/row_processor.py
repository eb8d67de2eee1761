from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from xlsx_importer.config.builder import ImportPlan
from xlsx_importer.db.store import RecordStore
from xlsx_importer.excel.normalize import normalize_row_headers
from xlsx_importer.models.results import RowCode, RowOutcome

from .coalescence import CoalescenceResolver
from .events import Event, EventBus, Verdict
from .mapping import ignore_headers, is_empty_row, map_to_fields
from .transforms import apply_transforms
from .validation import apply_validations

"""Per-row pipeline.

read -> onRowRead -> ignore+map -> [onRowValidating -> validate -> onRowValidated]
-> transform -> onRowTransformed -> [persist -> onRowImported] -> success

Bracketed stages are skipped in sloppy / virtual mode respectively. Every stage
may end the row; ``process`` always returns a RowOutcome and never raises.
"""

__all__ = [
    "RowProcessor",
]

logger = logging.getLogger(__name__)


class RowProcessor:
    """Run one raw row through the pipeline described by an ImportPlan."""

    def __init__(self, plan: ImportPlan, store: RecordStore, events: EventBus | None = None) -> None:
        self.plan = plan
        self._store = store
        self._events = events or EventBus(plan.handlers)
        self._resolver = CoalescenceResolver(plan.table, plan.coalescing, store, self._events)
        self._reported_headers: set[str] = set()

    def _trace(self, message: str, *args: Any) -> None:
        logger.log(logging.INFO if self.plan.debug else logging.DEBUG, message, *args)

    def process(self, raw_row: Mapping[Any, Any], index: int) -> RowOutcome:
        try:
            return self._process(raw_row, index)
        except Exception as e:  # 行単位で打ち切り、インポート自体は継続
            logger.warning("row=%d unexpected error: %s: %s", index, type(e).__name__, e)
            return RowOutcome.create(index, RowCode.ERROR, error=e)

    def _gate(self, event: Event, index: int, row: dict[str, Any]) -> RowOutcome | None:
        """Fire a vetoable event; return the terminal outcome if the row must stop."""
        dispatch = self._events.dispatch(event, row=row, index=index)
        if dispatch.verdict is Verdict.SKIP:
            self._trace("row=%d skipped by %s", index, event.value)
            return RowOutcome.create(index, RowCode.SKIPPED_EVENT, event.value)
        if dispatch.verdict is Verdict.ERROR:
            return RowOutcome.create(index, RowCode.ERROR, error=dispatch.error)
        return None

    def _process(self, raw_row: Mapping[Any, Any], index: int) -> RowOutcome:
        plan = self.plan
        row = normalize_row_headers(raw_row)

        if is_empty_row(row):
            return RowOutcome.create(index, RowCode.SKIPPED_EMPTY)

        if (stop := self._gate(Event.ON_ROW_READ, index, row)) is not None:
            return stop

        mapped = map_to_fields(ignore_headers(row, plan.ignored), plan.mappings, self._reported_headers)
        self._trace("row=%d mapped=%s", index, mapped)

        if not plan.sloppy:
            if (stop := self._gate(Event.ON_ROW_VALIDATING, index, mapped)) is not None:
                return stop

            failure = apply_validations(mapped, plan.validations)
            if failure is not None:
                self._trace("row=%d validation failed on %s", index, failure.field)
                return RowOutcome.create(
                    index, RowCode.SKIPPED_VALIDATION, failure.message, target=failure.field
                )

            if (stop := self._gate(Event.ON_ROW_VALIDATED, index, mapped)) is not None:
                return stop

        transformed = apply_transforms(mapped, plan.transforms)
        self._trace("row=%d transformed=%s", index, transformed)

        if (stop := self._gate(Event.ON_ROW_TRANSFORMED, index, transformed)) is not None:
            return stop

        record_id = None
        if not plan.virtual:
            record_id = self._persist(transformed)
            # onRowImported は通知のみ (False でもスキップしない)
            dispatch = self._events.dispatch(
                Event.ON_ROW_IMPORTED, row=transformed, index=index, sys_id=record_id
            )
            if dispatch.verdict is Verdict.ERROR:
                return RowOutcome.create(index, RowCode.ERROR, error=dispatch.error)

        return RowOutcome.create(index, RowCode.SUCCESS, target=record_id)

    def _persist(self, row: dict[str, Any]) -> Any:
        record_id = self._resolver.resolve(row)
        if record_id is None:
            record_id = self._store.create(self.plan.table, row)
            self._trace("created record %s in %s", record_id, self.plan.table)
        else:
            record_id = self._store.update(self.plan.table, record_id, row)
            self._trace("updated record %s in %s", record_id, self.plan.table)
        return record_id
