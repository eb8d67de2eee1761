from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime

from xlsx_importer.models.results import ImportOutcome, ImportState, RowCode, RowOutcome

"""Result aggregation and SUMMARY line rendering.

``ResultAggregator`` is created at the start of a run (that instant is the
elapsed-time origin), collects one RowOutcome per row and produces the final
ImportOutcome exactly once.
"""

__all__ = [
    "ResultAggregator",
    "render_summary_line",
]

MESSAGE_SUCCESS = "Import completed successfully"
MESSAGE_MISSING_HEADERS = "One or more required headers are missing"


class ResultAggregator:
    def __init__(self) -> None:
        self.start_time = datetime.now(UTC)
        self._rows: list[RowOutcome] = []
        self._finished: ImportOutcome | None = None

    def add(self, outcome: RowOutcome) -> None:
        if self._finished is not None:
            raise RuntimeError("import outcome already produced")
        self._rows.append(outcome)

    @property
    def rows(self) -> tuple[RowOutcome, ...]:
        return tuple(self._rows)

    def _finish(
        self, code: ImportState, message: str, missing: tuple[str, ...] = ()
    ) -> ImportOutcome:
        if self._finished is not None:
            raise RuntimeError("import outcome already produced")
        end_time = datetime.now(UTC)
        elapsed_ms = int((end_time - self.start_time).total_seconds() * 1000)
        rows = tuple(self._rows) if code is ImportState.SUCCESS else ()
        counts = Counter(r.code for r in rows)
        self._finished = ImportOutcome(
            success=code is ImportState.SUCCESS,
            code=code,
            message=message or "",
            rows_processed=len(rows),
            elapsed_ms=elapsed_ms,
            start_time=self.start_time,
            end_time=end_time,
            rows=rows,
            missing_headers=missing,
            counts={c: counts.get(c, 0) for c in RowCode},
        )
        return self._finished

    def success(self) -> ImportOutcome:
        return self._finish(ImportState.SUCCESS, MESSAGE_SUCCESS)

    def parsing_error(self, message: str) -> ImportOutcome:
        return self._finish(ImportState.PARSING_ERROR, message)

    def missing_required_header(self, missing: list[str]) -> ImportOutcome:
        return self._finish(ImportState.MISSING_REQUIRED_HEADER, MESSAGE_MISSING_HEADERS, tuple(missing))


def render_summary_line(outcome: ImportOutcome) -> str:
    """Render the one-line run summary.

    Format:
    SUMMARY rows={n} success={s} skipped={k} errors={e} elapsed_ms={ms} code={code}

    ``skipped`` adds up empty, event and validation skips.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> o = ImportOutcome(
        ...     success=True, code=ImportState.SUCCESS, message="", rows_processed=0,
        ...     elapsed_ms=5, start_time=t, end_time=t,
        ... )
        >>> render_summary_line(o)
        'SUMMARY rows=0 success=0 skipped=0 errors=0 elapsed_ms=5 code=success'
    """
    skipped = (
        outcome.count(RowCode.SKIPPED_EMPTY)
        + outcome.count(RowCode.SKIPPED_EVENT)
        + outcome.count(RowCode.SKIPPED_VALIDATION)
    )
    return (
        f"SUMMARY rows={outcome.rows_processed} "
        f"success={outcome.count(RowCode.SUCCESS)} "
        f"skipped={skipped} "
        f"errors={outcome.count(RowCode.ERROR)} "
        f"elapsed_ms={outcome.elapsed_ms} "
        f"code={outcome.code.value}"
    )
