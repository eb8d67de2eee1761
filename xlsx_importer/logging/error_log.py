from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from xlsx_importer.models.error_record import ErrorRecord
from xlsx_importer.models.results import ImportOutcome, RowCode

"""Error log buffering.

- JSON Lines 固定スキーマ (追加キー禁止)
- 起動ごとに `logs/errors-YYYYMMDD-HHMMSS.log` (UTC) を生成 (必要時)
- Records are buffered in memory and written in one go on flush()
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    - the file path is decided on first access
    - no thread safety needed (imports run sequentially)
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend_from_outcome(self, file: str, outcome: ImportOutcome) -> int:
        """Buffer one record per non-successful row (or one file-level record).

        Returns the number of records added.
        """
        if not outcome.success:
            self.append(
                ErrorRecord.create(
                    file=file,
                    row=-1,
                    code=outcome.code.value,
                    message=outcome.message,
                    target=",".join(outcome.missing_headers) or None,
                )
            )
            return 1
        added = 0
        for row in outcome.rows:
            if row.code is RowCode.SUCCESS:
                continue
            self.append(ErrorRecord.from_row_outcome(file, row))
            added += 1
        return added

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        if not self._records:
            return None  # 空なら作成しない
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
