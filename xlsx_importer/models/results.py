from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any

"""Result models for the row pipeline and the whole import.

RowOutcome is produced once per spreadsheet row, ImportOutcome once per
``ImportRunner.run`` invocation. Both are write-once value objects.
"""

__all__ = [
    "ImportState",
    "RowCode",
    "RowOutcome",
    "ImportOutcome",
    "ROW_MESSAGES",
]


class ImportState(str, Enum):
    """Operation level result codes."""
    SUCCESS = "success"
    PARSING_ERROR = "parsing_error"
    MISSING_REQUIRED_HEADER = "missing_required_header"


class RowCode(IntEnum):
    """Row level result codes."""
    SUCCESS = 0
    SKIPPED_EMPTY = 1
    SKIPPED_EVENT = 2
    SKIPPED_VALIDATION = 3
    ERROR = 4

    @property
    def label(self) -> str:
        return self.name.lower()


ROW_MESSAGES: dict[RowCode, str] = {
    RowCode.SUCCESS: "Record imported correctly",
    RowCode.SKIPPED_EMPTY: "Record skipped because empty",
    RowCode.SKIPPED_EVENT: "Record skipped after result of event: ",
    RowCode.SKIPPED_VALIDATION: "Record skipped after validation failed: ",
    RowCode.ERROR: "Record skipped due to unexpected error",
}


@dataclass(frozen=True)
class RowOutcome:
    """Result of a single row.

    Attributes:
        row_number: Spreadsheet row number (header is row 1, first data row is 2)
        code: RowCode of the terminal state reached
        message: Human readable description
        target: Record identifier on success, offending field on validation failure
        error: Captured exception for RowCode.ERROR
    """
    row_number: int
    code: RowCode
    message: str
    target: Any = None
    error: BaseException | None = None

    @property
    def success(self) -> bool:
        return self.code is RowCode.SUCCESS

    @staticmethod
    def create(
        row_number: int,
        code: RowCode,
        info: str | None = None,
        target: Any = None,
        error: BaseException | None = None,
    ) -> RowOutcome:
        """Build an outcome with the standard message for ``code``.

        ``info`` replaces the message for validation failures (the validator's own
        text) and is appended for event skips (the vetoing event name).
        """
        if code is RowCode.SKIPPED_VALIDATION and info:
            message = info
        elif code is RowCode.SKIPPED_EVENT and info:
            message = ROW_MESSAGES[code] + info
        else:
            message = ROW_MESSAGES[code].rstrip(": ")
        return RowOutcome(
            row_number=row_number,
            code=code,
            message=message,
            target=target,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row_number,
            "code": int(self.code),
            "message": self.message,
            "target": self.target,
            "error": repr(self.error) if self.error is not None else None,
        }


@dataclass(frozen=True)
class ImportOutcome:
    """Aggregated result of one import run."""
    success: bool
    code: ImportState
    message: str
    rows_processed: int
    elapsed_ms: int
    start_time: datetime
    end_time: datetime
    rows: tuple[RowOutcome, ...] = ()
    missing_headers: tuple[str, ...] = ()
    counts: Mapping[RowCode, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # 生成後は読み取り専用
        object.__setattr__(self, "counts", MappingProxyType(dict(self.counts)))

    def count(self, code: RowCode) -> int:
        return self.counts.get(code, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "code": self.code.value,
            "message": self.message,
            "rows": self.rows_processed,
            "elapsed": self.elapsed_ms,
            "missing": list(self.missing_headers),
            "data": [r.to_dict() for r in self.rows],
        }
