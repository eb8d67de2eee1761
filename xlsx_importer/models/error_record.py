from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from .results import RowOutcome

"""ErrorRecord model for the JSON Lines error log.

One record is written per row that did not end in RowCode.SUCCESS. File level
failures (parsing_error / missing_required_header) use row=-1 as a sentinel
because no specific row can be blamed.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source identifier being imported
        row: Row number (header is 1). Use -1 for file-level errors
        code: Row code label (``skipped_validation``) or import state value
        message: Human readable description
        target: Offending field or record identifier, if any
    """
    timestamp: str  # ISO8601 UTC
    file: str
    row: int  # 不明な場合 -1
    code: str
    message: str
    target: str | None = None

    @staticmethod
    def create(
        file: str, row: int, code: str, message: str, target: str | None = None
    ) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            code=code,
            message=message,
            target=target,
        )

    @staticmethod
    def from_row_outcome(file: str, outcome: RowOutcome) -> ErrorRecord:
        """Build a record from a non-successful row outcome.

        The captured exception (if any) is folded into the message so the log
        stays a flat, fixed schema.
        """
        message = outcome.message
        if outcome.error is not None:
            message = f"{message}: {type(outcome.error).__name__}: {outcome.error}"
        return ErrorRecord.create(
            file=file,
            row=outcome.row_number,
            code=outcome.code.label,
            message=message,
            target=None if outcome.target is None else str(outcome.target),
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
