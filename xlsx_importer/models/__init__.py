"""Result and error-log value objects shared by the import pipeline."""

from .error_record import ErrorRecord
from .results import ROW_MESSAGES, ImportOutcome, ImportState, RowCode, RowOutcome

__all__ = [
    # Import results
    "ImportState",
    "RowCode",
    "ROW_MESSAGES",
    "RowOutcome",
    "ImportOutcome",
    # Error log
    "ErrorRecord",
]
