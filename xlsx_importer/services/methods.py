from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from xlsx_importer.db.store import RecordStore

"""Ready-made transform and validation functions.

Transforms are ``value -> value``; validations are ``(row, field) -> bool``.
Validations needing extra settings (RecordExists, ValueInList) are small frozen
dataclasses carrying those settings and called like a plain validator.
"""

__all__ = [
    "string_to_boolean",
    "string_to_float",
    "string_to_excel_number",
    "excel_date_to_string",
    "is_not_empty",
    "is_boolean",
    "RecordExists",
    "ValueInList",
    "TRANSFORMS",
    "VALIDATIONS",
]

POSITIVE_VALUES = frozenset({"YES", "Y", "TRUE", "1"})
BOOLEAN_VALUES = POSITIVE_VALUES | {"NO", "N", "FALSE", "0"}

# Excel (1900 date system) serial day 0
EXCEL_EPOCH = datetime(1899, 12, 30)

# 最後のドットのみ (小数点)
_DECIMAL_SEPARATOR = re.compile(r"\.(?=[^.]*$)")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


# -- transforms ---------------------------------------------------------------


def string_to_boolean(value: Any) -> bool:
    """YES / Y / TRUE / 1 (any case) -> True, anything else -> False."""
    if isinstance(value, bool):
        return value
    if _is_empty(value):
        return False
    return _text(value).upper() in POSITIVE_VALUES


def string_to_float(value: Any) -> float | None:
    """Parse a number written with '.' thousand separators and ',' decimals.

    "100.000.000,50" -> 100000000.5. Cells already numeric are returned as float;
    empty cells become None.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    text = "" if value is None else str(value).strip()
    if not text:
        return None
    text = text.replace(".", "").replace(",", ".")
    return float(text)


def string_to_excel_number(value: Any) -> str:
    """Rewrite "100.000.000.00" as "100000000,00" (last dot is the decimal separator)."""
    text = "" if value is None else str(value).strip()
    text = _DECIMAL_SEPARATOR.sub(",", text)
    return text.replace(".", "")


def excel_date_to_string(value: Any) -> str | None:
    """Format an Excel date cell (serial day number or date) as dd/mm/YYYY."""
    if _is_empty(value):
        return None
    if isinstance(value, (datetime, date)):
        target = value
    else:
        days = int(float(str(value).strip()))
        target = EXCEL_EPOCH + timedelta(days=days)
    return target.strftime("%d/%m/%Y")


# -- validations ----------------------------------------------------------------


def is_not_empty(row: Mapping[str, Any], field: str) -> bool:
    return not _is_empty(row.get(field))


def is_boolean(row: Mapping[str, Any], field: str) -> bool:
    """YES/Y/TRUE/1/NO/N/FALSE/0 in any case (bool cells are accepted too)."""
    value = row.get(field)
    if isinstance(value, bool):
        return True
    if _is_empty(value):
        return False
    return _text(value).upper() in BOOLEAN_VALUES


@dataclass(frozen=True)
class RecordExists:
    """Pass when ``table`` has a record whose ``field`` equals the row value.

    Attributes:
        store: Record store queried for the reference
        table: Referenced table
        field: Referenced field compared by equality
        allow_empty: Result for empty cells
    """
    store: RecordStore
    table: str
    field: str
    allow_empty: bool = False

    def __call__(self, row: Mapping[str, Any], field: str) -> bool:
        value = row.get(field)
        if _is_empty(value):
            return self.allow_empty
        return len(self.store.query(self.table, {self.field: value})) > 0


@dataclass(frozen=True)
class ValueInList:
    """Pass when the value is one of ``allowed`` (trimmed, case-insensitive)."""
    allowed: Iterable[Any]
    allow_empty: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed", tuple(_text(a) for a in self.allowed))

    def __call__(self, row: Mapping[str, Any], field: str) -> bool:
        value = row.get(field)
        if _is_empty(value):
            return self.allow_empty
        return _text(value).upper() in {a.upper() for a in self.allowed}


TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    "STRING_TO_BOOLEAN": string_to_boolean,
    "STRING_TO_FLOAT": string_to_float,
    "STRING_TO_EXCEL_NUMBER": string_to_excel_number,
    "EXCEL_DATE_TO_STRING": excel_date_to_string,
}

# Parameterized validations (RECORD_EXISTS, VALUE_IN_LIST) are built by the
# config loader from their options.
VALIDATIONS: dict[str, Callable[[Mapping[str, Any], str], bool]] = {
    "IS_NOT_EMPTY": is_not_empty,
    "IS_BOOLEAN": is_boolean,
}
