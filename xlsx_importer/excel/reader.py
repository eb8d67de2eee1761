from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import IO, Any, Protocol

import pandas as pd
import pandas._libs.parsers as parsers

"""Spreadsheet parser on top of pandas.

Row 1 is the header row, every following physical row is a data row (fully
empty rows included, the row pipeline reports them as skipped_empty). Cells
pandas reads as NaN come back as ``None``.
"""

__all__ = [
    "SpreadsheetParser",
    "ExcelSheetParser",
]

logger = logging.getLogger(__name__)


class SpreadsheetParser(Protocol):
    def parse(self, stream: IO[bytes]) -> bool: ...

    def get_error_message(self) -> str: ...

    def get_column_headers(self) -> list[str]: ...

    def next(self) -> bool: ...

    def get_row(self) -> dict[str, Any]: ...

    def close(self) -> None: ...


def _na_strings(keep_na_strings: list[str] | None) -> frozenset[str]:
    """Strings read as empty cells in data rows (pandas' default NA set).

    keep_na_strings: 既定の NaN 変換から除外する文字列 (例: ['NA'])
    """
    return frozenset(parsers.STR_NA_VALUES - set(keep_na_strings or ()))


def _cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        # numpy scalar -> python
        try:
            return value.item()
        except (AttributeError, ValueError):
            return value
    return value


def _data_cell(value: Any, na_strings: frozenset[str]) -> Any:
    value = _cell(value)
    if isinstance(value, str) and value in na_strings:
        return None
    return value


class ExcelSheetParser:
    """Read one sheet of an .xlsx stream and expose it row by row.

    Parameters
    ----------
    sheet_name: sheet index or name (default: first sheet)
    keep_na_strings: strings that must stay text instead of becoming None
    """

    def __init__(self, sheet_name: int | str = 0, keep_na_strings: list[str] | None = None) -> None:
        self.sheet_name = sheet_name
        self.keep_na_strings = keep_na_strings
        self._headers: list[str] = []
        self._rows: list[list[Any]] = []
        self._position = -1
        self._error: str = ""

    def parse(self, stream: IO[bytes]) -> bool:
        """Load the sheet. Returns False (see get_error_message) if the file is malformed."""
        try:
            df = pd.read_excel(
                stream,
                sheet_name=self.sheet_name,
                header=None,
                dtype=object,
                # ヘッダ行は NA 変換しない (データ行のみ後段で変換)
                keep_default_na=False,
            )
        except Exception as e:  # zip / xml / missing sheet: pandas raises many types
            self._error = f"{type(e).__name__}: {e}"
            logger.debug("excel parse failed: %s", self._error)
            return False

        if df.shape[0] == 0:
            self._headers, self._rows = [], []
        else:
            self._headers = [
                "" if _cell(h) is None else str(h).strip() for h in df.iloc[0].tolist()
            ]
            na_strings = _na_strings(self.keep_na_strings)
            self._rows = [
                [_data_cell(v, na_strings) for v in raw] for raw in df.iloc[1:].itertuples(index=False)
            ]
        self._position = -1
        self._error = ""
        return True

    def get_error_message(self) -> str:
        return self._error

    def get_column_headers(self) -> list[str]:
        return list(self._headers)

    def next(self) -> bool:
        if self._position + 1 >= len(self._rows):
            self._position = len(self._rows)
            return False
        self._position += 1
        return True

    def get_row(self) -> dict[str, Any]:
        if not 0 <= self._position < len(self._rows):
            raise IndexError("no current row: call next() first")
        values = self._rows[self._position]
        return dict(zip(self._headers, values, strict=False))

    def __iter__(self) -> Iterator[dict[str, Any]]:
        while self.next():
            yield self.get_row()

    def close(self) -> None:
        self._rows = []
        self._position = -1
