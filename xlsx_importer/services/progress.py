from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from xlsx_importer.models.results import RowCode, RowOutcome

"""Row progress display with tqdm (TTY only).

A single tqdm bar per import run; in non-TTY environments (CI, pipes) the bar is
disabled entirely to avoid ANSI control sequence spam in logs.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress bar over the rows of one import.

    The total is usually unknown up front (the parser streams rows), so the bar
    only counts and shows per-code tallies as postfix.
    """

    def __init__(self, total_rows: int | None = None, *, description: str = "Importing rows") -> None:
        self.total_rows = total_rows
        self.description = description
        self.current_row = 0
        self.tallies: dict[str, int] = {}

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, outcome: RowOutcome) -> None:
        self.current_row += 1
        label = "ok" if outcome.code is RowCode.SUCCESS else outcome.code.label
        self.tallies[label] = self.tallies.get(label, 0) + 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(**self.tallies)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
