from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

"""Header / field name normalization.

All comparisons between configuration and file headers go through ``normalize``
so that "  E-Mail\\n" and "e-mail" are the same key.
"""

__all__ = [
    "normalize",
    "normalize_row_headers",
]

_CONTROL_CHARS = re.compile(r"[\t\n\r]")
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize(value: str) -> str:
    """Trim, lowercase, drop tab/CR/LF and collapse whitespace runs.

    >>> normalize("  First\\tName  ")
    'firstname'
    >>> normalize("Last   Name")
    'last name'
    """
    normalized = value.strip().lower()
    normalized = _CONTROL_CHARS.sub("", normalized)
    return _WHITESPACE_RUN.sub(" ", normalized)


def normalize_row_headers(row: Mapping[Any, Any]) -> dict[str, Any]:
    """Return a copy of ``row`` with every key normalized (insertion order kept).

    Keys that collapse to the same normalized text keep the later value.
    """
    return {normalize(str(key)): value for key, value in row.items()}
