from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from xlsx_importer.excel.normalize import normalize

__all__ = [
    "HeaderValidation",
    "validate_headers",
]


@dataclass(frozen=True)
class HeaderValidation:
    success: bool
    missing: list[str] = field(default_factory=list)


def validate_headers(actual_headers: Iterable[str], required_headers: Iterable[str]) -> HeaderValidation:
    """Check that every required header (already normalized) is in the file.

    All missing headers are collected, in the order they were required.
    """
    present = {normalize(str(h)) for h in actual_headers if h is not None}
    missing = [required for required in required_headers if required not in present]
    return HeaderValidation(success=not missing, missing=missing)
