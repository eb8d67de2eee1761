from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from xlsx_importer.config.builder import Validation

__all__ = [
    "ValidationFailure",
    "apply_validations",
]


@dataclass(frozen=True)
class ValidationFailure:
    field: str
    message: str


def apply_validations(
    row: Mapping[str, Any], validations: Mapping[str, Sequence[Validation]]
) -> ValidationFailure | None:
    """Return the first failing validator's field and message, or None if valid.

    Fields are visited in row order and validators in registration order.
    Validators receive the whole row so they can compare fields.
    """
    for field in row:
        for validation in validations.get(field, ()):
            if not validation.method(row, field):
                return ValidationFailure(field=field, message=validation.message)
    return None
