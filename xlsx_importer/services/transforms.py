from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from xlsx_importer.config.builder import Transform

__all__ = [
    "apply_transforms",
]


def apply_transforms(
    row: Mapping[str, Any], transforms: Mapping[str, Sequence[Transform]]
) -> dict[str, Any]:
    """Run each field's transform chain in registration order.

    Each function gets the previous function's output. Fields without a chain
    are copied unchanged. Exceptions propagate to the caller.
    """
    data: dict[str, Any] = {}
    for field, value in row.items():
        for f in transforms.get(field, ()):
            value = f(value)
        data[field] = value
    return data
