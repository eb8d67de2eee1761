from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from typing import Any

from xlsx_importer.excel.normalize import normalize

"""Header -> field mapping for a single row.

Rows arrive with normalized header keys. Ignored headers are removed first,
then each remaining header is looked up in the mapping; headers without a
mapping are dropped with a warning, never an error.
"""

__all__ = [
    "is_empty_row",
    "ignore_headers",
    "map_to_fields",
]

logger = logging.getLogger(__name__)


def is_empty_row(row: Mapping[str, Any]) -> bool:
    """True when every cell is None or an empty string."""
    return all(value is None or value == "" for value in row.values())


def ignore_headers(row: Mapping[str, Any], ignored: Collection[str]) -> dict[str, Any]:
    return {header: value for header, value in row.items() if header not in ignored}


def map_to_fields(
    row: Mapping[str, Any],
    mappings: Mapping[str, str],
    reported: set[str] | None = None,
) -> dict[str, Any]:
    """Rekey ``row`` from headers to field names.

    When several headers map to the same field the later header wins.

    Args:
        row: Header keyed row (ignored headers already removed)
        mappings: Normalized header -> field
        reported: Headers already warned about; when given, each unmapped header
            is reported once and added to the set
    """
    data: dict[str, Any] = {}
    for header, value in row.items():
        field = mappings.get(normalize(header))
        if not field:
            if reported is None or header not in reported:
                logger.warning("Skipping header: '%s', no field mapped to it", header)
                if reported is not None:
                    reported.add(header)
            continue
        data[field] = value
    return data
