"""Spreadsheet -> record store importer.

Rows of an .xlsx sheet are mapped onto fields of a target table, transformed,
validated and then created or updated (coalesced) one by one. Each row gets a
coded outcome; the run gets an overall state.
"""

from .config.builder import ConfigError, ImporterConfig, ImportPlan
from .models.results import ImportOutcome, ImportState, RowCode, RowOutcome
from .services.events import Event, EventPayload
from .services.runner import ImportRunner

__all__ = [
    "ConfigError",
    "ImporterConfig",
    "ImportPlan",
    "ImportRunner",
    "ImportOutcome",
    "ImportState",
    "RowCode",
    "RowOutcome",
    "Event",
    "EventPayload",
]

__version__ = "0.1.0"
