from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from xlsx_importer.excel.normalize import normalize

"""Row lifecycle events.

At most one handler per event. A handler receives an ``EventPayload`` and may
return anything; only the boolean ``False`` vetoes the current row. A missing
handler, ``None``, ``True`` or any other value lets processing continue.
"""

__all__ = [
    "Event",
    "EventPayload",
    "EventHandler",
    "Verdict",
    "Dispatch",
    "EventBus",
]

logger = logging.getLogger(__name__)


class Event(str, Enum):
    ON_COALESCE = "onCoalesce"
    ON_ROW_READ = "onRowRead"
    ON_ROW_VALIDATING = "onRowValidating"
    ON_ROW_VALIDATED = "onRowValidated"
    ON_ROW_TRANSFORMED = "onRowTransformed"
    ON_ROW_IMPORTED = "onRowImported"

    @classmethod
    def lookup(cls, name: str) -> Event | None:
        """Find an event by name, case/whitespace insensitive."""
        key = normalize(name)
        for event in cls:
            if normalize(event.value) == key:
                return event
        return None


@dataclass(frozen=True)
class EventPayload:
    """Data handed to an event handler.

    ``row`` is the live row dict of the current stage; a handler changing it
    changes what the next stages see. ``sys_id`` is the candidate record for
    onCoalesce and the persisted record for onRowImported.
    """
    event: Event
    row: dict[str, Any] | None = None
    index: int | None = None
    sys_id: Any = None


EventHandler = Callable[[EventPayload], Any]


class Verdict(Enum):
    CONTINUE = "continue"
    SKIP = "skip"
    ERROR = "error"


@dataclass(frozen=True)
class Dispatch:
    verdict: Verdict
    returned: Any = None
    error: Exception | None = None


_CONTINUE = Dispatch(Verdict.CONTINUE)


class EventBus:
    """Single-handler-per-event dispatcher."""

    def __init__(self, handlers: Mapping[Event, EventHandler] | None = None) -> None:
        self._handlers = dict(handlers or {})

    def has_handler(self, event: Event) -> bool:
        return event in self._handlers

    def dispatch(
        self,
        event: Event,
        row: dict[str, Any] | None = None,
        index: int | None = None,
        sys_id: Any = None,
    ) -> Dispatch:
        handler = self._handlers.get(event)
        if handler is None:
            return _CONTINUE
        payload = EventPayload(event=event, row=row, index=index, sys_id=sys_id)
        try:
            returned = handler(payload)
        except Exception as e:
            logger.debug("handler for %s raised %r", event.value, e)
            return Dispatch(Verdict.ERROR, error=e)
        if returned is False:
            return Dispatch(Verdict.SKIP, returned=returned)
        return Dispatch(Verdict.CONTINUE, returned=returned)
