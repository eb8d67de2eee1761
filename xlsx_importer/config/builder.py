from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from xlsx_importer.db.store import RecordStore
from xlsx_importer.excel.normalize import normalize
from xlsx_importer.services.events import Event, EventHandler

"""Importer configuration builder.

``ImporterConfig`` is filled by the caller through its mutators, each of which
validates its arguments immediately and raises ``ConfigError``. ``build()``
freezes the current state into an ``ImportPlan`` that the runner reads for the
duration of one run.
"""

__all__ = [
    "ConfigError",
    "Transform",
    "Validator",
    "Validation",
    "ImportPlan",
    "ImporterConfig",
]

logger = logging.getLogger(__name__)

Transform = Callable[[Any], Any]
Validator = Callable[[Mapping[str, Any], str], bool]


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Validation:
    """A validator paired with the message reported when it fails."""
    method: Validator
    message: str


@dataclass(frozen=True)
class ImportPlan:
    """Read-only snapshot of an ImporterConfig."""
    table: str
    mappings: Mapping[str, str]  # normalized header -> field
    transforms: Mapping[str, tuple[Transform, ...]]
    validations: Mapping[str, tuple[Validation, ...]]
    coalescing: tuple[str, ...]
    ignored: frozenset[str]
    required: tuple[str, ...]  # 登録順 (missing 一覧の順序に使用)
    handlers: Mapping[Event, EventHandler]
    virtual: bool = False
    sloppy: bool = False
    debug: bool = False


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid parameter: the '{name}' parameter is empty or not a string")
    return value


def _require_callable(name: str, value: Any) -> Callable[..., Any]:
    if not callable(value):
        raise ConfigError(f"Invalid parameter: the '{name}' parameter is empty or not a function")
    return value


def _require_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError("Invalid parameter: the 'active' parameter is empty or not a boolean")
    return value


class ImporterConfig:
    """Mapping, transform, validation, coalescing and event configuration for one table.

    On construction the store is asked once for the table's fields and labels,
    and every field label is mapped to its field so headers that read like the
    label are imported without an explicit ``map`` call.
    """

    def __init__(self, table: str, store: RecordStore) -> None:
        _require_text("table", table)
        self.table = table.strip().lower()
        try:
            fields = store.fields_of(self.table)
        except Exception as e:
            raise ConfigError(
                f"Invalid parameter: no table with name '{self.table}' exists in the database"
            ) from e
        self._fields: dict[str, str] = {normalize(f): f for f in fields}
        self._mappings: dict[str, str] = {}
        self._transforms: dict[str, list[Transform]] = {}
        self._validations: dict[str, list[Validation]] = {}
        self._coalescing: list[str] = []
        self._ignored: list[str] = []
        self._required: list[str] = []
        self._events: dict[Event, EventHandler] = {}
        self._virtual = False
        self._sloppy = False
        self._debug = False

        for field in fields:
            label = store.label_of(self.table, field)
            if label and label.strip():
                self.map(label, field)
        self._trace(f"Default mapping executed for {len(fields)} fields for table: {self.table}")

    # -- helpers -----------------------------------------------------------

    def _field(self, field: Any) -> str:
        _require_text("field", field)
        key = normalize(field)
        if key not in self._fields:
            raise ConfigError(
                f"Invalid parameter: no field with name '{key}' exists on the table '{self.table}'"
            )
        return self._fields[key]

    def _trace(self, message: str) -> None:
        logger.log(logging.INFO if self._debug else logging.DEBUG, "%s | %s", self.table, message)

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self._fields.values())

    @property
    def virtual(self) -> bool:
        return self._virtual

    @property
    def sloppy(self) -> bool:
        return self._sloppy

    @property
    def debug(self) -> bool:
        return self._debug

    # -- public mutators ---------------------------------------------------

    def map(self, header: str, field: str) -> None:
        """Map a spreadsheet header to a table field (overrides the label default)."""
        _require_text("header", header)
        target = self._field(field)
        key = normalize(header)
        self._mappings[key] = target
        self._trace(f"Defined mapping: {key} -> {target}")

    def transform(self, field: str, f: Transform) -> None:
        """Append a ``value -> value`` function to the field's transform chain."""
        target = self._field(field)
        _require_callable("f", f)
        chain = self._transforms.setdefault(target, [])
        chain.append(f)
        self._trace(f"Defined transform for: {target} (pipeline length: {len(chain)})")

    def validate(self, field: str, f: Validator, message: str) -> None:
        """Append a ``(row, field) -> bool`` validator with its failure message."""
        target = self._field(field)
        _require_callable("f", f)
        _require_text("message", message)
        chain = self._validations.setdefault(target, [])
        chain.append(Validation(method=f, message=message))
        self._trace(f"Defined validation for: {target} (pipeline length: {len(chain)})")

    def coalesce(self, field: str) -> None:
        """Use ``field`` as part of the key matching existing records."""
        target = self._field(field)
        if target not in self._coalescing:
            self._coalescing.append(target)
        self._trace(f"Set field '{target}' as coalescent")

    def ignore(self, header: str) -> None:
        _require_text("header", header)
        key = normalize(header)
        if key in self._required:
            raise ConfigError(f"Invalid parameter: the header '{key}' is also a required one")
        if key not in self._ignored:
            self._ignored.append(key)
        self._trace(f"Set header '{key}' as ignored")

    def require(self, header: str) -> None:
        _require_text("header", header)
        key = normalize(header)
        if key in self._ignored:
            raise ConfigError(f"Invalid parameter: the header '{key}' is set to be ignored")
        if key not in self._required:
            self._required.append(key)
        self._trace(f"Set header '{key}' as required")

    def callback(self, event: str | Event, f: EventHandler) -> None:
        """Register the handler for ``event``, replacing any previous one."""
        if isinstance(event, Event):
            resolved: Event | None = event
        else:
            _require_text("event", event)
            resolved = Event.lookup(event)
        if resolved is None:
            raise ConfigError(f"Invalid parameter: no event allowed with name '{event}'")
        _require_callable("f", f)
        self._events[resolved] = f
        self._trace(f"Defined callback for: {resolved.value}")

    def set_virtual(self, active: bool) -> None:
        self._virtual = _require_bool(active)
        self._trace(f"Virtual import mode: {'ENABLED' if active else 'DISABLED'}")

    def set_sloppy(self, active: bool) -> None:
        self._sloppy = _require_bool(active)
        self._trace(f"Sloppy import mode: {'ENABLED' if active else 'DISABLED'}")

    def set_debug(self, active: bool) -> None:
        self._debug = _require_bool(active)
        self._trace(f"Debug mode: {'ENABLED' if active else 'DISABLED'}")

    # -- snapshot ------------------------------------------------------------

    def build(self) -> ImportPlan:
        return ImportPlan(
            table=self.table,
            mappings=MappingProxyType(dict(self._mappings)),
            transforms=MappingProxyType({k: tuple(v) for k, v in self._transforms.items()}),
            validations=MappingProxyType({k: tuple(v) for k, v in self._validations.items()}),
            coalescing=tuple(self._coalescing),
            ignored=frozenset(self._ignored),
            required=tuple(self._required),
            handlers=MappingProxyType(dict(self._events)),
            virtual=self._virtual,
            sloppy=self._sloppy,
            debug=self._debug,
        )
