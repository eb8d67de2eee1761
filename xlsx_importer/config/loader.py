from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from xlsx_importer.db.store import RecordStore
from xlsx_importer.services.methods import TRANSFORMS, VALIDATIONS, RecordExists, ValueInList

from .builder import ConfigError, ImporterConfig, Validator

"""YAML config loader.

Responsibilities:
- Load the YAML import definition
- Validate it against the bundled JSON schema (schema.json)
- Replay it onto an ImporterConfig so field checks happen exactly as for
  programmatic configuration
"""

__all__ = [
    "SCHEMA_PATH",
    "LoadedConfig",
    "load_config",
    "build_importer_config",
]

SCHEMA_PATH = Path(__file__).with_name("schema.json")


@dataclass(frozen=True)
class LoadedConfig:
    """ImporterConfig plus the reader options that live next to it in the file."""
    importer: ImporterConfig
    sheet: int | str = 0
    keep_na_strings: list[str] | None = None


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid or data violating the schema
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _validator(entry: Mapping[str, Any], store: RecordStore) -> Validator:
    method = entry["method"].strip().upper()
    allow_empty = bool(entry.get("allow_empty", False))
    if method == "VALUE_IN_LIST":
        if "allowed" not in entry:
            raise ConfigError("VALUE_IN_LIST requires 'allowed'")
        return ValueInList(entry["allowed"], allow_empty=allow_empty)
    if method == "RECORD_EXISTS":
        if "table" not in entry or "field" not in entry:
            raise ConfigError("RECORD_EXISTS requires 'table' and 'field'")
        return RecordExists(store, entry["table"], entry["field"], allow_empty=allow_empty)
    try:
        return VALIDATIONS[method]
    except KeyError:
        raise ConfigError(f"unknown validation method: {entry['method']}") from None


def build_importer_config(data: Mapping[str, Any], store: RecordStore) -> ImporterConfig:
    """Apply an already schema-validated mapping onto a new ImporterConfig."""
    cfg = ImporterConfig(data["table"], store)
    # debug は最初に反映 (以降の trace を出すため)
    cfg.set_debug(data.get("debug", False))
    for header, field in (data.get("mappings") or {}).items():
        cfg.map(header, field)
    for header in data.get("require") or []:
        cfg.require(header)
    for header in data.get("ignore") or []:
        cfg.ignore(header)
    for field in data.get("coalesce") or []:
        cfg.coalesce(field)
    for field, names in (data.get("transforms") or {}).items():
        for name in names:
            try:
                f = TRANSFORMS[name.strip().upper()]
            except KeyError:
                raise ConfigError(f"unknown transform method: {name}") from None
            cfg.transform(field, f)
    for field, entries in (data.get("validations") or {}).items():
        for entry in entries:
            cfg.validate(field, _validator(entry, store), entry["message"])
    cfg.set_virtual(data.get("virtual", False))
    cfg.set_sloppy(data.get("sloppy", False))
    return cfg


def load_config(path: Path, store: RecordStore) -> LoadedConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    return LoadedConfig(
        importer=build_importer_config(data, store),
        sheet=data.get("sheet", 0),
        keep_na_strings=data.get("keep_na_strings"),
    )
