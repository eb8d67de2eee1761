from __future__ import annotations

import logging
from types import MappingProxyType

import pytest

from xlsx_importer.config.builder import ConfigError, ImporterConfig
from xlsx_importer.db.memory import InMemoryRecordStore
from xlsx_importer.services.events import Event


def test_unknown_table_raises(store):
    with pytest.raises(ConfigError, match="no table with name 'u_nope'"):
        ImporterConfig("u_nope", store)


def test_empty_table_name_raises(store):
    with pytest.raises(ConfigError, match="'table' parameter"):
        ImporterConfig("  ", store)


def test_table_name_is_lowercased(store):
    cfg = ImporterConfig("U_People", store)
    assert cfg.table == "u_people"


def test_default_mapping_uses_labels(store):
    plan = ImporterConfig("u_people", store).build()
    assert plan.mappings["name"] == "u_name"
    assert plan.mappings["email"] == "u_email"
    # system fields are not mapped
    assert "created on" not in plan.mappings


def test_label_equal_to_field_name_maps_field():
    s = InMemoryRecordStore(tables={"t": {"code": "code"}})
    assert dict(ImporterConfig("t", s).build().mappings) == {"code": "code"}


def test_map_overrides_and_normalizes(store):
    cfg = ImporterConfig("u_people", store)
    cfg.map("  E-MAIL\t", "U_EMAIL")
    assert cfg.build().mappings["e-mail"] == "u_email"


def test_map_unknown_field_raises(store):
    cfg = ImporterConfig("u_people", store)
    with pytest.raises(ConfigError, match="no field with name 'u_missing'"):
        cfg.map("Whatever", "u_missing")


def test_system_field_is_not_configurable(store):
    cfg = ImporterConfig("u_people", store)
    with pytest.raises(ConfigError):
        cfg.coalesce("sys_created_on")


def test_transform_and_validate_chains_keep_order(store):
    cfg = ImporterConfig("u_people", store)
    f1, f2 = str.strip, str.upper
    cfg.transform("u_name", f1)
    cfg.transform("u_name", f2)
    cfg.validate("u_email", lambda row, field: True, "first")
    cfg.validate("u_email", lambda row, field: True, "second")
    plan = cfg.build()
    assert plan.transforms["u_name"] == (f1, f2)
    assert [v.message for v in plan.validations["u_email"]] == ["first", "second"]


def test_transform_requires_callable(store):
    cfg = ImporterConfig("u_people", store)
    with pytest.raises(ConfigError, match="not a function"):
        cfg.transform("u_name", "upper")


def test_validate_requires_message(store):
    cfg = ImporterConfig("u_people", store)
    with pytest.raises(ConfigError, match="'message' parameter"):
        cfg.validate("u_name", lambda row, field: True, "")


def test_coalesce_deduplicates(store):
    cfg = ImporterConfig("u_people", store)
    cfg.coalesce("u_id")
    cfg.coalesce("U_ID ")
    cfg.coalesce("u_email")
    assert cfg.build().coalescing == ("u_id", "u_email")


def test_ignore_and_require_are_exclusive(store):
    cfg = ImporterConfig("u_people", store)
    cfg.require("ID")
    cfg.ignore("Notes")
    with pytest.raises(ConfigError, match="also a required one"):
        cfg.ignore(" id ")
    with pytest.raises(ConfigError, match="set to be ignored"):
        cfg.require("NOTES")
    plan = cfg.build()
    assert plan.required == ("id",)
    assert plan.ignored == frozenset({"notes"})


def test_callback_by_name_or_enum(store):
    cfg = ImporterConfig("u_people", store)

    def h1(payload):
        return None

    def h2(payload):
        return None

    cfg.callback(" ONROWREAD ", h1)
    cfg.callback(Event.ON_COALESCE, h2)
    handlers = cfg.build().handlers
    assert handlers[Event.ON_ROW_READ] is h1
    assert handlers[Event.ON_COALESCE] is h2


def test_callback_replaces_previous(store):
    cfg = ImporterConfig("u_people", store)

    def h1(payload):
        return None

    def h2(payload):
        return None

    cfg.callback("onRowRead", h1)
    cfg.callback("onRowRead", h2)
    assert cfg.build().handlers[Event.ON_ROW_READ] is h2


def test_callback_unknown_event_raises(store):
    cfg = ImporterConfig("u_people", store)
    with pytest.raises(ConfigError, match="no event allowed with name 'onRowDeleted'"):
        cfg.callback("onRowDeleted", lambda p: None)


def test_modes_require_booleans(store):
    cfg = ImporterConfig("u_people", store)
    cfg.set_virtual(True)
    cfg.set_sloppy(True)
    cfg.set_debug(False)
    assert cfg.virtual and cfg.sloppy and not cfg.debug
    with pytest.raises(ConfigError, match="not a boolean"):
        cfg.set_virtual("yes")


def test_build_is_a_frozen_snapshot(store):
    cfg = ImporterConfig("u_people", store)
    plan = cfg.build()
    cfg.map("Mail", "u_email")
    cfg.set_virtual(True)
    assert "mail" not in plan.mappings
    assert plan.virtual is False
    assert isinstance(plan.mappings, MappingProxyType)
    with pytest.raises(TypeError):
        plan.mappings["x"] = "y"  # type: ignore[index]


def test_debug_mode_promotes_trace_to_info(store, caplog):
    cfg = ImporterConfig("u_people", store)
    caplog.set_level(logging.INFO, logger="xlsx_importer")
    cfg.map("Mail", "u_email")
    assert not any("Defined mapping" in r.message for r in caplog.records)
    cfg.set_debug(True)
    cfg.map("Mail", "u_email")
    assert any(
        r.levelno == logging.INFO and "Defined mapping: mail -> u_email" in r.message
        for r in caplog.records
    )
