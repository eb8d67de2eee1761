from __future__ import annotations

import pytest

from xlsx_importer.db.store import RecordStoreError


def test_fields_hide_system_fields(store):
    assert "sys_created_on" not in store.fields_of("u_people")
    assert store.label_of("u_people", "u_email") == "Email"


def test_unknown_table(store):
    with pytest.raises(RecordStoreError):
        store.fields_of("u_nope")
    with pytest.raises(RecordStoreError):
        store.create("u_nope", {})


def test_query_in_insertion_order(store):
    a = store.insert("u_people", {"u_id": "P1", "u_name": "Ann"})
    b = store.insert("u_people", {"u_id": "P1", "u_name": "Bob"})
    store.insert("u_people", {"u_id": "P2"})
    assert store.query("u_people", {"u_id": "P1"}) == [a, b]
    assert store.query("u_people", {"u_id": "P1", "u_name": "Bob"}) == [b]


def test_create_and_update_are_recorded(store):
    rid = store.create("u_people", {"u_name": "Ann"})
    store.update("u_people", rid, {"u_email": "a@x"})
    assert store.get("u_people", rid) == {"u_name": "Ann", "u_email": "a@x"}
    assert [(w.action, w.record_id) for w in store.writes] == [("create", rid), ("update", rid)]
    assert len(rid) == 32


def test_update_missing_record(store):
    with pytest.raises(RecordStoreError):
        store.update("u_people", "nope", {"u_name": "x"})
