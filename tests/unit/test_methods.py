from __future__ import annotations

from datetime import date, datetime

import pytest

from xlsx_importer.services.methods import (
    TRANSFORMS,
    VALIDATIONS,
    RecordExists,
    ValueInList,
    excel_date_to_string,
    is_boolean,
    is_not_empty,
    string_to_boolean,
    string_to_excel_number,
    string_to_float,
)


@pytest.mark.parametrize("value", ["YES", "y", " true ", "1", 1, 1.0, True])
def test_string_to_boolean_true(value):
    assert string_to_boolean(value) is True


@pytest.mark.parametrize("value", ["NO", "n", "false", "0", "", None, "maybe", False])
def test_string_to_boolean_false(value):
    assert string_to_boolean(value) is False


def test_string_to_float():
    assert string_to_float("100.000.000,50") == 100000000.5
    assert string_to_float("12,5") == 12.5
    assert string_to_float(7) == 7.0
    assert string_to_float(" ") is None
    assert string_to_float(None) is None
    with pytest.raises(ValueError):
        string_to_float("abc")


def test_string_to_excel_number():
    assert string_to_excel_number("100.000.000.00") == "100000000,00"
    assert string_to_excel_number("12.5") == "12,5"
    assert string_to_excel_number("42") == "42"


def test_excel_date_to_string():
    assert excel_date_to_string(45292) == "01/01/2024"
    assert excel_date_to_string("45292") == "01/01/2024"
    assert excel_date_to_string(datetime(2024, 3, 5, 10, 30)) == "05/03/2024"
    assert excel_date_to_string(date(2023, 12, 31)) == "31/12/2023"
    assert excel_date_to_string(None) is None


def test_is_not_empty():
    assert is_not_empty({"f": "x"}, "f")
    assert is_not_empty({"f": 0}, "f")
    assert not is_not_empty({"f": ""}, "f")
    assert not is_not_empty({"f": None}, "f")
    assert not is_not_empty({}, "f")


def test_is_boolean():
    assert is_boolean({"f": "No"}, "f")
    assert is_boolean({"f": 0}, "f")
    assert is_boolean({"f": True}, "f")
    assert not is_boolean({"f": "maybe"}, "f")
    assert not is_boolean({"f": None}, "f")


def test_value_in_list():
    v = ValueInList(["Open", " closed "])
    assert v({"f": "open"}, "f")
    assert v({"f": "CLOSED"}, "f")
    assert not v({"f": "pending"}, "f")
    assert not v({"f": ""}, "f")
    assert ValueInList(["open"], allow_empty=True)({"f": None}, "f")


def test_value_in_list_numeric_cells():
    v = ValueInList([1, 2])
    assert v({"f": 2.0}, "f")
    assert v({"f": "1"}, "f")


def test_record_exists(store):
    store.insert("u_people", {"u_id": "P001"})
    v = RecordExists(store, "u_people", "u_id")
    assert v({"u_manager": "P001"}, "u_manager")
    assert not v({"u_manager": "P999"}, "u_manager")
    assert not v({"u_manager": ""}, "u_manager")
    assert RecordExists(store, "u_people", "u_id", allow_empty=True)({"u_manager": None}, "u_manager")


def test_registries():
    assert TRANSFORMS["STRING_TO_BOOLEAN"] is string_to_boolean
    assert set(TRANSFORMS) == {
        "STRING_TO_BOOLEAN",
        "STRING_TO_FLOAT",
        "STRING_TO_EXCEL_NUMBER",
        "EXCEL_DATE_TO_STRING",
    }
    assert set(VALIDATIONS) == {"IS_NOT_EMPTY", "IS_BOOLEAN"}
