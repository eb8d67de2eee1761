from __future__ import annotations

import json

import jsonschema
import pytest
import yaml

from xlsx_importer.config.loader import SCHEMA_PATH


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_is_valid_draft7(schema):
    jsonschema.Draft7Validator.check_schema(schema)


def test_sample_config_validates(schema, sample_config_yaml):
    jsonschema.validate(yaml.safe_load(sample_config_yaml), schema)


def test_top_level_keys(schema):
    assert schema["required"] == ["table"]
    assert set(schema["properties"]) == {
        "table",
        "sheet",
        "keep_na_strings",
        "mappings",
        "ignore",
        "require",
        "coalesce",
        "transforms",
        "validations",
        "virtual",
        "sloppy",
        "debug",
    }


def test_validation_entries_need_method_and_message(schema):
    bad = {"table": "t", "validations": {"f": [{"method": "IS_NOT_EMPTY"}]}}
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(bad, schema)
