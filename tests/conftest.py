# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from pathlib import Path

import pandas as pd
import pytest

from xlsx_importer.db.memory import InMemoryRecordStore
from xlsx_importer.logging.init import reset_logging

PEOPLE_FIELDS = {
    "u_id": "ID",
    "u_name": "Name",
    "u_email": "Email",
    "u_active": "Active",
    "u_status": "Status",
    "u_manager": "Manager",
    "u_amount": "Amount",
    "sys_created_on": "Created on",
}


@pytest.fixture(autouse=True)
def _clean_logging():
    # 各テストで logger/handler を作り直す (capsys の stdout を掴むため)
    reset_logging()
    logging.getLogger("xlsx_importer").setLevel(logging.NOTSET)
    yield
    reset_logging()
    logging.getLogger("xlsx_importer").setLevel(logging.NOTSET)


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(tables={"u_people": dict(PEOPLE_FIELDS)})


@pytest.fixture()
def make_xlsx(tmp_path: Path):
    """Write ``rows`` (list of dicts, header = keys of the first row) to an .xlsx file."""

    def _make(rows: list[dict], name: str = "people.xlsx", columns: list[str] | None = None) -> Path:
        path = tmp_path / name
        df = pd.DataFrame(rows, columns=columns)
        df.to_excel(path, index=False, engine="openpyxl")
        return path

    return _make


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table: u_people
mappings:
  E-mail: u_email
ignore: [Notes]
require: [ID, Name]
coalesce: [u_id]
transforms:
  u_active: [STRING_TO_BOOLEAN]
validations:
  u_email:
    - {method: IS_NOT_EMPTY, message: "Email is mandatory"}
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
