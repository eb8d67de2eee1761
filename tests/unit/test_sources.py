from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import psycopg2
import pytest

from xlsx_importer.db.attachments import AttachmentNotFoundError, PostgresAttachmentSource
from xlsx_importer.excel.source import FileByteSource


def test_file_byte_source_relative_to_base(tmp_path: Path):
    (tmp_path / "a.xlsx").write_bytes(b"abc")
    source = FileByteSource(base_dir=tmp_path)
    assert source.resolve("a.xlsx") == tmp_path / "a.xlsx"
    with source.get_stream("a.xlsx") as f:
        assert f.read() == b"abc"


def test_file_byte_source_missing_raises_oserror(tmp_path: Path):
    with pytest.raises(OSError):
        FileByteSource(base_dir=tmp_path).get_stream("missing.xlsx")


def _connection(row):
    cur = MagicMock()
    cur.fetchone.return_value = row
    conn = MagicMock()
    conn.cursor.return_value = cur
    return conn, cur


def test_attachment_source_reads_bytea():
    conn, cur = _connection({"id": 7, "name": "people.xlsx", "file": memoryview(b"PK..")})
    stream = PostgresAttachmentSource(conn, "attachments").get_stream(7)
    assert stream.read() == b"PK.."
    assert stream.name == "people.xlsx"
    sql, params = cur.execute.call_args.args
    assert "from attachments where id = %s" in sql
    assert params == (7,)
    cur.close.assert_called_once()


def test_attachment_source_missing_row():
    conn, _ = _connection(None)
    with pytest.raises(AttachmentNotFoundError):
        PostgresAttachmentSource(conn, "attachments").get_stream(1)


def test_attachment_source_driver_error():
    conn, cur = _connection(None)
    cur.execute.side_effect = psycopg2.Error("relation does not exist")
    with pytest.raises(OSError, match="failed to read attachment"):
        PostgresAttachmentSource(conn, "attachments").get_stream(1)
    cur.close.assert_called_once()


def test_attachment_source_rejects_bad_table_name():
    with pytest.raises(ValueError):
        PostgresAttachmentSource(MagicMock(), "attachments; drop table x")
