from __future__ import annotations

import io
from typing import Any

import psycopg2
import psycopg2.extras

from .store import is_valid_identifier

"""Attachment byte source: read an uploaded spreadsheet stored as bytea.

The attachment table is expected to look like ``(id, name, file bytea)``.
"""

__all__ = [
    "AttachmentNotFoundError",
    "PostgresAttachmentSource",
]


class AttachmentNotFoundError(OSError):
    pass


class PostgresAttachmentSource:
    """ByteSource reading ``file`` by ``id`` from an attachment table."""

    def __init__(self, connection: Any, table: str) -> None:
        if not is_valid_identifier(table):
            raise ValueError(
                "Invalid table name. Only alphanumeric characters and underscores are allowed."
            )
        self._connection = connection
        self._table = table

    def get_stream(self, file_id: str | int) -> io.BytesIO:
        cur = self._connection.cursor(cursor_factory=psycopg2.extras.DictCursor)
        try:
            # table 名は is_valid_identifier で検証済み
            cur.execute(f"select id, name, file from {self._table} where id = %s;", (file_id,))
            row = cur.fetchone()
        except psycopg2.Error as e:
            raise AttachmentNotFoundError(f"failed to read attachment {file_id}: {e}") from e
        finally:
            cur.close()
        if row is None or row["file"] is None:
            raise AttachmentNotFoundError(f"no attachment with id {file_id} in {self._table}")
        stream = io.BytesIO(bytes(row["file"]))
        stream.name = row["name"]
        return stream
