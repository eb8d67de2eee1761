from __future__ import annotations

import argparse
import functools
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from xlsx_importer.config.builder import ConfigError
from xlsx_importer.config.loader import load_config
from xlsx_importer.db.attachments import PostgresAttachmentSource
from xlsx_importer.db.store import PostgresRecordStore, RecordStore
from xlsx_importer.excel.reader import ExcelSheetParser
from xlsx_importer.excel.source import ByteSource, FileByteSource
from xlsx_importer.logging.error_log import ErrorLogBuffer
from xlsx_importer.logging.init import log_summary, setup_logging
from xlsx_importer.models.results import ImportOutcome, RowCode
from xlsx_importer.services.runner import ImportRunner
from xlsx_importer.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env (override) and open an autocommit PostgreSQL connection
- Load config/import.yml onto an ImporterConfig bound to the live table
- Import one spreadsheet (local path or attachment id)
- Print the SUMMARY line, optionally write the JSON Lines error log
"""

__all__ = [
    "EXIT_SUCCESS_ALL",
    "EXIT_PARTIAL_FAILURE",
    "EXIT_FATAL",
    "main",
    "exit_code_for",
]

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG = Path("config/import.yml")


def _resolve_dsn() -> str:
    """Build the psycopg2 DSN from the environment.

    優先順位:
        1. DATABASE_URL / PGDSN (DSN 全体)
        2. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN")
    if dsn:
        return dsn
    host = os.getenv("PGHOST", "localhost")
    port = os.getenv("PGPORT", "5432")
    user = os.getenv("PGUSER", "postgres")
    password = os.getenv("PGPASSWORD", "")
    database = os.getenv("PGDATABASE", "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection() -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a psycopg2 connection in autocommit mode (each row commits on its own)."""
    conn = psycopg2.connect(_resolve_dsn())
    try:
        conn.autocommit = True
        yield conn
    finally:
        conn.close()


def _make_store(conn: Any) -> RecordStore:
    return PostgresRecordStore(conn.cursor())


def _make_source(conn: Any, attachment_table: str | None) -> ByteSource:
    if attachment_table:
        return PostgresAttachmentSource(conn, attachment_table)
    return FileByteSource()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数を上書きし、PostgreSQL 接続情報を最優先化。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _sheet_arg(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="xlsx-import", description="Spreadsheet -> table row importer")
    p.add_argument("source", help="Spreadsheet path, or attachment id with --attachment-table")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="YAML import definition")
    p.add_argument("--virtual", action="store_true", help="Run the pipeline without writing records")
    p.add_argument("--sloppy", action="store_true", help="Skip header checks and row validations")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--sheet", type=_sheet_arg, default=None, help="Sheet name or index (default: first)")
    p.add_argument("--attachment-table", default=None, help="Read SOURCE as an id from this bytea table")
    p.add_argument("--error-log", action="store_true", help="Write logs/errors-*.log for failed rows")
    return p.parse_args(argv)


def exit_code_for(outcome: ImportOutcome) -> int:
    """0: every row imported, 2: some rows skipped/failed, 1: import aborted."""
    if not outcome.success:
        return EXIT_FATAL
    if outcome.count(RowCode.SUCCESS) < outcome.rows_processed:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # NOTE: 空リスト [] は sys.argv にフォールバックしない (None のときのみ)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)

    try:
        with _db_connection() as conn:
            store = _make_store(conn)
            try:
                loaded = load_config(args.config, store)
                cfg = loaded.importer
                if args.virtual:
                    cfg.set_virtual(True)
                if args.sloppy:
                    cfg.set_sloppy(True)
                if args.debug:
                    cfg.set_debug(True)
            except ConfigError as e:
                logger.error(f"config: {e}")
                return EXIT_FATAL

            sheet = args.sheet if args.sheet is not None else loaded.sheet
            runner = ImportRunner(
                cfg,
                store,
                _make_source(conn, args.attachment_table),
                parser_factory=functools.partial(
                    ExcelSheetParser, sheet_name=sheet, keep_na_strings=loaded.keep_na_strings
                ),
            )
            outcome = runner.run(args.source)
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL

    if outcome.success:
        logger.info(f"{outcome.message}: {args.source} -> {cfg.table}")
    else:
        logger.error(f"{outcome.code.value}: {outcome.message}")

    if args.error_log:
        buffer = ErrorLogBuffer()
        buffer.extend_from_outcome(args.source, outcome)
        path = buffer.flush()
        if path is not None:
            logger.info(f"error log written: {path}")

    # log_summary が "SUMMARY " を付与するので先頭を除く
    summary_line = render_summary_line(outcome)
    log_summary(summary_line.removeprefix("SUMMARY "))

    return exit_code_for(outcome)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
