from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from xlsx_importer.config.builder import ImporterConfig
from xlsx_importer.db.store import RecordStore
from xlsx_importer.excel.reader import ExcelSheetParser, SpreadsheetParser
from xlsx_importer.excel.source import ByteSource
from xlsx_importer.models.results import ImportOutcome, RowCode, RowOutcome

from .headers import validate_headers
from .progress import ProgressTracker
from .row_processor import RowProcessor
from .summary import ResultAggregator

"""Import runner: one file, one pass, rows in file order.

Rows are processed strictly sequentially because coalescence reads and then
writes the store per row; two rows sharing a key must see each other's writes.
The byte stream and the parser belong to the runner and are closed on every
exit path.
"""

__all__ = [
    "FIRST_DATA_ROW",
    "ImportRunner",
]

logger = logging.getLogger(__name__)

# 1 行目はヘッダ
FIRST_DATA_ROW = 2


class ImportRunner:
    """Run an import described by ``config`` against ``store``.

    Args:
        config: Importer configuration; snapshotted at the start of every run
        store: Record store collaborator
        source: Byte source giving the spreadsheet stream for a file id
        parser_factory: Creates a fresh spreadsheet parser per run
    """

    def __init__(
        self,
        config: ImporterConfig,
        store: RecordStore,
        source: ByteSource,
        parser_factory: Callable[[], SpreadsheetParser] = ExcelSheetParser,
    ) -> None:
        self.config = config
        self._store = store
        self._source = source
        self._parser_factory = parser_factory

    def run(self, file_id: str) -> ImportOutcome:
        aggregator = ResultAggregator()
        plan = self.config.build()
        trace_level = logging.INFO if plan.debug else logging.DEBUG

        logger.log(trace_level, "Starting import of %s into %s", file_id, plan.table)
        if plan.virtual:
            logger.info("Import running in VIRTUAL mode: no data will be saved")
        if plan.sloppy:
            logger.info("Import running in SLOPPY mode: no validation will be performed")

        try:
            stream = self._source.get_stream(file_id)
        except OSError as e:
            logger.error("unable to open source %s: %s", file_id, e)
            return aggregator.parsing_error(f"unable to open source '{file_id}': {e}")

        parser: SpreadsheetParser | None = None
        try:
            parser = self._parser_factory()
            if not parser.parse(stream):
                message = parser.get_error_message()
                logger.error("parsing failed for %s: %s", file_id, message)
                return aggregator.parsing_error(message)

            if plan.sloppy:
                logger.log(trace_level, "Headers validation skipped (SLOPPY mode)")
            else:
                result = validate_headers(parser.get_column_headers(), plan.required)
                if not result.success:
                    logger.error("missing required headers: %s", result.missing)
                    return aggregator.missing_required_header(result.missing)
                logger.log(trace_level, "Headers correctly validated")

            processor = RowProcessor(plan, self._store)
            index = FIRST_DATA_ROW
            with ProgressTracker(description=f"Importing {plan.table}") as progress:
                while True:
                    try:
                        if not parser.next():
                            break
                    except Exception as e:
                        # 読み取り位置が不明なので以降の行は読まない
                        logger.error("row=%d unreadable, stopping: %s: %s", index, type(e).__name__, e)
                        outcome = RowOutcome.create(index, RowCode.ERROR, error=e)
                        aggregator.add(outcome)
                        progress.advance(outcome)
                        break
                    try:
                        raw_row = parser.get_row()
                    except Exception as e:
                        logger.warning("row=%d unreadable: %s: %s", index, type(e).__name__, e)
                        outcome = RowOutcome.create(index, RowCode.ERROR, error=e)
                    else:
                        outcome = processor.process(raw_row, index)
                    logger.log(trace_level, "row=%d code=%s", index, outcome.code.label)
                    aggregator.add(outcome)
                    progress.advance(outcome)
                    index += 1

            outcome_all = aggregator.success()
            logger.log(
                trace_level,
                "Import of %s finished: rows=%d elapsed_ms=%d",
                file_id,
                outcome_all.rows_processed,
                outcome_all.elapsed_ms,
            )
            return outcome_all
        finally:
            if parser is not None:
                _close_quietly(parser, "parser")
            _close_quietly(stream, "stream")


def _close_quietly(resource: Any, what: str) -> None:
    try:
        resource.close()
    except Exception as e:  # pragma: no cover
        logger.warning("failed to close %s: %s", what, e)
