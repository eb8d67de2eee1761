from __future__ import annotations

import pytest

from xlsx_importer.models.results import ImportState, RowCode, RowOutcome
from xlsx_importer.services.summary import (
    MESSAGE_MISSING_HEADERS,
    MESSAGE_SUCCESS,
    ResultAggregator,
    render_summary_line,
)


def _aggregator(*codes: RowCode) -> ResultAggregator:
    agg = ResultAggregator()
    for i, code in enumerate(codes, start=2):
        agg.add(RowOutcome.create(i, code))
    return agg


def test_success_outcome_counts_every_code():
    agg = _aggregator(RowCode.SUCCESS, RowCode.SUCCESS, RowCode.SKIPPED_EMPTY, RowCode.ERROR)
    out = agg.success()
    assert out.success is True
    assert out.code is ImportState.SUCCESS
    assert out.message == MESSAGE_SUCCESS
    assert out.rows_processed == 4
    assert out.count(RowCode.SUCCESS) == 2
    assert out.count(RowCode.SKIPPED_VALIDATION) == 0
    assert set(out.counts) == set(RowCode)
    assert [r.row_number for r in out.rows] == [2, 3, 4, 5]
    assert out.elapsed_ms >= 0
    assert out.end_time >= out.start_time


def test_parsing_error_drops_rows():
    agg = _aggregator(RowCode.SUCCESS)
    out = agg.parsing_error("BadZipFile: File is not a zip file")
    assert out.success is False
    assert out.code is ImportState.PARSING_ERROR
    assert out.message == "BadZipFile: File is not a zip file"
    assert out.rows == ()
    assert out.rows_processed == 0


def test_missing_required_header_lists_headers():
    out = ResultAggregator().missing_required_header(["id", "name"])
    assert out.code is ImportState.MISSING_REQUIRED_HEADER
    assert out.message == MESSAGE_MISSING_HEADERS
    assert out.missing_headers == ("id", "name")


def test_outcome_produced_only_once():
    agg = ResultAggregator()
    agg.success()
    with pytest.raises(RuntimeError):
        agg.success()
    with pytest.raises(RuntimeError):
        agg.add(RowOutcome.create(2, RowCode.SUCCESS))


def test_render_summary_line():
    agg = _aggregator(
        RowCode.SUCCESS,
        RowCode.SKIPPED_EMPTY,
        RowCode.SKIPPED_EVENT,
        RowCode.SKIPPED_VALIDATION,
        RowCode.ERROR,
    )
    line = render_summary_line(agg.success())
    assert line.startswith("SUMMARY rows=5 success=1 skipped=3 errors=1 elapsed_ms=")
    assert line.endswith(" code=success")


def test_render_summary_line_failure():
    line = render_summary_line(ResultAggregator().parsing_error("x"))
    assert "rows=0 success=0 skipped=0 errors=0" in line
    assert line.endswith("code=parsing_error")


def test_aggregated_counts_are_read_only():
    out = _aggregator(RowCode.SUCCESS).success()
    with pytest.raises(TypeError):
        out.counts[RowCode.ERROR] = 1  # type: ignore[index]
