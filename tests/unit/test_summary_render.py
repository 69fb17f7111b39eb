from __future__ import annotations

from datetime import UTC, datetime

from dataexplorer.models.processing_result import IngestResult
from dataexplorer.services.summary import format_metric, render_summary_line


def _result(**overrides) -> IngestResult:
    values = dict(
        success_files=2,
        failed_files=1,
        total_rows=1000,
        history_size=2,
        start_time=datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC),
        end_time=datetime(2024, 1, 1, 10, 0, 2, tzinfo=UTC),
        elapsed_seconds=2.0,
        throughput_rows_per_sec=500.0,
    )
    values.update(overrides)
    return IngestResult(**values)


def test_render_summary_line():
    assert render_summary_line(3, _result()) == (
        "SUMMARY files=3/3 success=2 failed=1 rows=1000 history=2 elapsed_sec=2 throughput_rps=500"
    )


def test_render_summary_line_fractional_metrics():
    line = render_summary_line(3, _result(elapsed_seconds=0.0042, throughput_rows_per_sec=1234.56789))
    assert line.endswith("elapsed_sec=0.0042 throughput_rps=1234.568")


def test_format_metric():
    assert format_metric(0) == "0"
    assert format_metric(3.0) == "3"
    assert format_metric(0.000123) == "0.000123"
    assert format_metric(1.5) == "1.5"
