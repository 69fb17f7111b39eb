from __future__ import annotations

from ..models.processing_result import IngestResult

"""SUMMARY line rendering for ingest runs.

Format:
    SUMMARY files={done}/{total} success={n} failed={n} rows={n} history={n} elapsed_sec={x} throughput_rps={x}
"""

__all__ = [
    "format_metric",
    "render_summary_line",
]


def format_metric(value: float) -> str:
    """Render a float without trailing zeros or scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if abs(value) < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: IngestResult) -> str:
    """Render the SUMMARY line for an ingest run.

    Args:
        total_files: Number of files given on the command line
        result: Aggregated IngestResult

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = IngestResult(
        ...     success_files=2, failed_files=0, total_rows=1000, history_size=2,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ...     throughput_rows_per_sec=500.0,
        ... )
        >>> render_summary_line(2, result)
        'SUMMARY files=2/2 success=2 failed=0 rows=1000 history=2 elapsed_sec=2 throughput_rps=500'
    """
    return (
        f"SUMMARY files={result.total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_rows} "
        f"history={result.history_size} "
        f"elapsed_sec={format_metric(result.elapsed_seconds)} "
        f"throughput_rps={format_metric(result.throughput_rows_per_sec)}"
    )
