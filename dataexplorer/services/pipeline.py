from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..errors import DataExplorerError, InvalidInputError
from ..ingest.reader import ReadError, read_dataset_file
from ..logging.error_log import ErrorLogBuffer
from ..models.dataset import Dataset, Metadata
from ..models.error_record import ErrorRecord
from ..models.processing_result import FileStat, IngestResult
from .coercion import CleaningOptions, clean_rows
from .progress import ProgressTracker
from .store import DatasetStore

"""Processing pipeline: raw parsed input -> cleaned Dataset -> store.

process_data() is the single entry point for new data. It cleans and types
the rows, enriches the metadata, makes the result the current dataset and
records it in the bounded history.

run_ingest() drives process_data() over several files: one file at a time,
a failure only fails that file (recorded as an ErrorRecord), and the run
is summarized in an IngestResult.
"""

__all__ = [
    "process_data",
    "run_ingest",
]

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _split_payload(raw: Any) -> tuple[Any, dict[str, Any]]:
    if raw is None:
        raise InvalidInputError("no data to process")
    if isinstance(raw, (list, tuple)):
        return raw, {}
    if isinstance(raw, Mapping):
        if raw.get("data") is None:
            raise InvalidInputError("input has no 'data' rows")
        meta = raw.get("meta")
        # 呼び出し元の meta を変更しないよう deep copy
        return raw["data"], copy.deepcopy(dict(meta)) if isinstance(meta, Mapping) else {}
    raise InvalidInputError(f"unsupported input type: {type(raw).__name__}")


def process_data(
    raw: Any,
    store: DatasetStore,
    options: CleaningOptions | None = None,
    dataset_name: str | None = None,
    source: str | None = None,
) -> Dataset:
    """Clean ``raw`` and register it as the current dataset.

    Args:
        raw: ``{"data": rows, "meta": {...}}`` or a bare list of rows
        store: Store receiving the dataset (current + history)
        options: Cleaning switches
        dataset_name: Overrides ``meta.datasetName``
        source: Overrides ``meta.source``

    Returns:
        The processed Dataset (the store keeps its own copy in history)

    Raises:
        InvalidInputError: missing input or missing ``data``
    """
    data, meta_raw = _split_payload(raw)
    rows = clean_rows(data, options)

    if dataset_name is not None:
        meta_raw["datasetName"] = dataset_name
    if source is not None:
        meta_raw["source"] = source
    meta_raw["processedAt"] = _now_iso()
    meta_raw["fields"] = list(rows[0].keys()) if rows else []

    dataset = Dataset(rows=rows, meta=Metadata.from_dict(meta_raw))
    entry = store.add_to_history(dataset)
    store.set_current(dataset, entry.id)
    logger.info(f"processed {entry.description} id={entry.id}")
    return dataset


def _ingest_file(path: Path, store: DatasetStore, options: CleaningOptions | None) -> Dataset:
    raw = read_dataset_file(path)
    dataset = process_data(raw, store, options)
    if dataset.row_count == 0:
        logger.warning(f"{path.name}: no data rows")
    return dataset


def run_ingest(
    paths: Iterable[Path],
    store: DatasetStore,
    options: CleaningOptions | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> IngestResult:
    """Read and process every file; a failing file does not stop the run.

    Failures (ReadError and other engine errors, I/O errors) are logged at
    ERROR level, buffered as ErrorRecords and flushed once at the end.
    """
    file_paths = [Path(p) for p in paths]
    start_time = datetime.now(UTC)
    errors = error_log if error_log is not None else ErrorLogBuffer()

    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    total_rows = 0

    with ProgressTracker(len(file_paths)) as progress:
        for path in file_paths:
            progress.start_file(path)
            file_start = datetime.now(UTC)
            try:
                dataset = _ingest_file(path, store, options)
            except (DataExplorerError, OSError) as e:
                failed_count += 1
                logger.error(f"{path.name}: {e}")
                operation = "read" if isinstance(e, (ReadError, OSError)) else "process"
                errors.append(ErrorRecord.from_exception(path.name, operation, e))
                stat = FileStat(
                    file_name=path.name,
                    status="failed",
                    rows=0,
                    columns=0,
                    elapsed_seconds=(datetime.now(UTC) - file_start).total_seconds(),
                    error=str(e),
                )
                progress.finish_file(success=False)
            else:
                success_count += 1
                total_rows += dataset.row_count
                stat = FileStat(
                    file_name=path.name,
                    status="success",
                    rows=dataset.row_count,
                    columns=dataset.column_count,
                    elapsed_seconds=(datetime.now(UTC) - file_start).total_seconds(),
                )
                progress.finish_file(success=True)
            file_stats.append(stat)
            progress.set_postfix(success=success_count, failed=failed_count, rows=total_rows)

    log_path = errors.flush()
    if log_path is not None:
        logger.warning(f"error log written: {log_path}")

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput_rps = total_rows / elapsed_seconds if elapsed_seconds > 0 else 0.0
    return IngestResult(
        success_files=success_count,
        failed_files=failed_count,
        total_rows=total_rows,
        history_size=len(store),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput_rps,
        file_stats=file_stats,
    )
