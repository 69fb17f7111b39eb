from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from dataexplorer.errors import InvalidInputError
from dataexplorer.logging.error_log import ErrorLogBuffer
from dataexplorer.services.coercion import CleaningOptions
from dataexplorer.services.pipeline import process_data, run_ingest
from dataexplorer.services.store import DatasetStore


def test_process_data_cleans_and_registers():
    store = DatasetStore()
    raw = {
        "data": [{"Edad ": "25", "Fecha Alta": "2023-01-15"}, {"Edad ": "35", "Fecha Alta": ""}],
        "meta": {"datasetName": "empleados", "delimiter": ","},
    }
    dataset = process_data(raw, store)

    assert dataset.rows[0] == {"edad": 25.0, "fecha_alta": datetime(2023, 1, 15, tzinfo=UTC)}
    assert dataset.meta.fields == ["edad", "fecha_alta"]
    assert dataset.meta.dataset_name == "empleados"
    assert dataset.meta.extra == {"delimiter": ","}
    assert dataset.meta.processed_at.endswith("Z")
    assert store.get_current() is dataset
    assert len(store) == 1
    assert store.list_entries()[0].description == "empleados (2 filas, 2 columnas)"
    # caller's payload untouched
    assert raw["meta"] == {"datasetName": "empleados", "delimiter": ","}


def test_process_data_bare_list_and_overrides():
    store = DatasetStore()
    dataset = process_data([{"a": "1"}], store, CleaningOptions(convert_types=False), dataset_name="lista", source="api")
    assert dataset.rows == [{"a": "1"}]
    assert dataset.meta.dataset_name == "lista"
    assert dataset.meta.source == "api"


@pytest.mark.parametrize("raw", [None, {"meta": {}}, {"data": None}, "texto"])
def test_process_data_rejects_missing_input(raw):
    with pytest.raises(InvalidInputError):
        process_data(raw, DatasetStore())


def test_process_data_empty_rows_still_recorded():
    store = DatasetStore()
    dataset = process_data({"data": []}, store)
    assert dataset.rows == []
    assert dataset.meta.fields == []
    assert len(store) == 1


def test_run_ingest_partial_failure(temp_workdir: Path):
    good = temp_workdir / "data" / "ok.csv"
    good.write_text("Edad\n25\n35\n", encoding="utf-8")
    bad = temp_workdir / "data" / "notes.txt"
    bad.write_text("hola", encoding="utf-8")
    missing = temp_workdir / "data" / "missing.csv"

    store = DatasetStore()
    buffer = ErrorLogBuffer(temp_workdir / "logs")
    result = run_ingest([good, bad, missing], store, error_log=buffer)

    assert result.success_files == 1
    assert result.failed_files == 2
    assert result.total_files == 3
    assert result.total_rows == 2
    assert result.history_size == 1
    assert [s.status for s in result.file_stats] == ["success", "failed", "failed"]
    assert result.file_stats[0].columns == 1

    log_files = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(log_files) == 1
    records = [json.loads(line) for line in log_files[0].read_text(encoding="utf-8").splitlines()]
    assert [r["source"] for r in records] == ["notes.txt", "missing.csv"]
    assert {r["error_type"] for r in records} == {"READ_ERROR"}
    assert all(r["operation"] == "read" for r in records)


def test_run_ingest_no_errors_writes_no_log(temp_workdir: Path):
    f = temp_workdir / "data" / "a.json"
    f.write_text(json.dumps([{"x": "1"}, {"x": "2"}]), encoding="utf-8")
    store = DatasetStore()
    result = run_ingest([f], store, error_log=ErrorLogBuffer(temp_workdir / "logs"))
    assert result.failed_files == 0
    assert result.throughput_rows_per_sec >= 0
    assert list((temp_workdir / "logs").glob("errors-*.log")) == []


def test_run_ingest_broken_workbooks_fail_only_their_file(temp_workdir: Path):
    good = temp_workdir / "data" / "ok.csv"
    good.write_text("Edad\n25\n", encoding="utf-8")
    broken = temp_workdir / "data" / "roto.xlsx"
    broken.write_bytes(b"PK\x03\x04" + b"\x00" * 64)
    legacy = temp_workdir / "data" / "antiguo.xls"
    legacy.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64)

    store = DatasetStore()
    result = run_ingest([broken, good, legacy], store, error_log=ErrorLogBuffer(temp_workdir / "logs"))

    assert result.success_files == 1
    assert result.failed_files == 2
    assert [s.status for s in result.file_stats] == ["failed", "success", "failed"]
    assert len(store) == 1

    log_files = list((temp_workdir / "logs").glob("errors-*.log"))
    records = [json.loads(line) for line in log_files[0].read_text(encoding="utf-8").splitlines()]
    assert [r["source"] for r in records] == ["roto.xlsx", "antiguo.xls"]
    assert {r["error_type"] for r in records} == {"READ_ERROR"}
