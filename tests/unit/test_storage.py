from __future__ import annotations

import json
from pathlib import Path

import pytest

from dataexplorer.models.dataset import Dataset, Metadata
from dataexplorer.services.storage import HistoryStorage, StorageError, validate_snapshot
from dataexplorer.services.store import DatasetStore


def _store_with(n: int) -> DatasetStore:
    store = DatasetStore()
    for i in range(n):
        entry = store.add_to_history(
            Dataset(rows=[{"edad": 20.0 + i, "nombre": "x"}], meta=Metadata(dataset_name=f"d{i}", fields=["edad", "nombre"]))
        )
        store.set_current(entry.dataset, entry.id)
    return store


def test_save_and_load_round_trip(tmp_path: Path):
    storage = HistoryStorage(tmp_path / "nested" / "history.json")
    store = _store_with(2)
    path = storage.save(store)
    assert path.exists()

    data = json.loads(path.read_text(encoding="utf-8"))
    assert len(data["datasetHistory"]) == 2

    restored = storage.load_store()
    assert [e.id for e in restored.list_entries()] == [e.id for e in store.list_entries()]
    assert restored.current_id == store.current_id


def test_load_missing_file_gives_empty_store(tmp_path: Path):
    storage = HistoryStorage(tmp_path / "none.json")
    assert storage.load() is None
    assert len(storage.load_store(max_history=3)) == 0


def test_load_invalid_json(tmp_path: Path):
    f = tmp_path / "history.json"
    f.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        HistoryStorage(f).load()


def test_load_rejects_schema_violation(tmp_path: Path):
    f = tmp_path / "history.json"
    f.write_text(json.dumps({"lastUpdated": "x", "datasetHistory": [{"id": "a"}]}), encoding="utf-8")
    with pytest.raises(StorageError) as e:
        HistoryStorage(f).load()
    assert "snapshot validation failed" in str(e.value)


def test_validate_snapshot_rejects_extra_key():
    snapshot = _store_with(1).snapshot()
    validate_snapshot(snapshot)
    snapshot["extra"] = True
    with pytest.raises(StorageError):
        validate_snapshot(snapshot)


def test_clear(tmp_path: Path):
    storage = HistoryStorage(tmp_path / "history.json")
    storage.save(_store_with(1))
    storage.clear()
    assert not storage.path.exists()
    storage.clear()
