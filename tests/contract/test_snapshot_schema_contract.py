from __future__ import annotations

import json

import jsonschema
import pytest

from dataexplorer.models.dataset import Dataset, Metadata
from dataexplorer.services.storage import SNAPSHOT_SCHEMA_PATH
from dataexplorer.services.store import DatasetStore

"""History snapshot JSON schema contract."""


@pytest.fixture()
def schema() -> dict:
    return json.loads(SNAPSHOT_SCHEMA_PATH.read_text(encoding="utf-8"))


def _snapshot(rows: int) -> dict:
    store = DatasetStore()
    entry = store.add_to_history(
        Dataset(rows=[{"i": float(i)} for i in range(rows)], meta=Metadata(dataset_name="d", source="d.csv"))
    )
    store.set_current(entry.dataset, entry.id)
    return store.snapshot()


def test_store_snapshot_matches_schema(schema):
    jsonschema.validate(_snapshot(150), schema)


def test_empty_store_snapshot_matches_schema(schema):
    snap = DatasetStore().snapshot()
    assert snap["currentDatasetId"] is None
    jsonschema.validate(snap, schema)


def test_schema_rejects_oversized_sample(schema):
    snap = _snapshot(5)
    snap["datasetHistory"][0]["dataSample"] = [{"i": 0}] * 101
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(snap, schema)


def test_schema_rejects_extra_entry_key(schema):
    snap = _snapshot(1)
    snap["datasetHistory"][0]["rows"] = []
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(snap, schema)
