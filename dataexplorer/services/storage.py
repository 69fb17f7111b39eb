from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import ValidationError

from ..errors import DataExplorerError
from .store import DEFAULT_MAX_HISTORY, DEFAULT_SAMPLE_ROWS, DatasetStore

"""JSON file storage for the Dataset Store snapshot.

A thin persistence collaborator: it writes / reads the snapshot produced by
DatasetStore.snapshot() and validates it against
contracts/history_snapshot_schema.json in both directions.
"""

__all__ = [
    "SNAPSHOT_SCHEMA_PATH",
    "StorageError",
    "validate_snapshot",
    "HistoryStorage",
]

logger = logging.getLogger(__name__)

SNAPSHOT_SCHEMA_PATH = Path(__file__).parent.parent / "contracts" / "history_snapshot_schema.json"


class StorageError(DataExplorerError):
    """Snapshot file could not be read, written or validated."""


def validate_snapshot(data: dict[str, Any]) -> None:
    """Validate a snapshot dict against the persistence contract.

    Raises:
        StorageError: schema file missing / invalid, or snapshot violates it
    """
    try:
        schema = json.loads(SNAPSHOT_SCHEMA_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"invalid snapshot schema: {e}") from e
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        raise StorageError(f"snapshot validation failed: {e.message}") from e


class HistoryStorage:
    """Reads and writes the history snapshot at ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def save(self, store: DatasetStore) -> Path:
        snapshot = store.snapshot()
        validate_snapshot(snapshot)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(snapshot, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"failed to write snapshot {self.path}: {e}") from e
        logger.debug(f"snapshot saved: {self.path} entries={len(snapshot['datasetHistory'])}")
        return self.path

    def load(self) -> dict[str, Any] | None:
        """Return the stored snapshot, or None when no snapshot exists yet."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"failed to read snapshot {self.path}: {e}") from e
        validate_snapshot(data)
        return data

    def load_store(
        self,
        max_history: int = DEFAULT_MAX_HISTORY,
        sample_rows: int = DEFAULT_SAMPLE_ROWS,
    ) -> DatasetStore:
        """Store rebuilt from disk (empty store when nothing was saved)."""
        snapshot = self.load()
        if snapshot is None:
            return DatasetStore(max_history=max_history, sample_rows=sample_rows)
        return DatasetStore.from_snapshot(snapshot, max_history=max_history, sample_rows=sample_rows)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
