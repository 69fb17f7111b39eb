from __future__ import annotations

import copy
import logging
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from ..errors import InvalidInputError
from ..models.dataset import Dataset, Metadata, Row
from ..models.history_entry import HistoryEntry
from ..models.transformation import Transformation
from .coercion import ISO_DATE_PATTERN, coerce_value
from .export import format_cell

"""Dataset Store: current dataset + bounded history of processed datasets.

The store is the only mutable state of the engine and is passed explicitly
to whoever needs it. Mutations build a new entry tuple and swap it in with a
single assignment, so readers never observe more than ``max_history``
entries.

Persistence contract (snapshot()):

    {
      "lastUpdated": ISO8601,
      "currentDatasetId": str | None,
      "datasetHistory": [
        {"id", "timestamp", "description", "meta", "dataSample", "totalRows"}
      ]
    }

The snapshot is LOSSY: only the first ``sample_rows`` rows of
each dataset are kept (``totalRows`` records the real size). A store rebuilt
with from_snapshot() therefore holds samples, flagged ``is_sample=True``.
"""

__all__ = [
    "DEFAULT_MAX_HISTORY",
    "DEFAULT_SAMPLE_ROWS",
    "UNNAMED_DATASET",
    "describe_dataset",
    "DatasetStore",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 5
DEFAULT_SAMPLE_ROWS = 100
UNNAMED_DATASET = "Dataset sin nombre"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    return f"dataset_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def describe_dataset(dataset: Dataset) -> str:
    """One-line description: ``"{name} ({rows} filas, {cols} columnas)"``."""
    name = dataset.meta.dataset_name or UNNAMED_DATASET
    return f"{name} ({dataset.row_count} filas, {dataset.column_count} columnas)"


def _jsonable_row(row: Row) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, datetime):
            out[key] = format_cell(value)
        elif isinstance(value, float) and value != value:
            out[key] = None
        else:
            out[key] = value
    return out


def _restore_row(row: dict[str, Any]) -> Row:
    # ISO 日付文字列のみ datetime に戻す ("42" や "true" は文字列のまま)
    return {
        k: coerce_value(v) if isinstance(v, str) and ISO_DATE_PATTERN.match(v) else v
        for k, v in row.items()
    }


class DatasetStore:
    """Holds the current dataset, the history and the transformation log."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY, sample_rows: int = DEFAULT_SAMPLE_ROWS) -> None:
        if max_history < 1:
            raise InvalidInputError(f"max_history must be >= 1, got {max_history}")
        self.max_history = max_history
        self.sample_rows = sample_rows
        self._history: tuple[HistoryEntry, ...] = ()  # most recent first
        self._transformations: tuple[Transformation, ...] = ()
        self._current: Dataset | None = None
        self._current_id: str | None = None

    # -- history -----------------------------------------------------------

    def add_to_history(self, dataset: Dataset) -> HistoryEntry:
        """Insert a deep, independent copy of ``dataset``; evict the oldest beyond the bound."""
        snapshot = copy.deepcopy(dataset)
        entry = HistoryEntry(
            id=_generate_id(),
            timestamp=_now_iso(),
            description=describe_dataset(snapshot),
            dataset=snapshot,
            total_rows=snapshot.row_count,
        )
        history = (entry, *self._history)
        evicted = history[self.max_history:]
        self._history = history[: self.max_history]
        for old in evicted:
            logger.debug(f"history evicted id={old.id} ({old.description})")
        return entry

    def list_entries(self) -> list[HistoryEntry]:
        """History entries, most recent first."""
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)

    def get(self, entry_id: str) -> HistoryEntry | None:
        for entry in self._history:
            if entry.id == entry_id:
                return entry
        return None

    def remove(self, entry_id: str) -> bool:
        """Drop an entry; clears the current dataset if it was the removed one."""
        remaining = tuple(e for e in self._history if e.id != entry_id)
        if len(remaining) == len(self._history):
            return False
        self._history = remaining
        if self._current_id == entry_id:
            self._current = None
            self._current_id = None
        return True

    def clear(self) -> None:
        self._history = ()
        self._transformations = ()
        self._current = None
        self._current_id = None

    # -- current dataset ---------------------------------------------------

    def get_current(self) -> Dataset | None:
        return self._current

    @property
    def current_id(self) -> str | None:
        return self._current_id

    def set_current(self, dataset: Dataset | None, entry_id: str | None = None) -> None:
        self._current = dataset
        self._current_id = entry_id if dataset is not None else None

    def load_from_history(self, entry_id: str) -> Dataset:
        """Make a history entry the current dataset (a copy of it) and return it.

        Raises:
            InvalidInputError: unknown id, or the entry holds no rows
        """
        entry = self.get(entry_id)
        if entry is None:
            raise InvalidInputError(f"dataset not found: {entry_id}")
        if not entry.dataset.rows:
            raise InvalidInputError(f"dataset has no rows: {entry_id}")
        if entry.is_sample:
            logger.warning(f"loading sample only ({entry.dataset.row_count}/{entry.total_rows} rows): {entry.description}")
        dataset = copy.deepcopy(entry.dataset)
        self.set_current(dataset, entry.id)
        return dataset

    # -- transformation log ------------------------------------------------

    def record_transformation(self, transformation: Transformation) -> None:
        self._transformations = (*self._transformations, transformation)

    @property
    def transformations(self) -> list[Transformation]:
        return list(self._transformations)

    # -- persistence contract ----------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready snapshot (first ``sample_rows`` rows per entry)."""
        return {
            "lastUpdated": _now_iso(),
            "currentDatasetId": self._current_id,
            "datasetHistory": [
                {
                    "id": e.id,
                    "timestamp": e.timestamp,
                    "description": e.description,
                    "meta": e.dataset.meta.to_dict(),
                    "dataSample": [_jsonable_row(r) for r in e.dataset.rows[: self.sample_rows]],
                    "totalRows": e.total_rows,
                }
                for e in self._history
            ],
        }

    @classmethod
    def from_snapshot(
        cls,
        snapshot: dict[str, Any],
        max_history: int = DEFAULT_MAX_HISTORY,
        sample_rows: int = DEFAULT_SAMPLE_ROWS,
    ) -> DatasetStore:
        """Rebuild a store from snapshot(); entries only carry their samples."""
        store = cls(max_history=max_history, sample_rows=sample_rows)
        entries: list[HistoryEntry] = []
        for item in snapshot.get("datasetHistory") or []:
            rows = [_restore_row(r) for r in item.get("dataSample") or []]
            total = int(item.get("totalRows", len(rows)))
            entries.append(
                HistoryEntry(
                    id=item["id"],
                    timestamp=item["timestamp"],
                    description=item["description"],
                    dataset=Dataset(rows=rows, meta=Metadata.from_dict(item.get("meta"))),
                    total_rows=total,
                    is_sample=len(rows) < total,
                )
            )
        store._history = tuple(entries[:max_history])
        current_id = snapshot.get("currentDatasetId")
        current = store.get(current_id) if current_id else None
        if current is not None:
            store.set_current(copy.deepcopy(current.dataset), current.id)
        return store
