from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .dataset import Dataset

"""HistoryEntry model owned by the Dataset Store."""

__all__ = [
    "HistoryEntry",
]


@dataclass(frozen=True)
class HistoryEntry:
    """Snapshot of a processed dataset kept in the store history.

    ``dataset`` is a deep copy independent from the caller's data. Entries
    restored from a persisted snapshot only carry the stored sample
    (``is_sample=True``); ``total_rows`` still reports the original size.
    """
    id: str
    timestamp: str  # ISO8601 UTC
    description: str
    dataset: Dataset
    total_rows: int
    is_sample: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Listing form (without the rows)."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "description": self.description,
            "totalRows": self.total_rows,
            "isSample": self.is_sample,
        }
