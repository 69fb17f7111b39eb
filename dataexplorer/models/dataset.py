from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

"""Dataset and Metadata domain models.

A Row is a plain ``dict`` (column name -> scalar). Column names are
insertion-ordered within a row but rows do not need identical keys; the
representative column set is taken from the first row.
"""

__all__ = [
    "Row",
    "Scalar",
    "Metadata",
    "Dataset",
]

Scalar = float | int | str | bool | datetime | None
Row = dict[str, Any]

# camelCase keys used by the parsed-input form and the history snapshot
_KNOWN_META_KEYS = {"datasetName", "source", "processedAt", "fields"}


@dataclass(frozen=True)
class Metadata:
    """Descriptive metadata travelling with a Dataset.

    ``extra`` keeps any loader-provided keys (delimiter, sheet name, ...)
    so that they survive a round trip through the history snapshot.
    """
    dataset_name: str | None = None
    source: str | None = None
    processed_at: str | None = None  # ISO8601 UTC
    fields: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_dict(data: dict[str, Any] | None) -> Metadata:
        data = data or {}
        fields = data.get("fields") or []
        return Metadata(
            dataset_name=data.get("datasetName"),
            source=data.get("source"),
            processed_at=data.get("processedAt"),
            fields=[str(f) for f in fields] if isinstance(fields, list) else [],
            extra={k: v for k, v in data.items() if k not in _KNOWN_META_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        if self.dataset_name is not None:
            out["datasetName"] = self.dataset_name
        if self.source is not None:
            out["source"] = self.source
        if self.processed_at is not None:
            out["processedAt"] = self.processed_at
        out["fields"] = list(self.fields)
        return out


@dataclass(frozen=True)
class Dataset:
    """Ordered sequence of rows paired with its metadata."""
    rows: list[Row]
    meta: Metadata = field(default_factory=Metadata)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        # 先頭行のキー数 (fields 未設定でも安定)
        if not self.rows:
            return len(self.meta.fields)
        return len(self.rows[0])

    @property
    def fields(self) -> list[str]:
        if self.meta.fields:
            return list(self.meta.fields)
        return list(self.rows[0].keys()) if self.rows else []
