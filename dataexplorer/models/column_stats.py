from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

"""Column profiling result models."""

__all__ = [
    "ColumnType",
    "ColumnStatistics",
    "DatasetProfile",
]


class ColumnType(str, Enum):
    """Dominant type of a column (``MIXED`` when no type exceeds 75%)."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    DATE = "date"
    MIXED = "mixed"


@dataclass(frozen=True)
class ColumnStatistics:
    """Per-column statistics. Type-specific fields are None unless the
    column's dominant type calls for them."""
    type: ColumnType
    not_null_count: int
    null_count: int
    # number / date
    min: float | datetime | None = None
    max: float | datetime | None = None
    # number
    sum: float | None = None
    mean: float | None = None
    std_dev: float | None = None
    # string
    unique_value_count: int | None = None
    top_values: list[tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type.value,
            "notNullCount": self.not_null_count,
            "nullCount": self.null_count,
        }
        if self.type is ColumnType.NUMBER:
            out.update(min=self.min, max=self.max, sum=self.sum, mean=self.mean, stdDev=self.std_dev)
        elif self.type is ColumnType.STRING:
            out["uniqueValueCount"] = self.unique_value_count
            out["topValues"] = [[v, c] for v, c in self.top_values]
        elif self.type is ColumnType.DATE:
            out.update(min=self.min, max=self.max)
        return out


@dataclass(frozen=True)
class DatasetProfile:
    row_count: int
    column_count: int
    columns: dict[str, ColumnStatistics]

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowCount": self.row_count,
            "columnCount": self.column_count,
            "columns": {name: stats.to_dict() for name, stats in self.columns.items()},
        }
