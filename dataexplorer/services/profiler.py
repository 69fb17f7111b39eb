from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any

import numpy as np

from ..models.column_stats import ColumnStatistics, ColumnType, DatasetProfile
from ..models.dataset import Row
from .coercion import is_empty_value, to_instant

"""Column profiler: per-column type detection and descriptive statistics.

Dominant type rule: among non-null values, a concrete type (number, string,
boolean, date) is dominant when it accounts for MORE than 75% of them.
Otherwise the column is ``mixed``. Aggregates are only computed for the
dominant type, and never over an empty set (None sentinels instead).
"""

__all__ = [
    "DOMINANT_TYPE_THRESHOLD",
    "TOP_VALUES_LIMIT",
    "detect_value_type",
    "detect_column_type",
    "profile_column",
    "profile",
]

logger = logging.getLogger(__name__)

DOMINANT_TYPE_THRESHOLD = 0.75
TOP_VALUES_LIMIT = 10

# 判定順: number -> date -> boolean -> string
_TYPE_PRIORITY = (ColumnType.NUMBER, ColumnType.DATE, ColumnType.BOOLEAN, ColumnType.STRING)


def detect_value_type(value: Any) -> ColumnType | None:
    """Concrete type of a single non-null value, None for nulls/unknown types."""
    if is_empty_value(value):
        return None
    if isinstance(value, datetime):
        return ColumnType.DATE
    # bool は int のサブクラスなので先に判定
    if isinstance(value, bool):
        return ColumnType.BOOLEAN
    if isinstance(value, (int, float)):
        return ColumnType.NUMBER
    if isinstance(value, str):
        return ColumnType.STRING
    return None


def detect_column_type(values: list[Any]) -> ColumnType:
    counts: Counter[ColumnType] = Counter()
    non_null = 0
    for v in values:
        if is_empty_value(v):
            continue
        non_null += 1
        vt = detect_value_type(v)
        if vt is not None:
            counts[vt] += 1
    if non_null == 0:
        return ColumnType.MIXED
    for candidate in _TYPE_PRIORITY:
        if counts[candidate] / non_null > DOMINANT_TYPE_THRESHOLD:
            return candidate
    return ColumnType.MIXED


def _number_stats(values: list[Any]) -> dict[str, float | None]:
    numeric = [float(v) for v in values if detect_value_type(v) is ColumnType.NUMBER]
    if not numeric:
        return {"min": None, "max": None, "sum": None, "mean": None, "std_dev": None}
    arr = np.asarray(numeric, dtype=float)
    mean = float(arr.mean())
    return {
        "min": float(arr.min()),
        "max": float(arr.max()),
        "sum": float(arr.sum()),
        "mean": mean,
        # 母標準偏差 (ddof=0)
        "std_dev": float(np.sqrt(np.mean((arr - mean) ** 2))),
    }


def _string_stats(values: list[Any]) -> tuple[int, list[tuple[str, int]]]:
    counts = Counter(v for v in values if isinstance(v, str) and v != "")
    # most_common is stable: ties keep first-encountered order
    return len(counts), counts.most_common(TOP_VALUES_LIMIT)


def profile_column(values: list[Any]) -> ColumnStatistics:
    col_type = detect_column_type(values)
    nulls = sum(1 for v in values if is_empty_value(v))
    base: dict[str, Any] = {
        "type": col_type,
        "not_null_count": len(values) - nulls,
        "null_count": nulls,
    }
    if col_type is ColumnType.NUMBER:
        base.update(_number_stats(values))
    elif col_type is ColumnType.STRING:
        unique, top = _string_stats(values)
        base.update(unique_value_count=unique, top_values=top)
    elif col_type is ColumnType.DATE:
        dates = [v for v in values if isinstance(v, datetime)]
        if dates:
            base.update(min=min(dates, key=to_instant), max=max(dates, key=to_instant))
    return ColumnStatistics(**base)


def profile(rows: Any) -> DatasetProfile:
    """Profile every column of a row sequence.

    Columns are taken from the first row. Missing keys in later rows count
    as nulls. Non-list or empty input yields an empty profile.
    """
    if not isinstance(rows, list) or not rows:
        return DatasetProfile(row_count=0, column_count=0, columns={})

    first: Row = rows[0] if isinstance(rows[0], dict) else {}
    columns: dict[str, ColumnStatistics] = {}
    for col in first.keys():
        values = [row.get(col) if isinstance(row, dict) else None for row in rows]
        columns[col] = profile_column(values)
    logger.debug(f"profiled rows={len(rows)} columns={len(columns)}")
    return DatasetProfile(row_count=len(rows), column_count=len(columns), columns=columns)
