from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np

from ..errors import EmptySampleError
from ..models.dataset import Row
from ..models.variable_stats import VariableStatistics
from .coercion import NUMBER_PATTERN, is_empty_value

"""Variable statistics for one selected numeric column.

Two conventions are deliberate and must not be "fixed":

- variance / std_dev are POPULATION figures (divide by n, numpy ddof=0)
- the median is ``sorted[n // 2]``: for even n that is the upper-middle
  element, not the average of the two middle elements
"""

__all__ = [
    "compute_variable_statistics",
    "extract_numeric_values",
    "numeric_reading",
]


def compute_variable_statistics(values: Sequence[float]) -> VariableStatistics:
    """Compute count/mean/std_dev/variance/min/max/median/range.

    Args:
        values: Non-empty sequence of finite numbers

    Raises:
        EmptySampleError: when ``values`` is empty
    """
    if len(values) == 0:
        raise EmptySampleError("variable statistics require at least one value")

    arr = np.sort(np.asarray(values, dtype=float))
    n = int(arr.size)
    mean = float(arr.mean())
    variance = float(arr.var(ddof=0))
    lo = float(arr[0])
    hi = float(arr[-1])
    return VariableStatistics(
        count=n,
        mean=mean,
        std_dev=float(np.sqrt(variance)),
        variance=variance,
        min=lo,
        max=hi,
        median=float(arr[n // 2]),
        range=hi - lo,
    )


def numeric_reading(value: Any) -> float | None:
    """Finite float for numbers and numeric strings, None otherwise."""
    if is_empty_value(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and NUMBER_PATTERN.match(value.strip()):
        return float(value.strip())
    return None


def extract_numeric_values(rows: Iterable[Row], column: str) -> list[float]:
    """Numeric sample of ``column``: numbers and numeric strings only.

    None, "", NaN, infinities and booleans are skipped (they are NOT read as 0).
    """
    out: list[float] = []
    for row in rows:
        number = numeric_reading(row.get(column))
        if number is not None:
            out.append(number)
    return out
