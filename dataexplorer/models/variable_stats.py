from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

"""VariableStatistics model for a single numeric column."""

__all__ = [
    "VariableStatistics",
]


@dataclass(frozen=True)
class VariableStatistics:
    """Summary of one numeric column.

    variance / std_dev are population figures (divide by n).
    median is the upper-middle element for even n.
    """
    count: int
    mean: float
    std_dev: float
    variance: float
    min: float
    max: float
    median: float
    range: float

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["stdDev"] = out.pop("std_dev")
        return out
