from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Probability query / result models for the normal probability engine."""

__all__ = [
    "QueryMode",
    "ProbabilityQuery",
    "ProbabilityResult",
    "CurvePoint",
]


class QueryMode(str, Enum):
    EXACT = "exact"      # P(x-0.5 < X < x+0.5)
    GREATER = "greater"  # P(X > x)
    LESS = "less"        # P(X < x)
    RANGE = "range"      # P(lower < X < upper)


@dataclass(frozen=True)
class ProbabilityQuery:
    mode: QueryMode
    value: float
    upper: float | None = None  # RANGE only; value is the lower bound

    @property
    def expression(self) -> str:
        v = _fmt(self.value)
        if self.mode is QueryMode.EXACT:
            return f"P(X ≈ {v})"
        if self.mode is QueryMode.GREATER:
            return f"P(X > {v})"
        if self.mode is QueryMode.LESS:
            return f"P(X < {v})"
        return f"P({v} < X < {_fmt(self.upper)})"


@dataclass(frozen=True)
class ProbabilityResult:
    query: ProbabilityQuery
    probability: float
    mean: float
    std_dev: float
    degenerate: bool = False  # std_dev == 0 (point-mass model)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.query.mode.value,
            "expression": self.query.expression,
            "probability": self.probability,
            "mean": self.mean,
            "stdDev": self.std_dev,
            "degenerate": self.degenerate,
        }


@dataclass(frozen=True)
class CurvePoint:
    x: float
    density: float
    in_region: bool


def _fmt(value: float | None) -> str:
    if value is None:
        return "?"
    if float(value).is_integer():
        return str(int(value))
    return str(value)
