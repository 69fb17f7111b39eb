from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from ..errors import InvalidInputError, InvalidRangeError, UnsupportedOperationError
from ..models.probability import CurvePoint, ProbabilityQuery, ProbabilityResult, QueryMode
from ..models.variable_stats import VariableStatistics
from .variable_stats import compute_variable_statistics

"""Normal probability engine.

A NormalModel is fitted from (mean, std_dev) and answers four query modes,
each reduced to CDF evaluations with z = (x - mean) / std_dev:

- exact   : P(x - 0.5 < X < x + 0.5)   continuity window, width fixed at 1
- greater : 1 - CDF(z)
- less    : CDF(z)
- range   : CDF(z_max) - CDF(z_min)    lower >= upper is an error

CDF methods:
- "abramowitz_stegun" (default): rational approximation 26.2.17, absolute
  error below 7.5e-8 in theory; with the 7-digit constants used here results
  may differ from "erf" in the 4th-5th decimal
- "erf": exact evaluation through math.erf

std_dev == 0 is a degenerate point-mass model at ``mean``: CDF(x) is 1 when
x >= mean and 0 otherwise, the density is 0, and every query returns 0.0 or
1.0 without dividing by zero.
"""

__all__ = [
    "CDF_METHODS",
    "EXACT_HALF_WIDTH",
    "DEFAULT_CHART_INTERVALS",
    "normal_cdf",
    "normal_pdf",
    "NormalModel",
    "NormalCurve",
    "example_queries",
]

logger = logging.getLogger(__name__)

ABRAMOWITZ_STEGUN = "abramowitz_stegun"
ERF = "erf"
CDF_METHODS = (ABRAMOWITZ_STEGUN, ERF)

EXACT_HALF_WIDTH = 0.5
CHART_SPAN_SIGMAS = 4.0
DEFAULT_CHART_INTERVALS = 200

# Abramowitz & Stegun 26.2.17
_P = 0.2316419
_PDF_0 = 0.3989423
_B = (0.3193815, -0.3565638, 1.7814779, -1.8212560, 1.3302744)


def normal_cdf(z: float, method: str = ABRAMOWITZ_STEGUN) -> float:
    """Standard normal cumulative distribution P(Z <= z)."""
    if method == ERF:
        return 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))
    if method != ABRAMOWITZ_STEGUN:
        raise UnsupportedOperationError(f"unsupported cdf method: {method}", details={"allowed": CDF_METHODS})
    t = 1.0 / (1.0 + _P * abs(z))
    d = _PDF_0 * math.exp(-z * z / 2.0)
    b1, b2, b3, b4, b5 = _B
    prob = d * t * (b1 + t * (b2 + t * (b3 + t * (b4 + t * b5))))
    if z > 0:
        prob = 1.0 - prob
    return prob


def normal_pdf(x: float, mean: float = 0.0, std_dev: float = 1.0) -> float:
    """Gaussian density. Returns 0.0 for a degenerate (std_dev <= 0) model."""
    if std_dev <= 0:
        return 0.0
    coefficient = 1.0 / (std_dev * math.sqrt(2.0 * math.pi))
    exponent = -0.5 * ((x - mean) / std_dev) ** 2
    return coefficient * math.exp(exponent)


def _require_finite(name: str, value: float | None) -> float:
    if value is None or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInputError(f"{name} must be a finite number, got {value!r}")
    return float(value)


def _clamp(p: float) -> float:
    return min(1.0, max(0.0, p))


@dataclass(frozen=True)
class NormalModel:
    """Normal distribution fitted to a sample's mean and std_dev."""
    mean: float
    std_dev: float
    cdf_method: str = ABRAMOWITZ_STEGUN

    def __post_init__(self) -> None:
        _require_finite("mean", self.mean)
        _require_finite("std_dev", self.std_dev)
        if self.std_dev < 0:
            raise InvalidInputError(f"std_dev must be >= 0, got {self.std_dev}")
        if self.cdf_method not in CDF_METHODS:
            raise UnsupportedOperationError(f"unsupported cdf method: {self.cdf_method}")

    @staticmethod
    def from_statistics(stats: VariableStatistics, cdf_method: str = ABRAMOWITZ_STEGUN) -> NormalModel:
        return NormalModel(mean=stats.mean, std_dev=stats.std_dev, cdf_method=cdf_method)

    @staticmethod
    def from_values(values: Sequence[float], cdf_method: str = ABRAMOWITZ_STEGUN) -> NormalModel:
        return NormalModel.from_statistics(compute_variable_statistics(values), cdf_method)

    @property
    def degenerate(self) -> bool:
        return self.std_dev == 0

    def z_score(self, x: float) -> float | None:
        """(x - mean) / std_dev, None for the degenerate model."""
        if self.degenerate:
            return None
        return (x - self.mean) / self.std_dev

    def cdf(self, x: float) -> float:
        if self.degenerate:
            return 1.0 if x >= self.mean else 0.0
        return normal_cdf((x - self.mean) / self.std_dev, self.cdf_method)

    def pdf(self, x: float) -> float:
        return normal_pdf(x, self.mean, self.std_dev)

    def probability(self, query: ProbabilityQuery) -> ProbabilityResult:
        """Evaluate a probability query.

        Raises:
            InvalidInputError: non-finite query values
            InvalidRangeError: range query with value >= upper
        """
        x = _require_finite("value", query.value)
        if query.mode is QueryMode.EXACT:
            p = self.cdf(x + EXACT_HALF_WIDTH) - self.cdf(x - EXACT_HALF_WIDTH)
        elif query.mode is QueryMode.GREATER:
            p = 1.0 - self.cdf(x)
        elif query.mode is QueryMode.LESS:
            p = self.cdf(x)
        elif query.mode is QueryMode.RANGE:
            upper = _require_finite("upper", query.upper)
            if x >= upper:
                raise InvalidRangeError(f"range lower bound must be below upper bound: {x} >= {upper}")
            p = self.cdf(upper) - self.cdf(x)
        else:  # pragma: no cover (enum exhaustive)
            raise UnsupportedOperationError(f"unsupported query mode: {query.mode}")

        if self.degenerate:
            logger.debug(f"degenerate model (std_dev=0) mean={self.mean}: {query.expression}")
        return ProbabilityResult(
            query=query,
            probability=_clamp(p),
            mean=self.mean,
            std_dev=self.std_dev,
            degenerate=self.degenerate,
        )

    def exact(self, x: float) -> float:
        return self.probability(ProbabilityQuery(QueryMode.EXACT, x)).probability

    def greater(self, x: float) -> float:
        return self.probability(ProbabilityQuery(QueryMode.GREATER, x)).probability

    def less(self, x: float) -> float:
        return self.probability(ProbabilityQuery(QueryMode.LESS, x)).probability

    def between(self, lower: float, upper: float) -> float:
        return self.probability(ProbabilityQuery(QueryMode.RANGE, lower, upper)).probability

    def curve(self, query: ProbabilityQuery | None = None, intervals: int = DEFAULT_CHART_INTERVALS) -> NormalCurve:
        return NormalCurve(self, query, intervals)


def _in_region(x: float, query: ProbabilityQuery | None) -> bool:
    if query is None:
        return False
    if query.mode is QueryMode.EXACT:
        return abs(x - query.value) <= EXACT_HALF_WIDTH
    if query.mode is QueryMode.GREATER:
        return x >= query.value
    if query.mode is QueryMode.LESS:
        return x <= query.value
    return query.upper is not None and query.value <= x <= query.upper


class NormalCurve:
    """Finite, restartable sampling of the model density for chart adapters.

    Iterating yields ``intervals + 1`` CurvePoints evenly spaced over
    mean ± 4·std_dev; each point is tagged with whether it falls inside the
    queried region (for area shading). Every ``iter()`` starts over. A
    degenerate model yields the single point (mean, 0.0).
    """

    def __init__(self, model: NormalModel, query: ProbabilityQuery | None = None,
                 intervals: int = DEFAULT_CHART_INTERVALS) -> None:
        if intervals < 1:
            raise InvalidInputError(f"intervals must be >= 1, got {intervals}")
        self.model = model
        self.query = query
        self.intervals = intervals

    def __len__(self) -> int:
        return 1 if self.model.degenerate else self.intervals + 1

    def __iter__(self) -> Iterator[CurvePoint]:
        mean = self.model.mean
        if self.model.degenerate:
            yield CurvePoint(x=mean, density=0.0, in_region=_in_region(mean, self.query))
            return
        span = CHART_SPAN_SIGMAS * self.model.std_dev
        start = mean - span
        step = (2 * span) / self.intervals
        for i in range(self.intervals + 1):
            x = start + i * step
            yield CurvePoint(x=x, density=self.model.pdf(x), in_region=_in_region(x, self.query))


def _round_half_up(x: float) -> float:
    return float(math.floor(x + 0.5))


def example_queries(model: NormalModel) -> list[ProbabilityQuery]:
    """Ready-made example questions for a fitted model.

    exact round(mean), greater round(mean + σ), less round(mean - σ),
    range round(mean - σ/2) .. round(mean + σ/2) (omitted when the rounded
    bounds collapse).
    """
    mean, sd = model.mean, model.std_dev
    queries = [
        ProbabilityQuery(QueryMode.EXACT, _round_half_up(mean)),
        ProbabilityQuery(QueryMode.GREATER, _round_half_up(mean + sd)),
        ProbabilityQuery(QueryMode.LESS, _round_half_up(mean - sd)),
    ]
    low, high = _round_half_up(mean - 0.5 * sd), _round_half_up(mean + 0.5 * sd)
    if low < high:
        queries.append(ProbabilityQuery(QueryMode.RANGE, low, high))
    return queries
