from __future__ import annotations

import math

import pytest

from dataexplorer.errors import InvalidInputError, InvalidRangeError, PreconditionViolation, UnsupportedOperationError
from dataexplorer.models.probability import ProbabilityQuery, QueryMode
from dataexplorer.services.probability import (
    DEFAULT_CHART_INTERVALS,
    NormalModel,
    example_queries,
    normal_cdf,
    normal_pdf,
)


@pytest.fixture()
def edad_model() -> NormalModel:
    return NormalModel.from_values([25, 35, 45])


def test_cdf_anchor_points():
    assert normal_cdf(0) == pytest.approx(0.5, abs=1e-6)
    assert normal_cdf(-10) == pytest.approx(0.0, abs=1e-9)
    assert normal_cdf(10) == pytest.approx(1.0, abs=1e-9)


def test_cdf_methods_agree_closely():
    for z in (-2.5, -1.0, -0.3, 0.4, 1.96, 3.0):
        assert normal_cdf(z, "abramowitz_stegun") == pytest.approx(normal_cdf(z, "erf"), abs=1e-5)
    assert normal_cdf(1.96, "erf") == pytest.approx(0.9750021, abs=1e-6)


def test_cdf_unknown_method():
    with pytest.raises(UnsupportedOperationError):
        normal_cdf(0.0, "simpson")
    with pytest.raises(UnsupportedOperationError):
        NormalModel(0.0, 1.0, cdf_method="simpson")


def test_pdf():
    assert normal_pdf(0.0) == pytest.approx(1 / math.sqrt(2 * math.pi))
    assert normal_pdf(5.0, 5.0, 0.0) == 0.0


def test_edad_scenario_less_than_mean(edad_model):
    assert edad_model.mean == 35.0
    assert edad_model.std_dev == pytest.approx(8.165, abs=1e-3)
    assert edad_model.less(35) == pytest.approx(0.5, abs=1e-6)
    assert edad_model.greater(35) == pytest.approx(0.5, abs=1e-6)


def test_exact_is_unit_width_window(edad_model):
    expected = edad_model.cdf(35.5) - edad_model.cdf(34.5)
    assert edad_model.exact(35) == pytest.approx(expected)
    assert 0.0 < edad_model.exact(35) < 0.1


def test_range_monotonicity(edad_model):
    narrow = edad_model.between(30, 40)
    wider = edad_model.between(25, 45)
    widest = edad_model.between(0, 100)
    assert 0.0 <= narrow <= wider <= widest <= 1.0
    assert widest == pytest.approx(1.0, abs=1e-4)


def test_range_requires_lower_below_upper(edad_model):
    with pytest.raises(InvalidRangeError) as e:
        edad_model.between(40, 30)
    assert isinstance(e.value, PreconditionViolation)
    with pytest.raises(InvalidRangeError):
        edad_model.between(30, 30)


def test_probabilities_are_clamped_and_finite(edad_model):
    for q in (
        ProbabilityQuery(QueryMode.GREATER, -1e9),
        ProbabilityQuery(QueryMode.LESS, 1e9),
        ProbabilityQuery(QueryMode.EXACT, 1e6),
    ):
        p = edad_model.probability(q).probability
        assert 0.0 <= p <= 1.0
        assert math.isfinite(p)


def test_non_finite_inputs_rejected(edad_model):
    with pytest.raises(InvalidInputError):
        edad_model.less(float("nan"))
    with pytest.raises(InvalidInputError):
        edad_model.probability(ProbabilityQuery(QueryMode.RANGE, 1.0, None))
    with pytest.raises(InvalidInputError):
        NormalModel(float("inf"), 1.0)
    with pytest.raises(InvalidInputError):
        NormalModel(0.0, -1.0)


def test_degenerate_model_is_a_point_mass():
    model = NormalModel.from_values([5, 5, 5])
    assert model.degenerate
    assert model.z_score(6) is None
    assert model.less(5) == 1.0
    assert model.less(4.9) == 0.0
    assert model.greater(5) == 0.0
    assert model.greater(4) == 1.0
    assert model.exact(5) == 1.0
    assert model.exact(7) == 0.0
    assert model.between(4, 6) == 1.0
    result = model.probability(ProbabilityQuery(QueryMode.LESS, 5))
    assert result.degenerate is True
    assert result.to_dict()["stdDev"] == 0.0


def test_result_to_dict(edad_model):
    data = edad_model.probability(ProbabilityQuery(QueryMode.RANGE, 30, 40)).to_dict()
    assert data["mode"] == "range"
    assert data["expression"] == "P(30 < X < 40)"
    assert data["mean"] == 35.0


def test_curve_is_finite_and_restartable(edad_model):
    query = ProbabilityQuery(QueryMode.LESS, 35)
    curve = edad_model.curve(query)
    points = list(curve)
    assert len(points) == len(curve) == DEFAULT_CHART_INTERVALS + 1
    assert list(curve) == points
    assert points[0].x == pytest.approx(35 - 4 * edad_model.std_dev)
    assert points[-1].x == pytest.approx(35 + 4 * edad_model.std_dev)
    peak = max(points, key=lambda p: p.density)
    assert peak.x == pytest.approx(35.0)
    assert all(p.in_region == (p.x <= 35) for p in points)


def test_curve_exact_region_and_intervals(edad_model):
    curve = edad_model.curve(ProbabilityQuery(QueryMode.EXACT, 35), intervals=16)
    shaded = [p.x for p in curve if p.in_region]
    assert len(list(curve)) == 17
    assert shaded and all(abs(x - 35) <= 0.5 for x in shaded)
    with pytest.raises(InvalidInputError):
        edad_model.curve(intervals=0)


def test_degenerate_curve_single_point():
    model = NormalModel(3.0, 0.0)
    points = list(model.curve())
    assert len(points) == 1
    assert points[0].x == 3.0 and points[0].density == 0.0


def test_example_queries(edad_model):
    assert [q.expression for q in example_queries(edad_model)] == [
        "P(X ≈ 35)",
        "P(X > 43)",
        "P(X < 27)",
        "P(31 < X < 39)",
    ]


def test_example_queries_degenerate_skips_range():
    model = NormalModel(10.0, 0.0)
    modes = [q.mode for q in example_queries(model)]
    assert modes == [QueryMode.EXACT, QueryMode.GREATER, QueryMode.LESS]
