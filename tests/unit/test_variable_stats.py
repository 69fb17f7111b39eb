from __future__ import annotations

import math

import pytest

from dataexplorer.errors import EmptySampleError, PreconditionViolation
from dataexplorer.services.variable_stats import compute_variable_statistics, extract_numeric_values


def test_edad_scenario():
    stats = compute_variable_statistics([25, 35, 45])
    assert stats.count == 3
    assert stats.mean == 35.0
    assert stats.std_dev == pytest.approx(8.165, abs=1e-3)
    assert stats.variance == pytest.approx(200 / 3)
    assert stats.median == 35.0
    assert stats.min == 25.0 and stats.max == 45.0 and stats.range == 20.0


def test_population_variance_and_upper_median_for_even_n():
    stats = compute_variable_statistics([4, 1, 3, 2])
    assert stats.variance == pytest.approx(1.25)
    assert stats.std_dev == pytest.approx(math.sqrt(1.25))
    # sorted[n // 2] -> 3, not 2.5
    assert stats.median == 3.0


def test_single_value():
    stats = compute_variable_statistics([7.5])
    assert stats.std_dev == 0.0
    assert stats.median == 7.5
    assert stats.range == 0.0


def test_empty_sample_raises():
    with pytest.raises(EmptySampleError) as e:
        compute_variable_statistics([])
    assert isinstance(e.value, PreconditionViolation)


def test_to_dict_uses_std_dev_key():
    data = compute_variable_statistics([1, 3]).to_dict()
    assert data["stdDev"] == 1.0
    assert "std_dev" not in data


def test_extract_numeric_values_skips_non_numeric():
    rows = [
        {"v": 1.0},
        {"v": "2"},
        {"v": " 3.5 "},
        {"v": None},
        {"v": ""},
        {"v": "abc"},
        {"v": True},
        {"v": float("nan")},
        {"v": float("inf")},
        {"otra": 9},
    ]
    assert extract_numeric_values(rows, "v") == [1.0, 2.0, 3.5]
