from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..errors import UnsupportedOperationError
from ..models.dataset import Row
from .coercion import is_empty_value
from .transforms import format_label
from .variable_stats import numeric_reading

"""Heuristic field discovery for reporting collaborators.

Kept apart from the statistical core: nothing in profiler / transforms /
probability depends on these guesses.

- detect_numeric_fields: which columns are usable as a numeric variable
- find_field: best column for a semantic role (department, salary, ...),
  ranked by match_score()
- category_counts: value counts of a role column with an explicit fallback
  when the role is absent from the dataset
"""

__all__ = [
    "NUMERIC_SAMPLE_ROWS",
    "NUMERIC_MIN_SHARE",
    "NUMERIC_VALUE_RANGE",
    "FIELD_CANDIDATES",
    "FALLBACK_LABELS",
    "MISSING_VALUE_LABEL",
    "NumericFieldCandidate",
    "detect_numeric_fields",
    "match_score",
    "find_field",
    "normalize_gender",
    "CategoryCounts",
    "category_counts",
]

logger = logging.getLogger(__name__)

NUMERIC_SAMPLE_ROWS = 50
NUMERIC_MIN_SHARE = 0.5
NUMERIC_MIN_DISTINCT = 2
NUMERIC_MIN_VALID = 3
NUMERIC_VALUE_RANGE = (0.0, 999999.0)

FIELD_CANDIDATES: dict[str, tuple[str, ...]] = {
    "department": ("departamento", "department", "dept", "area"),
    "salary": ("salario", "salary", "sueldo", "wage", "ingresos"),
    "gender": ("genero", "gender", "sexo", "sex"),
    "age": ("edad", "age", "años", "years", "edades"),
    "location": (
        "ubicacion", "location", "ciudad", "city", "lugar", "place", "origen",
        "origin", "residencia", "residence", "direccion", "address", "provincia",
        "province", "estado", "state", "region", "pais", "country", "donde",
        "dónde", "de_donde", "de_dónde", "procedencia", "localidad",
    ),
}

FALLBACK_LABELS: dict[str, str] = {
    "department": "Sin departamento",
    "salary": "Sin datos salariales",
    "gender": "Sin especificar",
    "age": "Sin datos de edad",
    "location": "Sin ubicación",
}
MISSING_VALUE_LABEL = "Sin especificar"


@dataclass(frozen=True)
class NumericFieldCandidate:
    field: str
    count: int
    share: float
    values: list[float]

    @property
    def label(self) -> str:
        return f"{self.field} ({self.count} valores numéricos)"


def detect_numeric_fields(rows: Sequence[Row]) -> list[NumericFieldCandidate]:
    """Columns that look like numeric variables, best candidates first.

    Only the first ``NUMERIC_SAMPLE_ROWS`` rows are inspected. A column
    qualifies when at least half of its non-empty values read as numbers in
    ``NUMERIC_VALUE_RANGE``, with at least 2 distinct and 3 valid values.
    Ordering is by numeric share, descending (ties keep column order).
    """
    if not rows:
        return []
    sample = list(rows[:NUMERIC_SAMPLE_ROWS])
    lo, hi = NUMERIC_VALUE_RANGE
    found: list[NumericFieldCandidate] = []
    for name in sample[0].keys():
        values = [row.get(name) for row in sample]
        non_empty = [v for v in values if not is_empty_value(v)]
        valid = [
            n for n in (numeric_reading(v) for v in non_empty)
            if n is not None and lo <= n <= hi
        ]
        share = len(valid) / len(non_empty) if non_empty else 0.0
        logger.debug(f"numeric check {name}: {len(valid)}/{len(non_empty)} ({share:.1%})")
        if share >= NUMERIC_MIN_SHARE and len(set(valid)) >= NUMERIC_MIN_DISTINCT and len(valid) >= NUMERIC_MIN_VALID:
            found.append(NumericFieldCandidate(field=name, count=len(valid), share=share, values=valid))
    found.sort(key=lambda c: c.share, reverse=True)
    return found


def match_score(key: str, candidates: Sequence[str], key_index: int = 0) -> tuple[int, int, int] | None:
    """Rank of column ``key`` against a candidate list (higher is better).

    Exact case-insensitive matches beat substring matches. Among exact
    matches the earlier candidate wins; among substring matches the earlier
    column wins. None when the key matches nothing.
    """
    lowered = key.lower()
    for i, cand in enumerate(candidates):
        if lowered == cand.lower():
            return (2, -i, -key_index)
    for i, cand in enumerate(candidates):
        if cand.lower() in lowered:
            return (1, -key_index, -i)
    return None


def find_field(rows: Sequence[Row], candidates: Sequence[str]) -> str | None:
    """Best matching column name of the first row, None when nothing matches."""
    if not rows:
        return None
    best: tuple[tuple[int, int, int], str] | None = None
    for idx, key in enumerate(rows[0].keys()):
        score = match_score(key, candidates, idx)
        if score is not None and (best is None or score > best[0]):
            best = (score, key)
    return best[1] if best else None


def normalize_gender(value: Any) -> str:
    text = str(value).strip().lower()
    # "female" contains "male", so the feminine forms are checked first
    if "femenino" in text or "female" in text or text == "f":
        return "Femenino"
    if "masculino" in text or "male" in text or text == "m":
        return "Masculino"
    return "Otro"


@dataclass(frozen=True)
class CategoryCounts:
    field: str | None
    labels: list[str]
    values: list[int]

    @property
    def is_fallback(self) -> bool:
        return self.field is None

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "labels": list(self.labels), "values": list(self.values)}


def category_counts(rows: Sequence[Row], role: str, fallback_label: str | None = None) -> CategoryCounts:
    """Counts per value of the column playing ``role``.

    When no column matches the role's candidates, every row is counted under
    a single fallback label (``FALLBACK_LABELS[role]`` unless given), so the
    totals still add up to the number of rows. Empty cells are counted
    under ``MISSING_VALUE_LABEL``. Gender values are normalized first.
    """
    if role not in FIELD_CANDIDATES:
        raise UnsupportedOperationError(f"unknown field role: {role}", details={"allowed": tuple(FIELD_CANDIDATES)})
    name = find_field(rows, FIELD_CANDIDATES[role])
    if name is None:
        label = fallback_label or FALLBACK_LABELS[role]
        logger.info(f"no {role} column found; counting {len(rows)} rows as '{label}'")
        return CategoryCounts(field=None, labels=[label], values=[len(rows)])

    counts: Counter[str] = Counter()
    for row in rows:
        value = row.get(name)
        if is_empty_value(value):
            counts[MISSING_VALUE_LABEL] += 1
        elif role == "gender":
            counts[normalize_gender(value)] += 1
        else:
            counts[format_label(value)] += 1
    return CategoryCounts(field=name, labels=list(counts.keys()), values=list(counts.values()))
