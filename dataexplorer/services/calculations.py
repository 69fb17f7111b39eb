from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from ..models.probability import ProbabilityResult
from .export import rows_to_csv

"""Bounded history of probability calculations.

Newest first, capped at CALCULATION_HISTORY_LIMIT entries. Exported as CSV
with the column set expected by reporting collaborators.
"""

__all__ = [
    "CALCULATION_HISTORY_LIMIT",
    "CSV_HEADER",
    "CalculationRecord",
    "CalculationHistory",
]

CALCULATION_HISTORY_LIMIT = 20
CSV_HEADER = ("Timestamp", "Tipo", "Calculo", "Variable", "Media", "Desviacion_Estandar", "Probabilidad")

_MODE_LABELS = {
    "exact": "Exacta",
    "greater": "Mayor que",
    "less": "Menor que",
    "range": "Entre rangos",
}


@dataclass(frozen=True)
class CalculationRecord:
    timestamp: str
    variable: str
    result: ProbabilityResult


class CalculationHistory:
    """In-memory calculation log (single writer)."""

    def __init__(self, limit: int = CALCULATION_HISTORY_LIMIT) -> None:
        self.limit = limit
        self._records: list[CalculationRecord] = []

    def add(self, variable: str, result: ProbabilityResult) -> CalculationRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        record = CalculationRecord(timestamp=ts, variable=variable, result=result)
        self._records = [record, *self._records][: self.limit]
        return record

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[CalculationRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records = []

    def to_csv(self) -> str:
        rows = [
            {
                "Timestamp": r.timestamp,
                "Tipo": _MODE_LABELS[r.result.query.mode.value],
                "Calculo": r.result.query.expression,
                "Variable": r.variable,
                "Media": f"{r.result.mean:.4f}",
                "Desviacion_Estandar": f"{r.result.std_dev:.4f}",
                "Probabilidad": f"{r.result.probability:.6f}",
            }
            for r in self._records
        ]
        return rows_to_csv(rows, CSV_HEADER)
