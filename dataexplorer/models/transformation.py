from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

"""Transformation records and their parameter models.

A Transformation is an immutable record of an applied operation. ``params``
keeps the caller's raw mapping; the parameter dataclasses below are parsed
from it by the transform engine. Parsing returns None on malformed input so
that the engine can treat the operation as a no-op.
"""

__all__ = [
    "TransformationType",
    "Transformation",
    "FilterCondition",
    "SortKey",
    "AggregationSpec",
    "PivotSpec",
]


class TransformationType(str, Enum):
    FILTER = "filter"
    SORT = "sort"
    AGGREGATE = "aggregate"
    PIVOT = "pivot"


@dataclass(frozen=True)
class Transformation:
    """Immutable record of a transformation request / application."""
    type: str
    params: dict[str, Any] = field(default_factory=dict)
    description: str = "Transformación aplicada"
    timestamp: str = ""  # ISO8601 UTC, set by create()

    @staticmethod
    def create(type: str, params: Mapping[str, Any] | None = None, description: str | None = None) -> Transformation:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return Transformation(
            type=type,
            params=dict(params or {}),
            description=description or "Transformación aplicada",
            timestamp=ts,
        )

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Transformation:
        return Transformation.create(
            str(data.get("type", "")),
            data.get("params") if isinstance(data.get("params"), Mapping) else {},
            data.get("description"),
        )


@dataclass(frozen=True)
class FilterCondition:
    column: str | None
    operator: str | None
    value: Any = None

    @staticmethod
    def from_dict(data: Any) -> FilterCondition | None:
        if not isinstance(data, Mapping):
            return None
        return FilterCondition(
            column=data.get("column") or None,
            operator=data.get("operator") or None,
            value=data.get("value"),
        )


@dataclass(frozen=True)
class SortKey:
    column: str
    direction: str = "asc"  # asc | desc

    @property
    def sign(self) -> int:
        return -1 if self.direction == "desc" else 1

    @staticmethod
    def from_dict(data: Any) -> SortKey | None:
        if not isinstance(data, Mapping) or not data.get("column"):
            return None
        return SortKey(column=str(data["column"]), direction=str(data.get("direction", "asc")))


@dataclass(frozen=True)
class AggregationSpec:
    column: str
    function: str
    alias: str | None = None

    @property
    def output_name(self) -> str:
        return self.alias or f"{self.function}_{self.column}"

    @staticmethod
    def from_dict(data: Any) -> AggregationSpec | None:
        if not isinstance(data, Mapping) or not data.get("column") or not data.get("function"):
            return None
        return AggregationSpec(
            column=str(data["column"]),
            function=str(data["function"]),
            alias=data.get("as"),
        )


@dataclass(frozen=True)
class PivotSpec:
    row_fields: list[str]
    column_field: str
    value_field: str
    aggregation_func: str = "sum"

    @staticmethod
    def from_dict(data: Any) -> PivotSpec | None:
        if not isinstance(data, Mapping):
            return None
        row_fields = data.get("rowFields")
        column_field = data.get("columnField")
        value_field = data.get("valueField")
        if not row_fields or not column_field or not value_field:
            return None
        if isinstance(row_fields, str):
            row_fields = [row_fields]
        return PivotSpec(
            row_fields=[str(f) for f in row_fields],
            column_field=str(column_field),
            value_field=str(value_field),
            aggregation_func=str(data.get("aggregationFunc") or "sum"),
        )
