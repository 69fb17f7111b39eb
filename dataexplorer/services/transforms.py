from __future__ import annotations

import locale
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from functools import cmp_to_key
from typing import TYPE_CHECKING, Any

from ..errors import UnsupportedOperationError
from ..models.dataset import Row
from ..models.transformation import (
    AggregationSpec,
    FilterCondition,
    PivotSpec,
    SortKey,
    Transformation,
    TransformationType,
)
from .coercion import coerce_value, is_empty_value, to_instant

if TYPE_CHECKING:
    from .store import DatasetStore

"""Transform engine: filter, sort, aggregate (group-by) and pivot.

Every operation is pure: the input rows are left untouched and a new list
of new row dicts is returned. Malformed parameters make the operation a
no-op (a copy of the input is returned). An unknown transformation type or
aggregation function raises UnsupportedOperationError.
"""

__all__ = [
    "FILTER_OPERATORS",
    "AGGREGATE_FUNCTIONS",
    "PIVOT_FUNCTIONS",
    "filter_rows",
    "sort_rows",
    "aggregate_rows",
    "pivot_rows",
    "apply_transformation",
    "compare_values",
    "format_label",
]

logger = logging.getLogger(__name__)

FILTER_OPERATORS = (
    "eq", "neq", "gt", "lt", "gte", "lte",
    "contains", "startsWith", "endsWith", "between", "in",
)
_OPERATOR_ALIASES = {
    "equals": "eq",
    "ne": "neq",
    "not_equals": "neq",
    "starts_with": "startsWith",
    "ends_with": "endsWith",
}

AGGREGATE_FUNCTIONS = (
    "sum", "avg", "average", "min", "max", "count", "count_distinct", "first", "last", "list",
)
PIVOT_FUNCTIONS = ("sum", "avg", "average", "min", "max", "count", "first", "last", "list")


def _copy_rows(rows: list[Row]) -> list[Row]:
    return [dict(r) for r in rows]


def _as_number(value: Any) -> float:
    """Numeric reading of a cell; anything non-numeric counts as 0."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return 0.0 if is_empty_value(value) else float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_label(value: Any) -> str:
    """String form used for pivot column names and ``list`` outputs."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _key_part(value: Any) -> Any:
    """Hashable grouping key for a cell value."""
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, datetime):
        return ("date", to_instant(value))
    try:
        hash(value)
    except TypeError:
        return ("repr", repr(value))
    return value


# ---------------------------------------------------------------------------
# filter
# ---------------------------------------------------------------------------

def _as_datetime(value: Any) -> Any:
    # YAML の日付リテラルは date になるため UTC 0時の datetime に揃える
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    return value


def _strict_equal(a: Any, b: Any) -> bool:
    a, b = _as_datetime(a), _as_datetime(b)
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return a == b
    if isinstance(a, datetime) and isinstance(b, datetime):
        return to_instant(a) == to_instant(b)
    return type(a) is type(b) and a == b


def _ordering(a: Any, b: Any) -> int | None:
    """Three-way comparison for gt/lt/...; None when not comparable."""
    if a is None or b is None:
        return None
    a, b = _as_datetime(a), _as_datetime(b)
    if isinstance(a, datetime) and isinstance(b, str):
        b = coerce_value(b)
    if isinstance(a, datetime) and isinstance(b, datetime):
        a, b = to_instant(a), to_instant(b)
    try:
        return -1 if a < b else (1 if a > b else 0)
    except TypeError:
        return None


def _condition_holds(row: Row, cond: FilterCondition) -> bool:
    if not cond.column or not cond.operator:
        return True
    op = _OPERATOR_ALIASES.get(cond.operator, cond.operator)
    field_value = row.get(cond.column)
    value = cond.value

    if op == "eq":
        return _strict_equal(field_value, value)
    if op == "neq":
        return not _strict_equal(field_value, value)
    if op in ("gt", "lt", "gte", "lte"):
        order = _ordering(field_value, value)
        if order is None:
            return False
        return {"gt": order > 0, "lt": order < 0, "gte": order >= 0, "lte": order <= 0}[op]
    if op in ("contains", "startsWith", "endsWith"):
        # 文字列フィールドのみ対象
        if not isinstance(field_value, str):
            return False
        haystack = field_value.lower()
        needle = format_label(value).lower() if not isinstance(value, str) else value.lower()
        if op == "contains":
            return needle in haystack
        if op == "startsWith":
            return haystack.startswith(needle)
        return haystack.endswith(needle)
    if op == "between":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            return False
        low, high = _ordering(field_value, value[0]), _ordering(field_value, value[1])
        return low is not None and high is not None and low >= 0 and high <= 0
    if op == "in":
        return isinstance(value, (list, tuple)) and any(_strict_equal(field_value, v) for v in value)
    return True


def filter_rows(rows: list[Row], params: Mapping[str, Any] | None) -> list[Row]:
    """Keep the rows for which every condition holds (logical AND).

    params: {"conditions": [{"column", "operator", "value"}, ...]}
    """
    conditions_raw = params.get("conditions") if isinstance(params, Mapping) else None
    if not isinstance(conditions_raw, list):
        return _copy_rows(rows)
    conditions = [c for c in (FilterCondition.from_dict(raw) for raw in conditions_raw) if c is not None]
    return [dict(row) for row in rows if all(_condition_holds(row, c) for c in conditions)]


# ---------------------------------------------------------------------------
# sort
# ---------------------------------------------------------------------------

def _is_null(value: Any) -> bool:
    return value is None or (isinstance(value, float) and value != value)


def compare_values(a: Any, b: Any) -> int:
    """Ascending comparison with nulls first.

    null vs null = 0, null vs value = -1, value vs null = 1. Datetimes
    compare by instant, strings with the active locale collation, anything
    else by natural ordering (falling back to string form for mixed types).
    """
    if _is_null(a):
        return 0 if _is_null(b) else -1
    if _is_null(b):
        return 1
    if isinstance(a, datetime) and isinstance(b, datetime):
        diff = to_instant(a) - to_instant(b)
        return -1 if diff < 0 else (1 if diff > 0 else 0)
    if isinstance(a, str) and isinstance(b, str):
        c = locale.strcoll(a, b)
        return -1 if c < 0 else (1 if c > 0 else 0)
    try:
        return -1 if a < b else (1 if a > b else 0)
    except TypeError:
        sa, sb = format_label(a), format_label(b)
        return -1 if sa < sb else (1 if sa > sb else 0)


def sort_rows(rows: list[Row], params: Mapping[str, Any] | None) -> list[Row]:
    """Multi-key stable sort.

    params: {"columns": [{"column", "direction": "asc" | "desc"}, ...]}
    The first non-zero key comparison wins; the direction sign is applied
    after the null ordering.
    """
    columns_raw = params.get("columns") if isinstance(params, Mapping) else None
    if not isinstance(columns_raw, list) or not columns_raw:
        return _copy_rows(rows)
    keys = [k for k in (SortKey.from_dict(raw) for raw in columns_raw) if k is not None]
    if not keys:
        return _copy_rows(rows)

    def _cmp(a: Row, b: Row) -> int:
        for key in keys:
            c = compare_values(a.get(key.column), b.get(key.column))
            if c != 0:
                return c * key.sign
        return 0

    return [dict(r) for r in sorted(rows, key=cmp_to_key(_cmp))]


# ---------------------------------------------------------------------------
# aggregate
# ---------------------------------------------------------------------------

def _distinct(values: list[Any]) -> list[Any]:
    seen: set[Any] = set()
    out: list[Any] = []
    for v in values:
        k = _key_part(v)
        if k not in seen:
            seen.add(k)
            out.append(v)
    return out


def _avg(values: list[Any]) -> float:
    return sum(_as_number(v) for v in values) / len(values)


_AGGREGATORS: dict[str, Callable[[list[Any]], Any]] = {
    "sum": lambda vs: sum(_as_number(v) for v in vs),
    "avg": _avg,
    "average": _avg,
    "min": lambda vs: min(_as_number(v) for v in vs),
    "max": lambda vs: max(_as_number(v) for v in vs),
    "count": len,
    "count_distinct": lambda vs: len(_distinct(vs)),
    "first": lambda vs: vs[0],
    "last": lambda vs: vs[-1],
    "list": lambda vs: ", ".join(format_label(v) for v in _distinct(vs)),
}


def _check_function(name: str, allowed: tuple[str, ...]) -> None:
    if name not in allowed:
        raise UnsupportedOperationError(f"unsupported aggregation function: {name}", details={"allowed": allowed})


def aggregate_rows(rows: list[Row], params: Mapping[str, Any] | None) -> list[Row]:
    """Group rows and compute per-group aggregates.

    params: {"groupBy": str | [str], "aggregations": [{"column", "function", "as"}]}

    Each output row carries the group columns, ``count`` (rows in the group)
    and one key per aggregation (``as`` or ``{function}_{column}``). Values
    that are None / "" are ignored; if nothing is left the output is None.
    """
    if not isinstance(params, Mapping):
        return _copy_rows(rows)
    group_by = params.get("groupBy")
    aggregations_raw = params.get("aggregations")
    if not group_by or not isinstance(aggregations_raw, list):
        return _copy_rows(rows)
    group_cols = [group_by] if isinstance(group_by, str) else [str(c) for c in group_by]
    specs = [s for s in (AggregationSpec.from_dict(raw) for raw in aggregations_raw) if s is not None]
    for spec in specs:
        _check_function(spec.function, AGGREGATE_FUNCTIONS)

    groups: dict[tuple[Any, ...], list[Row]] = {}
    for row in rows:
        key = tuple(_key_part(row.get(c)) for c in group_cols)
        groups.setdefault(key, []).append(row)

    result: list[Row] = []
    for members in groups.values():
        out: Row = {c: members[0].get(c) for c in group_cols}
        out["count"] = len(members)
        for spec in specs:
            values = [m.get(spec.column) for m in members]
            values = [v for v in values if not is_empty_value(v)]
            out[spec.output_name] = _AGGREGATORS[spec.function](values) if values else None
        result.append(out)
    logger.debug(f"aggregate groups={len(result)} by={group_cols}")
    return result


# ---------------------------------------------------------------------------
# pivot
# ---------------------------------------------------------------------------

@dataclass
class _CellAccumulator:
    """Running state of one (row-key, column-value) pivot cell.

    sum and count are kept separately so that ``avg`` is only divided once,
    at finalization.
    """
    sum: float = 0.0
    count: int = 0
    first: Any = None
    last: Any = None
    minimum: float | None = None
    maximum: float | None = None
    items: list[Any] = field(default_factory=list)

    def add(self, value: Any) -> None:
        number = _as_number(value)
        if self.count == 0:
            self.first = value
        self.last = value
        self.sum += number
        self.count += 1
        self.minimum = number if self.minimum is None else min(self.minimum, number)
        self.maximum = number if self.maximum is None else max(self.maximum, number)
        if all(_key_part(value) != _key_part(i) for i in self.items):
            self.items.append(value)

    def finalize(self, func: str) -> Any:
        if self.count == 0:
            return None
        if func == "sum":
            return self.sum
        if func in ("avg", "average"):
            return self.sum / self.count
        if func == "min":
            return self.minimum
        if func == "max":
            return self.maximum
        if func == "count":
            return self.count
        if func == "first":
            return self.first
        if func == "last":
            return self.last
        return ", ".join(format_label(v) for v in self.items)


def pivot_rows(rows: list[Row], params: Mapping[str, Any] | None) -> list[Row]:
    """Reshape rows into a pivot table.

    params: {"rowFields": str | [str], "columnField": str, "valueField": str,
             "aggregationFunc": "sum" (default) | avg | min | max | count | first | last | list}

    One output row per distinct row-key; one output column per distinct
    value of columnField (labels sorted as strings, ``null`` last). Cells
    without any value are None, never absent.
    """
    spec = PivotSpec.from_dict(params)
    if spec is None:
        return _copy_rows(rows)
    _check_function(spec.aggregation_func, PIVOT_FUNCTIONS)

    labels = sorted({format_label(r.get(spec.column_field)) for r in rows if not _is_null(r.get(spec.column_field))})
    if any(_is_null(r.get(spec.column_field)) for r in rows):
        labels.append("null")

    groups: dict[tuple[Any, ...], tuple[Row, dict[str, _CellAccumulator]]] = {}
    for row in rows:
        key = tuple(_key_part(row.get(f)) for f in spec.row_fields)
        if key not in groups:
            groups[key] = ({f: row.get(f) for f in spec.row_fields}, {})
        _, cells = groups[key]
        value = row.get(spec.value_field)
        if is_empty_value(value):
            continue
        label = format_label(row.get(spec.column_field)) if not _is_null(row.get(spec.column_field)) else "null"
        cells.setdefault(label, _CellAccumulator()).add(value)

    result: list[Row] = []
    for head, cells in groups.values():
        out: Row = dict(head)
        for label in labels:
            cell = cells.get(label)
            out[label] = cell.finalize(spec.aggregation_func) if cell is not None else None
        result.append(out)
    return result


# ---------------------------------------------------------------------------
# dispatch
# ---------------------------------------------------------------------------

_OPERATIONS: dict[TransformationType, Callable[[list[Row], Mapping[str, Any] | None], list[Row]]] = {
    TransformationType.FILTER: filter_rows,
    TransformationType.SORT: sort_rows,
    TransformationType.AGGREGATE: aggregate_rows,
    TransformationType.PIVOT: pivot_rows,
}


def apply_transformation(
    rows: Any,
    transformation: Transformation | Mapping[str, Any],
    store: DatasetStore | None = None,
) -> list[Row]:
    """Apply one transformation and return the new rows.

    Args:
        rows: Source rows (left unchanged)
        transformation: Transformation record or {"type", "params", "description"} mapping
        store: When given, the applied transformation is appended to its log

    Raises:
        UnsupportedOperationError: unknown transformation type / aggregation function
    """
    if isinstance(transformation, Mapping):
        transformation = Transformation.from_dict(transformation)
    try:
        ttype = TransformationType(transformation.type)
    except ValueError as e:
        raise UnsupportedOperationError(f"unsupported transformation type: {transformation.type!r}") from e

    if not isinstance(rows, list) or not rows:
        return []

    result = _OPERATIONS[ttype](rows, transformation.params)
    if store is not None:
        store.record_transformation(transformation)
    logger.info(f"transform {ttype.value}: rows {len(rows)} -> {len(result)}")
    return result
