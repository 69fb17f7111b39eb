from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ..models.dataset import Row

"""Type coercion and row cleaning.

coerce_value() classifies a raw scalar (typically a string coming out of a
file decoder) and converts it to its best-fit type. Rules, first match wins:

1. None / non-string        -> returned unchanged
2. empty after trimming     -> "" (not None)
3. -?digits(.digits)?       -> float
4. true / false (any case)  -> bool
5. ISO-8601 date / datetime -> datetime (only if it is a valid date)
6. otherwise                -> trimmed string

The function is pure and never raises.
"""

__all__ = [
    "CleaningOptions",
    "coerce_value",
    "clean_rows",
    "normalize_header",
    "is_empty_value",
    "to_instant",
]

NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")
ISO_DATE_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2}(\.\d{3})?(Z|[+-]\d{2}:\d{2})?)?$"
)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CleaningOptions:
    """Switches for clean_rows(); defaults mirror config `cleaning:` section."""
    remove_empty: bool = True
    convert_types: bool = True
    trim_strings: bool = True
    normalize_headers: bool = True

    @staticmethod
    def from_dict(data: Mapping[str, Any] | None) -> CleaningOptions:
        data = data or {}
        return CleaningOptions(
            remove_empty=bool(data.get("remove_empty", True)),
            convert_types=bool(data.get("convert_types", True)),
            trim_strings=bool(data.get("trim_strings", True)),
            normalize_headers=bool(data.get("normalize_headers", True)),
        )


def _parse_iso_date(text: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    # オフセット無しは UTC とみなす (日付のみ = UTC 0時)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def coerce_value(value: Any) -> Any:
    """Return the best-fit typed value for a raw scalar."""
    if value is None or not isinstance(value, str):
        return value

    trimmed = value.strip()
    if trimmed == "":
        return ""

    if NUMBER_PATTERN.match(trimmed):
        return float(trimmed)

    lowered = trimmed.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    if ISO_DATE_PATTERN.match(trimmed):
        parsed = _parse_iso_date(trimmed)
        if parsed is not None:
            return parsed

    return trimmed


def to_instant(value: datetime) -> float:
    """POSIX timestamp of a datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


def is_empty_value(value: Any) -> bool:
    """None, "" and float NaN are the engine's null markers."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    return isinstance(value, float) and math.isnan(value)


def normalize_header(key: Any) -> Any:
    if not isinstance(key, str):
        return key
    return _WHITESPACE.sub("_", key.strip()).lower()


def clean_rows(data: Any, options: CleaningOptions | None = None) -> list[Row]:
    """Clean and type a parsed row sequence.

    A single mapping is wrapped into a one-row list; any other non-list
    input yields an empty list. The input rows are never mutated.

    Args:
        data: Parsed rows (list of mappings)
        options: Cleaning switches (defaults: everything enabled)

    Returns:
        New list of new row dicts
    """
    opts = options or CleaningOptions()
    if isinstance(data, Mapping):
        data = [data]
    elif not isinstance(data, (list, tuple)):
        return []

    cleaned: list[Row] = []
    for row in data:
        if not isinstance(row, Mapping):
            continue
        if opts.remove_empty and all(is_empty_value(v) for v in row.values()):
            continue
        out: Row = {}
        for key, value in row.items():
            clean_key = normalize_header(key) if opts.normalize_headers else key
            clean_value = value
            if opts.trim_strings and isinstance(value, str):
                clean_value = value.strip()
            if opts.convert_types:
                clean_value = coerce_value(clean_value)
            out[clean_key] = clean_value
        cleaned.append(out)
    return cleaned
