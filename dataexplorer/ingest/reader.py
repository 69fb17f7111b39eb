from __future__ import annotations

import json
import math
import zipfile
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import DataExplorerError

"""Dataset file reader.

Decodes a file into the raw ``{"data": [...], "meta": {...}}`` payload that
pipeline.process_data() accepts. Values are left as raw strings wherever the
format allows it, so type coercion happens in one place (services.coercion).

- .csv        pandas.read_csv(dtype=str, keep_default_na=False)
- .xlsx       pandas.read_excel (first sheet, openpyxl engine)
- .json       array of row objects, or an object with a "data" array
"""

__all__ = [
    "SUPPORTED_SUFFIXES",
    "ReadError",
    "read_dataset_file",
]

# .xls (BIFF) は xlrd が必要なため対象外
SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".json")

# openpyxl が壊れた xlsx に対して送出する例外
_EXCEL_LOAD_ERRORS = (ValueError, KeyError, zipfile.BadZipFile, InvalidFileException)


class ReadError(DataExplorerError):
    """Raised when a file cannot be decoded into rows."""


def _cell(value: Any) -> Any:
    # pandas の NaN / NaT は None に寄せる
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    return value


def _frame_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    columns = [str(c) for c in df.columns]
    rows: list[dict[str, Any]] = []
    for raw in df.itertuples(index=False, name=None):
        rows.append({col: _cell(val) for col, val in zip(columns, raw, strict=False)})
    return rows


def _read_csv(path: Path) -> list[dict[str, Any]]:
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ReadError(f"invalid csv {path.name}: {e}") from e
    return _frame_rows(df)


def _read_excel(path: Path) -> list[dict[str, Any]]:
    try:
        df = pd.read_excel(path, sheet_name=0, dtype=object, engine="openpyxl")
    except _EXCEL_LOAD_ERRORS as e:
        raise ReadError(f"invalid excel file {path.name}: {e}") from e
    return _frame_rows(df)


def _read_json(path: Path) -> tuple[list[Any], dict[str, Any]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ReadError(f"invalid json {path.name}: {e}") from e
    if isinstance(payload, list):
        return payload, {}
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        meta = payload.get("meta") if isinstance(payload.get("meta"), dict) else {}
        return payload["data"], dict(meta)
    raise ReadError(f"json {path.name} must be an array or an object with a 'data' array")


def read_dataset_file(path: Path) -> dict[str, Any]:
    """Decode ``path`` into ``{"data": rows, "meta": {...}}``.

    Raises:
        ReadError: missing file, unsupported suffix or undecodable content
    """
    path = Path(path)
    if not path.exists():
        raise ReadError(f"file not found: {path}")
    suffix = path.suffix.lower()
    meta: dict[str, Any] = {}
    if suffix == ".csv":
        data: list[Any] = _read_csv(path)
    elif suffix == ".xlsx":
        data = _read_excel(path)
    elif suffix == ".json":
        data, meta = _read_json(path)
    else:
        raise ReadError(
            f"unsupported file type: {path.name}",
            details={"supported": SUPPORTED_SUFFIXES},
        )
    meta.setdefault("datasetName", path.stem)
    meta.setdefault("source", path.name)
    return {"data": data, "meta": meta}
