from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from ..models.dataset import Row

"""CSV export for downstream reporting collaborators.

Header row + data rows, comma separated. Values containing a comma, a
double quote or a line break are wrapped in double quotes with inner
quotes doubled (csv.QUOTE_MINIMAL).
"""

__all__ = [
    "format_cell",
    "rows_to_csv",
]


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value != value:  # NaN
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat().replace("+00:00", "Z")
    return str(value)


def rows_to_csv(rows: Sequence[Row], fields: Sequence[str] | None = None) -> str:
    """Render rows as CSV text.

    Args:
        rows: Rows to export
        fields: Column order (default: keys of the first row)

    Returns:
        CSV text with '\\n' line endings; "" when there is nothing to export
    """
    if fields is None:
        fields = list(rows[0].keys()) if rows else []
    if not fields:
        return ""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(fields)
    for row in rows:
        writer.writerow([format_cell(row.get(f)) for f in fields])
    return buf.getvalue()
