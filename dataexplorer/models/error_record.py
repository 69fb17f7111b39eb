from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

Defines the structured record written by ErrorLogBuffer (JSON Lines). The
record shape is fixed by contracts/error_log_schema.json: no extra keys.
"""

__all__ = [
    "ErrorRecord",
]

# ReadError -> READ_ERROR, OSError -> OS_ERROR
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: File name or URL being processed
        operation: Pipeline step that failed (read, process, transform, ...)
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable error description
    """
    timestamp: str  # ISO8601 UTC
    source: str
    operation: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(source: str, operation: str, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            operation=operation,
            error_type=error_type,
            message=message,
        )

    @staticmethod
    def from_exception(source: str, operation: str, exc: BaseException) -> ErrorRecord:
        """Build a record whose error_type is derived from the exception class name."""
        error_type = _CAMEL_BOUNDARY.sub("_", type(exc).__name__).upper()
        return ErrorRecord.create(source, operation, error_type, str(exc))

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format."""
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
