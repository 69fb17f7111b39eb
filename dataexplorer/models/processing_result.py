from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Ingest run result models.

Aggregates per-file outcomes of a multi-file ingest run into the figures
rendered on the SUMMARY line.
"""

__all__ = [
    "FileStat",
    "IngestResult",
]


@dataclass(frozen=True)
class FileStat:
    """Per-file ingest statistics."""
    file_name: str  # ファイル名
    status: str  # success/failed
    rows: int  # 成功時行数
    columns: int
    elapsed_seconds: float
    error: str | None = None  # 失敗理由


@dataclass(frozen=True)
class IngestResult:
    """Aggregated results of an ingest run."""
    success_files: int
    failed_files: int
    total_rows: int  # 取込総行数
    history_size: int  # 取込後の履歴件数
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
