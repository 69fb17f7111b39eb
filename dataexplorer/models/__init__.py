"""Domain models for the dataset exploration engine.

This package contains the dataclasses passed between the engine services:
datasets and metadata, column/variable statistics, transformation records,
probability queries and history entries.
"""

from .column_stats import ColumnStatistics, ColumnType, DatasetProfile
from .dataset import Dataset, Metadata, Row
from .error_record import ErrorRecord
from .history_entry import HistoryEntry
from .processing_result import FileStat, IngestResult
from .probability import CurvePoint, ProbabilityQuery, ProbabilityResult, QueryMode
from .transformation import (
    AggregationSpec,
    FilterCondition,
    PivotSpec,
    SortKey,
    Transformation,
    TransformationType,
)
from .variable_stats import VariableStatistics

__all__ = [
    # Dataset models
    "Dataset",
    "Metadata",
    "Row",
    "HistoryEntry",
    # Statistics models
    "ColumnStatistics",
    "ColumnType",
    "DatasetProfile",
    "VariableStatistics",
    # Transformation models
    "AggregationSpec",
    "FilterCondition",
    "PivotSpec",
    "SortKey",
    "Transformation",
    "TransformationType",
    # Probability models
    "CurvePoint",
    "ProbabilityQuery",
    "ProbabilityResult",
    "QueryMode",
    # Ingest run models
    "ErrorRecord",
    "FileStat",
    "IngestResult",
]
