from __future__ import annotations

from typing import Any

"""Exception taxonomy shared by the engine services.

- InvalidInputError: non-row data where a dataset is required, missing input
- UnsupportedOperationError: unknown transformation type / aggregation function
- PreconditionViolation: caller broke a documented precondition
  (EmptySampleError, InvalidRangeError)

A zero standard deviation is NOT an exception: the probability engine
treats it as a point-mass model (see services/probability.py).
"""

__all__ = [
    "DataExplorerError",
    "InvalidInputError",
    "UnsupportedOperationError",
    "PreconditionViolation",
    "EmptySampleError",
    "InvalidRangeError",
]


class DataExplorerError(Exception):
    """Base exception for the engine."""

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class InvalidInputError(DataExplorerError):
    """Input is not a dataset (or is otherwise unusable)."""


class UnsupportedOperationError(DataExplorerError):
    """Unknown transformation type or aggregation function."""


class PreconditionViolation(DataExplorerError):
    """Caller violated a documented precondition."""


class EmptySampleError(PreconditionViolation):
    """Statistics requested over an empty value sequence."""


class InvalidRangeError(PreconditionViolation):
    """Range query with lower bound >= upper bound."""
