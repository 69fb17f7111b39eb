from __future__ import annotations

from .main import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, main

__all__ = ["main", "EXIT_SUCCESS_ALL", "EXIT_PARTIAL_FAILURE", "EXIT_FATAL"]
