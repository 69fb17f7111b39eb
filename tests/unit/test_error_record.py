from __future__ import annotations

import json

from dataexplorer.errors import EmptySampleError, InvalidInputError
from dataexplorer.ingest.reader import ReadError
from dataexplorer.models.error_record import ErrorRecord

"""Unit tests for ErrorRecord model."""


def test_error_record_create_and_serialize():
    rec = ErrorRecord.create(
        source="ventas.csv",
        operation="read",
        error_type="READ_ERROR",
        message="invalid csv ventas.csv",
    )

    assert rec.source == "ventas.csv"
    assert rec.operation == "read"

    data = json.loads(rec.to_json_line())
    assert data["error_type"] == "READ_ERROR"
    assert "timestamp" in data and data["timestamp"].endswith("Z")
    assert set(data.keys()) == {"timestamp", "source", "operation", "error_type", "message"}


def test_error_type_from_exception_class():
    assert ErrorRecord.from_exception("a.csv", "read", ReadError("x")).error_type == "READ_ERROR"
    assert ErrorRecord.from_exception("a.csv", "process", InvalidInputError("x")).error_type == "INVALID_INPUT_ERROR"
    assert ErrorRecord.from_exception("a.csv", "process", EmptySampleError("x")).error_type == "EMPTY_SAMPLE_ERROR"
    assert ErrorRecord.from_exception("a.csv", "read", FileNotFoundError("x")).error_type == "FILE_NOT_FOUND_ERROR"
    assert ErrorRecord.from_exception("a.csv", "read", OSError("x")).error_type == "OS_ERROR"


def test_error_record_keeps_non_ascii_message():
    rec = ErrorRecord.from_exception("año.csv", "process", InvalidInputError("sin datos: año"))
    line = rec.to_json_line()
    assert "año" in line
    assert json.loads(line)["message"] == "sin datos: año"
