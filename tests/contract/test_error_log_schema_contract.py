from __future__ import annotations

import json
import pathlib

import jsonschema
import pytest

from dataexplorer.errors import InvalidInputError
from dataexplorer.models.error_record import ErrorRecord

"""Error log JSON schema contract."""

SCHEMA_PATH = pathlib.Path(__file__).resolve().parents[2] / "dataexplorer" / "contracts" / "error_log_schema.json"


@pytest.fixture()
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_error_record_line_matches_schema(schema):
    record = ErrorRecord.from_exception("empleados.csv", "process", InvalidInputError("no data"))
    jsonschema.validate(json.loads(record.to_json_line()), schema)


def test_error_log_schema_valid_example(schema):
    record = {
        "timestamp": "2025-09-26T10:12:33Z",
        "source": "ventas.xlsx",
        "operation": "read",
        "error_type": "READ_ERROR",
        "message": "invalid excel file ventas.xlsx",
    }
    jsonschema.validate(record, schema)


def test_error_log_schema_rejects_extra_key(schema):
    record = {
        "timestamp": "2025-09-26T10:12:33Z",
        "source": "ventas.xlsx",
        "operation": "read",
        "error_type": "READ_ERROR",
        "message": "x",
        "extra": "not allowed",
    }
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(record, schema)


def test_error_log_schema_rejects_lowercase_type(schema):
    record = {
        "timestamp": "2025-09-26T10:12:33Z",
        "source": "ventas.xlsx",
        "operation": "read",
        "error_type": "read_error",
        "message": "x",
    }
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(record, schema)
