# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from dataexplorer.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    # ハンドラは生成時の sys.stdout を保持するため毎テストで作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DATAEXPLORER_HISTORY_PATH", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """history_path: ./data/history.json
max_history: 5
sample_rows: 100
cleaning:
  remove_empty: true
  convert_types: true
  trim_strings: true
  normalize_headers: true
probability:
  cdf_method: abramowitz_stegun
  chart_intervals: 200
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "explorer.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def employees_rows() -> list[dict]:
    """Typed rows as produced by clean_rows()."""
    return [
        {"nombre": "Ana", "edad": 25.0, "departamento": "Ventas", "salario": 30000.0, "activo": True},
        {"nombre": "Luis", "edad": 35.0, "departamento": "IT", "salario": 45000.0, "activo": False},
        {"nombre": "Marta", "edad": 45.0, "departamento": "Ventas", "salario": 52000.0, "activo": True},
    ]


@pytest.fixture()
def employees_csv(temp_workdir: Path) -> Path:
    f = temp_workdir / "data" / "empleados.csv"
    f.write_text(
        "Nombre,Edad,Departamento,Salario,Fecha Alta\n"
        "Ana,25,Ventas,30000,2023-01-15\n"
        "Luis,35,IT,45000,2022-06-01\n"
        "Marta,45,Ventas,52000,2021-03-20\n",
        encoding="utf-8",
    )
    return f
