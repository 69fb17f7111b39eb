from __future__ import annotations

import re
from pathlib import Path

from dataexplorer.cli import main as cli_main

"""Exit code contract: 0 success, 2 partial failure, 1 fatal."""


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/explorer.yml 無し -> exit 1
    code = cli_main(["ingest", "data/x.csv"])
    captured = capsys.readouterr()
    assert code == 1
    assert "ERROR config:" in captured.out


def test_exit_code_all_success(write_config, employees_csv: Path, capsys):
    other = employees_csv.with_name("otros.csv")
    other.write_text("a,b\n1,2\n", encoding="utf-8")
    code = cli_main(["ingest", str(employees_csv), str(other)])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=2/2 success=2 failed=0 rows=4 history=2" in out


def test_exit_code_partial_failure(write_config, employees_csv: Path, capsys):
    broken = employees_csv.with_name("roto.json")
    broken.write_text("{", encoding="utf-8")
    code = cli_main(["ingest", str(employees_csv), str(broken)])
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY files=2/2" in out
    match = re.search(r"failed=(\d+)", out)
    assert match is not None and int(match.group(1)) == 1
    assert "ERROR roto.json:" in out


def test_exit_code_fatal_query_error(write_config, employees_csv: Path, capsys):
    code = cli_main(["stats", str(employees_csv), "--column", "no_existe"])
    captured = capsys.readouterr()
    assert code == 1
    assert "ERROR stats: unknown column: no_existe" in captured.err
    assert captured.out == ""
