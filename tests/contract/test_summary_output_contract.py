from __future__ import annotations

import re
from pathlib import Path

from dataexplorer.cli import main as cli_main

"""SUMMARY line contract."""

SUMMARY_RE = re.compile(
    r"^SUMMARY files=(\d+)/(\d+) success=(\d+) failed=(\d+) rows=(\d+) history=(\d+) "
    r"elapsed_sec=[0-9]+(\.[0-9]+)? throughput_rps=[0-9]+(\.[0-9]+)?$"
)


def test_summary_line_format(write_config, employees_csv: Path, capsys):
    cli_main(["ingest", str(employees_csv)])
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("SUMMARY")]
    assert len(lines) == 1
    m = SUMMARY_RE.match(lines[0])
    assert m is not None, lines[0]
    files_done, files_total, success, failed, rows, history = (int(m.group(i)) for i in range(1, 7))
    assert files_done == files_total == 1
    assert (success, failed, rows, history) == (1, 0, 3, 1)
