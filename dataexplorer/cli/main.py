from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, ExplorerConfig, load_config
from ..errors import DataExplorerError, InvalidInputError
from ..ingest.reader import read_dataset_file
from ..logging.init import log_summary, setup_logging
from ..models.dataset import Dataset
from ..models.probability import ProbabilityQuery, QueryMode
from ..services.calculations import CalculationHistory
from ..services.export import format_cell, rows_to_csv
from ..services.field_detection import detect_numeric_fields
from ..services.pipeline import process_data, run_ingest
from ..services.probability import NormalModel, example_queries
from ..services.profiler import profile
from ..services.storage import HistoryStorage, StorageError
from ..services.store import DatasetStore
from ..services.summary import render_summary_line
from ..services.transforms import apply_transformation
from ..services.variable_stats import compute_variable_statistics, extract_numeric_values

"""CLI implementation for ``python -m dataexplorer.cli <command>``.

Commands:
- ingest FILE...     decode, clean, add to history, persist the snapshot
- profile FILE       per-column types and statistics
- stats FILE         variable statistics of one numeric column
- probability FILE   normal-model probability query on one column
- transform FILE     apply a YAML list of transformations
- history            list (or clear) the persisted history

Exit codes: 0 success, 2 partial ingest failure, 1 fatal (config, input,
unknown column, persistence). Query commands print JSON on stdout and log
to stderr; ingest logs (and prints its SUMMARY line) on stdout.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

JSON_COMMANDS = {"profile", "stats", "probability", "transform", "history"}


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (values override the process environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="dataexplorer", description="Dataset transformation & statistical inference")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Process files into the history")
    ingest.add_argument("files", nargs="+", type=Path)

    prof = sub.add_parser("profile", help="Profile every column of a file")
    prof.add_argument("file", type=Path)

    stats = sub.add_parser("stats", help="Variable statistics of a numeric column")
    stats.add_argument("file", type=Path)
    stats.add_argument("--column", required=True)

    prob = sub.add_parser("probability", help="Normal-model probability query")
    prob.add_argument("file", type=Path)
    prob.add_argument("--column", required=True)
    prob.add_argument("--mode", required=True, choices=[m.value for m in QueryMode])
    prob.add_argument("--value", required=True, type=float)
    prob.add_argument("--upper", type=float, help="Upper bound (range mode)")
    prob.add_argument("--curve", action="store_true", help="Include the density curve points")
    prob.add_argument("--export-csv", type=Path, help="Write the calculation log (query + examples) as CSV")

    trans = sub.add_parser("transform", help="Apply transformations from a YAML file")
    trans.add_argument("file", type=Path)
    trans.add_argument("--spec", required=True, type=Path)
    trans.add_argument("--output", type=Path, help="Write the result as CSV instead of JSON")

    hist = sub.add_parser("history", help="List the persisted dataset history")
    hist.add_argument("--clear", action="store_true", help="Delete the persisted history")
    return p.parse_args(argv)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_cell(value)
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default))


def _load_dataset(path: Path, cfg: ExplorerConfig) -> Dataset:
    # 単発コマンドは永続化しない一時ストアで処理
    store = DatasetStore(max_history=cfg.max_history, sample_rows=cfg.sample_rows)
    return process_data(read_dataset_file(path), store, cfg.cleaning)


def _numeric_column(dataset: Dataset, column: str) -> list[float]:
    if column not in dataset.fields:
        raise InvalidInputError(f"unknown column: {column}", details={"fields": dataset.fields})
    return extract_numeric_values(dataset.rows, column)


def _cmd_ingest(args: argparse.Namespace, cfg: ExplorerConfig, logger: logging.Logger) -> int:
    storage = HistoryStorage(Path(cfg.history_path))
    store = storage.load_store(max_history=cfg.max_history, sample_rows=cfg.sample_rows)
    logger.info(f"Ingesting {len(args.files)} file(s); history={len(store)}")

    result = run_ingest(args.files, store, cfg.cleaning)
    if result.success_files > 0:
        storage.save(store)
        logger.info(f"history saved: {storage.path}")

    summary_line = render_summary_line(len(args.files), result)
    # log_summary が "SUMMARY " を付与する
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _cmd_profile(args: argparse.Namespace, cfg: ExplorerConfig) -> int:
    dataset = _load_dataset(args.file, cfg)
    _print_json({
        "dataset": dataset.meta.dataset_name,
        "profile": profile(dataset.rows).to_dict(),
        "numericFields": [c.field for c in detect_numeric_fields(dataset.rows)],
    })
    return EXIT_SUCCESS_ALL


def _cmd_stats(args: argparse.Namespace, cfg: ExplorerConfig) -> int:
    dataset = _load_dataset(args.file, cfg)
    values = _numeric_column(dataset, args.column)
    stats = compute_variable_statistics(values)
    _print_json({"column": args.column, "statistics": stats.to_dict()})
    return EXIT_SUCCESS_ALL


def _cmd_probability(args: argparse.Namespace, cfg: ExplorerConfig) -> int:
    dataset = _load_dataset(args.file, cfg)
    values = _numeric_column(dataset, args.column)
    model = NormalModel.from_values(values, cfg.cdf_method)
    query = ProbabilityQuery(QueryMode(args.mode), args.value, args.upper)
    result = model.probability(query)
    examples = [model.probability(q) for q in example_queries(model)]
    payload: dict[str, Any] = {
        "column": args.column,
        "result": result.to_dict(),
        "examples": [{"expression": r.query.expression, "probability": r.probability} for r in examples],
    }
    if args.curve:
        payload["curve"] = [
            {"x": pt.x, "density": pt.density, "inRegion": pt.in_region}
            for pt in model.curve(query, cfg.chart_intervals)
        ]
    if args.export_csv is not None:
        calculations = CalculationHistory()
        for r in reversed([result, *examples]):
            calculations.add(args.column, r)
        args.export_csv.parent.mkdir(parents=True, exist_ok=True)
        args.export_csv.write_text(calculations.to_csv(), encoding="utf-8")
        payload["export"] = str(args.export_csv)
    _print_json(payload)
    return EXIT_SUCCESS_ALL


def _read_transform_spec(path: Path) -> list[Any]:
    if not path.exists():
        raise InvalidInputError(f"transform spec not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise InvalidInputError(f"invalid transform spec yaml: {e}") from e
    if isinstance(data, dict):
        data = data.get("transformations")
    if not isinstance(data, list) or not all(isinstance(t, dict) for t in data):
        raise InvalidInputError("transform spec must be a list of {type, params} mappings")
    return data


def _cmd_transform(args: argparse.Namespace, cfg: ExplorerConfig, logger: logging.Logger) -> int:
    steps = _read_transform_spec(args.spec)
    store = DatasetStore(max_history=cfg.max_history, sample_rows=cfg.sample_rows)
    dataset = process_data(read_dataset_file(args.file), store, cfg.cleaning)
    rows = dataset.rows
    for step in steps:
        rows = apply_transformation(rows, step, store)

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(rows_to_csv(rows), encoding="utf-8")
        logger.info(f"wrote {len(rows)} rows: {args.output}")
        _print_json({"rows": len(rows), "output": str(args.output), "transformations": len(store.transformations)})
    else:
        _print_json({"rows": rows, "transformations": [t.description for t in store.transformations]})
    return EXIT_SUCCESS_ALL


def _cmd_history(args: argparse.Namespace, cfg: ExplorerConfig) -> int:
    storage = HistoryStorage(Path(cfg.history_path))
    if args.clear:
        storage.clear()
        _print_json({"cleared": True})
        return EXIT_SUCCESS_ALL
    store = storage.load_store(max_history=cfg.max_history, sample_rows=cfg.sample_rows)
    _print_json({
        "currentDatasetId": store.current_id,
        "entries": [e.to_dict() for e in store.list_entries()],
    })
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # 空リスト [] は sys.argv を読まない (テストから main([]) を呼ぶため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    stream = sys.stderr if args.command in JSON_COMMANDS else sys.stdout
    logger = setup_logging(logging.DEBUG if args.verbose else logging.INFO, stream=stream)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        if args.command == "ingest":
            return _cmd_ingest(args, cfg, logger)
        if args.command == "profile":
            return _cmd_profile(args, cfg)
        if args.command == "stats":
            return _cmd_stats(args, cfg)
        if args.command == "probability":
            return _cmd_probability(args, cfg)
        if args.command == "transform":
            return _cmd_transform(args, cfg, logger)
        return _cmd_history(args, cfg)
    except StorageError as e:
        logger.error(f"history: {e}")
        return EXIT_FATAL
    except DataExplorerError as e:
        logger.error(f"{args.command}: {e}")
        return EXIT_FATAL

