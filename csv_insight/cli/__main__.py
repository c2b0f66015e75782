from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

from csv_insight.config.loader import ConfigError, load_config_or_default
from csv_insight.csvio.reader import CsvReadError, read_csv_file
from csv_insight.logging.error_log import ErrorLogBuffer
from csv_insight.logging.init import get_logger, log_summary, set_debug, setup_logging
from csv_insight.models.column_stats import DataSummary
from csv_insight.models.config_models import AnalysisConfig
from csv_insight.services import transformations
from csv_insight.services.correlation import CORRELATION_METHODS, correlation_matrix
from csv_insight.services.distribution import AnalysisError, describe_distribution, finite_or_none
from csv_insight.services.progress import ProgressTracker
from csv_insight.services.store import DataStore
from csv_insight.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and the analysis config
- Read the CSV file and load it into a DataStore
- Apply the requested transformations (delete, combine, where, sort), then undo N steps
- Print column statistics (text or JSON), optional distribution and correlation
  analytics, optional chat context and a SUMMARY line
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; a failure only warns."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except OSError as e:  # pragma: no cover
        get_logger().warning(f"failed to load .env via python-dotenv: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="csv-insight", description="CSV column statistics and transformations")
    p.add_argument("file", help="CSV file with a header row")
    p.add_argument("--config", type=Path, default=None, help="YAML analysis config")
    p.add_argument("--filter", default="", help="Search terms; rows must match every term")
    p.add_argument("--columns", default=None, help="Comma-separated columns searched by --filter")
    p.add_argument("--sort", metavar="COL", help="Sort by column")
    p.add_argument("--desc", action="store_true", help="Sort descending")
    p.add_argument("--delete", metavar="COL", action="append", default=[], help="Delete a column")
    p.add_argument("--combine", metavar="COL", help="Add <COL>_combined from all numerical columns")
    p.add_argument("--where", metavar="COL=VALUE", action="append", default=[], help="Keep matching rows")
    p.add_argument("--undo", type=int, default=0, help="Undo the last N transformations")
    p.add_argument("--context", action="store_true", help="Print the chat data context")
    p.add_argument(
        "--describe", metavar="COL", action="append", default=[], help="Print distribution stats of a numerical column"
    )
    p.add_argument("--correlation", choices=CORRELATION_METHODS, help="Print the correlation matrix of numerical columns")
    p.add_argument("--json", action="store_true", help="Print the summary as JSON")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print headers & first rows then exit")
    return p.parse_args(argv)


def _inspect_data(path: Path, cfg: AnalysisConfig) -> int:
    try:
        data = read_csv_file(
            path,
            keep_na_strings=cfg.keep_na_strings,
            null_sentinels=cfg.null_sentinels,
            encoding=cfg.encoding,
        )
    except CsvReadError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name} cols={data.columns}")
    print("  sample_rows=", data.rows[:3])
    return EXIT_SUCCESS_ALL


def _format_value(value: float | None) -> str:
    if value is None:
        return "-"
    if isinstance(value, float) and not value.is_integer():
        return f"{value:.4g}"
    return str(int(value)) if isinstance(value, float) else str(value)


def _print_stats(summary: DataSummary) -> None:
    for column in summary.headers:
        stats = summary.column_stats[column]
        kind = summary.column_kinds[column].value
        line = f"COLUMN {column} kind={kind} unique={stats.unique_values} missing={stats.missing_count}"
        if stats.has_numeric_stats:
            line += (
                f" min={_format_value(stats.min)} max={_format_value(stats.max)}"
                f" mean={_format_value(stats.mean)} median={_format_value(stats.median)}"
                f" std_dev={_format_value(stats.std_dev)}"
            )
        else:
            top = ",".join(f"{m.value}:{m.count}" for m in stats.most_common)
            line += f" top={top}"
        print(line)


def _run_transformations(store: DataStore, args: argparse.Namespace) -> int:
    """Apply CLI transformations in a fixed order; return the failure count."""
    failures = 0
    steps: list[tuple] = [(transformations.delete_column, col) for col in args.delete]
    if args.combine:
        steps.append((transformations.combine_columns, args.combine))
    for clause in args.where:
        column, sep, value = clause.partition("=")
        if not sep:
            get_logger().error(f"where: expected COL=VALUE, got '{clause}'")
            failures += 1
            continue
        steps.append((transformations.filter_by_value, column.strip(), value))
    if args.sort:
        steps.append((transformations.sort_by_column, args.sort, args.desc))

    for operation, *params in steps:
        if transformations.apply(store, operation, *params) is None:
            get_logger().error(f"{operation.__name__}: {store.error}")
            failures += 1
    for _ in range(max(args.undo, 0)):
        store.undo()
    return failures


def _print_analytics(store: DataStore, args: argparse.Namespace) -> int:
    """Print --describe and --correlation output; return the failure count."""
    data = store.processed_data
    failures = 0
    for column in args.describe:
        try:
            stats = describe_distribution(data, column)
        except AnalysisError as e:
            get_logger().error(f"describe: {e}")
            failures += 1
            continue
        fields = " ".join(f"{k}={_format_value(v)}" for k, v in stats.to_dict().items())
        print(f"DISTRIBUTION {column} {fields}")
    if args.correlation:
        matrix = correlation_matrix(data, args.correlation)
        print(f"CORRELATION method={args.correlation}")
        for column in matrix.columns:
            cells = " ".join(
                f"{other}={_format_value(finite_or_none(v))}"
                for other, v in matrix[column].items()
            )
            print(f"  {column}: {cells}")
    return failures


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # an empty list must not fall back to sys.argv (pytest arguments)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config_or_default(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    path = Path(args.file)
    if args.inspect_data:
        return _inspect_data(path, cfg)

    started = time.perf_counter()
    logger.info(f"Reading: {path}")
    try:
        data = read_csv_file(
            path,
            keep_na_strings=cfg.keep_na_strings,
            null_sentinels=cfg.null_sentinels,
            encoding=cfg.encoding,
        )
    except CsvReadError as e:
        logger.error(f"read: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    with ProgressTracker() as progress:
        store = DataStore(cfg, error_log=error_log, source=path.name, on_chunk=progress)
        if store.load(data.rows) is None:
            logger.error(f"load: {store.error}")
            error_log.flush()
            return EXIT_FATAL
        failures = _run_transformations(store, args)

    if args.columns:
        store.set_selected_columns([c.strip() for c in args.columns.split(",") if c.strip()])
    store.set_filter_value(args.filter)
    view = store.get_filtered_view()

    snapshot = store.snapshot()
    summary = snapshot.processed_data.summary
    if args.json:
        print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_stats(summary)
    if args.context:
        print(store.data_context())
    failures += _print_analytics(store, args)

    for entry in snapshot.history[: snapshot.current_history_index + 1]:
        logger.debug(f"history: {entry.label()}")
    logger.info(f"filtered rows={len(view)}/{summary.row_count}")

    error_path = error_log.flush()
    if error_path is not None:
        logger.info(f"error log: {error_path}")

    summary_line = render_summary_line(snapshot, len(view), time.perf_counter() - started)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    return EXIT_PARTIAL_FAILURE if failures else EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
