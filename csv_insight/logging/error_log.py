from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from csv_insight.models.error_record import ErrorRecord

"""JSON Lines error log for store failures.

Failed loads and transformations are collected as ErrorRecords during a run
and written to ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC stamp, one file per
run). A run without failures leaves no file behind.
"""

__all__ = [
    "ErrorLogBuffer",
    "LOGS_DIR",
]

LOGS_DIR = Path("./logs")
RUN_STAMP_FMT = "%Y%m%d-%H%M%S"


def _run_log_path(logs_dir: Path) -> Path:
    stamp = datetime.now(UTC).strftime(RUN_STAMP_FMT)
    return logs_dir / f"errors-{stamp}.log"


class ErrorLogBuffer:
    """Collects ErrorRecords in memory; flush() appends them to the run's file.

    The file name is fixed by the first flush that has something to write, so
    later flushes of the same run append to the same file.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self.logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._pending: list[ErrorRecord] = []
        self._path: Path | None = None

    @property
    def records(self) -> list[ErrorRecord]:
        """Records not yet flushed."""
        return list(self._pending)

    @property
    def file_path(self) -> Path | None:
        """Log file of this run, None until something was written."""
        return self._path

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)

    def extend(self, records: Iterable[ErrorRecord]) -> None:
        self._pending.extend(records)

    def __len__(self) -> int:
        return len(self._pending)

    def flush(self) -> Path | None:
        """Write pending records and clear them.

        Returns the log file path, or None when nothing was pending.
        """
        if not self._pending:
            return None
        if self._path is None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            self._path = _run_log_path(self.logs_dir)
        payload = "".join(f"{record.to_json_line()}\n" for record in self._pending)
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(payload)
        self._pending.clear()
        return self._path
