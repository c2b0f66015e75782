from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm

from .aggregation import ChunkMetrics

"""Aggregation progress bar.

ProgressTracker is an ``on_chunk`` sink for the aggregation engine and the
DataStore. It draws one tqdm bar per aggregation run, counting rows, and only
when stdout is a terminal: piped or CI output stays free of control
sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True when stdout is an interactive terminal."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Follows successive aggregation runs (a load, then each transformation).

    A chunk with ``chunk_index == 0`` starts a new run and a new bar sized to
    that run's row count; the bar is closed as soon as the run's last chunk
    arrives. ``rows_done`` and ``chunks`` are tracked even without a TTY.
    """

    def __init__(self, *, description: str = "Aggregating rows") -> None:
        self.description = description
        self.enabled = is_tty_enabled()
        self.rows_done = 0
        self.chunks = 0
        self.pbar: Any | None = None

    def __call__(self, metrics: ChunkMetrics) -> None:
        if metrics.chunk_index == 0:
            self._start_run(metrics.total_rows)
        self.rows_done = metrics.rows_done
        self.chunks += 1
        if self.pbar is None:
            return
        self.pbar.update(metrics.chunk_rows)
        if metrics.rows_done >= metrics.total_rows:
            self.close()

    def _start_run(self, total_rows: int) -> None:
        self.rows_done = 0
        self.close()
        if not self.enabled:
            return
        self.pbar = tqdm(
            total=total_rows,
            desc=self.description,
            unit="row",
            unit_scale=True,
            leave=False,
            ncols=80,
            ascii=True,
            disable=False,
            position=0,
        )

    def set_postfix(self, **kwargs: Any) -> None:
        if self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
