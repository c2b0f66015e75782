from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..models.cells import is_missing, is_numeric, stringify
from ..models.column_stats import ColumnKind, ColumnStats, DataSummary, MostCommonValue
from ..models.config_models import AnalysisConfig
from ..models.processed_data import ProcessedData, RawDataset

"""Type inference & aggregation engine.

classify_and_aggregate() turns a RawDataset into ProcessedData:

1. Headers come from the first row (or an explicit override)
2. Each column is classified by sampling the first ``sample_size`` rows
3. One pass over all rows, chunk by chunk, feeds per-column accumulators
4. Accumulators are finalized into ColumnStats

Chunk accumulators are merged into the running totals after every chunk, so
the result does not depend on where chunk boundaries fall. The async variant
yields to the event loop between chunks.
"""

__all__ = [
    "ChunkMetrics",
    "ColumnAccumulator",
    "classify_columns",
    "classify_and_aggregate",
    "classify_and_aggregate_async",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkMetrics:
    """Timing data for one aggregated chunk, passed to ``on_chunk`` callbacks."""
    chunk_index: int  # 0-based
    chunk_rows: int  # rows in this chunk
    rows_done: int  # rows aggregated so far, this chunk included
    total_rows: int
    elapsed_seconds: float  # time spent on this chunk


class ColumnAccumulator:
    """Running aggregate for one column.

    Tracks min/max/count over numeric cells (numerical columns only), the
    collected numeric values for median and standard deviation, a frequency
    counter of stringified non-missing cells and the missing-cell count.
    """

    def __init__(self, column: str, kind: ColumnKind) -> None:
        self.column = column
        self.kind = kind
        self.values: list[float] = []
        self.minimum: float | None = None
        self.maximum: float | None = None
        self.frequencies: Counter[str] = Counter()
        self.missing = 0

    @property
    def count(self) -> int:
        return len(self.values)

    def add(self, value: Any) -> None:
        if is_missing(value):
            self.missing += 1
            return
        self.frequencies[stringify(value)] += 1
        if self.kind is ColumnKind.NUMERICAL and is_numeric(value):
            self.values.append(value)
            if self.minimum is None or value < self.minimum:
                self.minimum = value
            if self.maximum is None or value > self.maximum:
                self.maximum = value

    def merge(self, other: ColumnAccumulator) -> None:
        """Fold a later accumulator into this one.

        ``other`` must cover rows that come after the rows already seen so
        that first-encounter order of frequencies is preserved.
        """
        if other.column != self.column:
            raise ValueError(f"cannot merge column '{other.column}' into '{self.column}'")
        self.values.extend(other.values)
        if other.minimum is not None and (self.minimum is None or other.minimum < self.minimum):
            self.minimum = other.minimum
        if other.maximum is not None and (self.maximum is None or other.maximum > self.maximum):
            self.maximum = other.maximum
        self.frequencies.update(other.frequencies)
        self.missing += other.missing

    def finalize(self, most_common_limit: int) -> ColumnStats:
        # Counter.most_common keeps first-encountered order for equal counts
        most_common = tuple(
            MostCommonValue(value=v, count=c)
            for v, c in self.frequencies.most_common(most_common_limit)
        )
        valid = sum(self.frequencies.values())
        if not self.values:
            return ColumnStats(
                unique_values=len(self.frequencies),
                most_common=most_common,
                valid_count=valid,
                missing_count=self.missing,
            )
        arr = np.asarray(self.values, dtype=np.float64)
        # sample standard deviation (N-1), undefined for a single value
        std_dev = float(np.std(arr, ddof=1)) if arr.size > 1 else None
        return ColumnStats(
            unique_values=len(self.frequencies),
            most_common=most_common,
            valid_count=valid,
            missing_count=self.missing,
            min=self.minimum,
            max=self.maximum,
            mean=float(np.mean(arr)),
            median=float(np.median(arr)),
            std_dev=std_dev,
        )


def classify_columns(
    rows: RawDataset, headers: Sequence[str], config: AnalysisConfig
) -> dict[str, ColumnKind]:
    """Classify each header as numerical or categorical from a leading sample."""
    sample = rows[: min(config.sample_size, len(rows))]
    kinds: dict[str, ColumnKind] = {}
    for header in headers:
        if not sample:
            kinds[header] = ColumnKind.CATEGORICAL
            continue
        numeric_count = sum(1 for row in sample if is_numeric(row.get(header)))
        if numeric_count / len(sample) >= config.numeric_threshold:
            kinds[header] = ColumnKind.NUMERICAL
        else:
            kinds[header] = ColumnKind.CATEGORICAL
    return kinds


def _iter_chunks(rows: RawDataset, size: int) -> Iterator[RawDataset]:
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def _accumulate_chunk(
    chunk: RawDataset,
    headers: Sequence[str],
    kinds: dict[str, ColumnKind],
    totals: dict[str, ColumnAccumulator],
) -> None:
    partial = {h: ColumnAccumulator(h, kinds[h]) for h in headers}
    for row in chunk:
        for header in headers:
            partial[header].add(row.get(header))
    for header in headers:
        totals[header].merge(partial[header])


class _AggregationRun:
    """Shared state of one aggregation call (sync or async)."""

    def __init__(
        self,
        rows: RawDataset,
        config: AnalysisConfig | None,
        headers: Sequence[str] | None,
        chunk_size: int | None,
        on_chunk: Callable[[ChunkMetrics], None] | None,
    ) -> None:
        self.rows = rows
        self.config = config or AnalysisConfig()
        self.headers = tuple(headers) if headers is not None else tuple(rows[0].keys())
        self.chunk_size = chunk_size if chunk_size is not None else self.config.chunk_size
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.on_chunk = on_chunk
        self.kinds = classify_columns(rows, self.headers, self.config)
        self.totals = {h: ColumnAccumulator(h, self.kinds[h]) for h in self.headers}
        self.rows_done = 0
        self.started = time.perf_counter()

    def chunks(self) -> Iterator[tuple[int, RawDataset]]:
        return enumerate(_iter_chunks(self.rows, self.chunk_size))

    def step(self, index: int, chunk: RawDataset) -> None:
        chunk_start = time.perf_counter()
        _accumulate_chunk(chunk, self.headers, self.kinds, self.totals)
        self.rows_done += len(chunk)
        if self.on_chunk is not None:
            self.on_chunk(
                ChunkMetrics(
                    chunk_index=index,
                    chunk_rows=len(chunk),
                    rows_done=self.rows_done,
                    total_rows=len(self.rows),
                    elapsed_seconds=time.perf_counter() - chunk_start,
                )
            )

    def finish(self) -> ProcessedData:
        column_stats = {
            h: self.totals[h].finalize(self.config.most_common_limit) for h in self.headers
        }
        numerical = tuple(h for h in self.headers if self.kinds[h] is ColumnKind.NUMERICAL)
        categorical = tuple(h for h in self.headers if self.kinds[h] is ColumnKind.CATEGORICAL)
        summary = DataSummary(
            row_count=len(self.rows),
            column_count=len(self.headers),
            headers=self.headers,
            numerical_columns=numerical,
            categorical_columns=categorical,
            column_stats=column_stats,
            column_kinds=dict(self.kinds),
        )
        logger.debug(
            f"aggregated rows={len(self.rows)} columns={len(self.headers)} "
            f"numerical={len(numerical)} elapsed_sec={time.perf_counter() - self.started:.4f}"
        )
        return ProcessedData(rows=self.rows, headers=self.headers, summary=summary)


def classify_and_aggregate(
    rows: RawDataset,
    config: AnalysisConfig | None = None,
    *,
    headers: Sequence[str] | None = None,
    chunk_size: int | None = None,
    on_chunk: Callable[[ChunkMetrics], None] | None = None,
) -> ProcessedData | None:
    """Classify columns and compute summary statistics.

    Args:
        rows: Dataset to aggregate (not modified)
        config: Classification/aggregation constants (defaults if None)
        headers: Header order override; defaults to the first row's keys
        chunk_size: Rows per chunk (defaults to config.chunk_size)
        on_chunk: Optional callback receiving ChunkMetrics after each chunk

    Returns:
        ProcessedData, or None when ``rows`` is empty
    """
    if not rows:
        return None
    run = _AggregationRun(rows, config, headers, chunk_size, on_chunk)
    for index, chunk in run.chunks():
        run.step(index, chunk)
    return run.finish()


async def classify_and_aggregate_async(
    rows: RawDataset,
    config: AnalysisConfig | None = None,
    *,
    headers: Sequence[str] | None = None,
    chunk_size: int | None = None,
    on_chunk: Callable[[ChunkMetrics], None] | None = None,
) -> ProcessedData | None:
    """Same as classify_and_aggregate(), yielding to the event loop between chunks."""
    if not rows:
        return None
    run = _AggregationRun(rows, config, headers, chunk_size, on_chunk)
    for index, chunk in run.chunks():
        if index > 0:
            await asyncio.sleep(0)
        run.step(index, chunk)
    return run.finish()
