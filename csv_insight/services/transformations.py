from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..models.cells import is_missing, is_numeric, parse_number, stringify
from ..models.processed_data import ProcessedData, RawDataset, StoreSnapshot
from .store import DataStore, DataStoreError, NoDataLoadedError

"""Transformation operations: sort, delete column, combine columns, value filter.

Each operation is a pure function of the current ProcessedData returning a
Transformation (new rows, new headers, history tag, description). Rows are
never modified in place. commit() pushes a Transformation through
DataStore.apply_transformation(); apply() runs an operation against a store
and turns TransformationError into a store error without adding history.
apply_async() does the same through the store's async aggregation path.
"""

__all__ = [
    "Transformation",
    "TransformationError",
    "sort_by_column",
    "delete_column",
    "combine_columns",
    "filter_by_value",
    "commit",
    "apply",
    "apply_async",
]

logger = logging.getLogger(__name__)


class TransformationError(DataStoreError):
    """Raised when an operation cannot be applied to the current data."""
    error_type = "TRANSFORMATION_FAILED"


@dataclass(frozen=True)
class Transformation:
    rows: RawDataset
    headers: tuple[str, ...]
    type: str  # history tag
    description: str


def _require_column(data: ProcessedData, column: str) -> None:
    if column not in data.headers:
        raise TransformationError(f"Unknown column '{column}'")


def _as_number(value: Any) -> float | None:
    """Numeric value of a cell, parsing numeric strings; None otherwise."""
    if is_numeric(value):
        return value
    if isinstance(value, str):
        return parse_number(value)
    return None


def sort_by_column(data: ProcessedData, column: str, descending: bool = False) -> Transformation:
    """Stable sort on ``column``.

    Numerical columns compare numerically, other columns compare the
    stringified value. Cells that cannot be compared that way (missing cells,
    and non-numeric cells of a numerical column) keep their relative order at
    the end, whatever the direction.
    """
    _require_column(data, column)
    numerical = data.summary.is_numerical(column)

    def sortable(value: Any) -> bool:
        return is_numeric(value) if numerical else not is_missing(value)

    present = [r for r in data.rows if sortable(r.get(column))]
    missing = [r for r in data.rows if not sortable(r.get(column))]
    if numerical:
        present.sort(key=lambda r: r[column], reverse=descending)
    else:
        present.sort(key=lambda r: stringify(r[column]), reverse=descending)

    direction = "descending" if descending else "ascending"
    return Transformation(
        rows=present + missing,
        headers=data.headers,
        type="sort",
        description=f"Sorted {column} {direction}",
    )


def delete_column(data: ProcessedData, column: str) -> Transformation:
    _require_column(data, column)
    rows = [{k: v for k, v in row.items() if k != column} for row in data.rows]
    return Transformation(
        rows=rows,
        headers=tuple(h for h in data.headers if h != column),
        type="delete",
        description=f"Deleted column {column}",
    )


def combine_columns(data: ProcessedData, base_column: str) -> Transformation:
    """Add ``<base>_combined`` = base + every other numerical column.

    Missing or non-numeric cells count as 0.
    """
    _require_column(data, base_column)
    if not data.summary.is_numerical(base_column):
        raise TransformationError(f"Column '{base_column}' is not numerical")
    others = [c for c in data.summary.numerical_columns if c != base_column]
    if not others:
        raise TransformationError("No other numerical columns to combine with")

    new_column = f"{base_column}_combined"
    if new_column in data.headers:
        raise TransformationError(f"Column '{new_column}' already exists")

    def cell(row: dict, column: str) -> float:
        value = _as_number(row.get(column))
        return 0 if value is None else value

    rows = [
        {**row, new_column: cell(row, base_column) + sum(cell(row, c) for c in others)}
        for row in data.rows
    ]
    return Transformation(
        rows=rows,
        headers=(*data.headers, new_column),
        type="combine",
        description=f"Combined {base_column} with numerical columns",
    )


def filter_by_value(data: ProcessedData, column: str, threshold: str) -> Transformation:
    """Keep rows matching ``threshold`` in ``column``.

    Numerical columns keep numeric cells >= the parsed threshold (nothing is
    kept when the threshold is not a number). Other columns keep cells whose
    text contains the threshold, case-insensitively.
    """
    _require_column(data, column)
    if not threshold.strip():
        raise TransformationError("Filter value is empty")

    if data.summary.is_numerical(column):
        limit = _as_number(threshold.strip())
        if limit is None:
            rows: RawDataset = []
        else:
            rows = [r for r in data.rows if is_numeric(r.get(column)) and r[column] >= limit]
    else:
        needle = threshold.lower()
        rows = [
            r for r in data.rows
            if not is_missing(r.get(column)) and needle in stringify(r[column]).lower()
        ]
    return Transformation(
        rows=rows,
        headers=data.headers,
        type="filter",
        description=f"Filtered {column} with value {threshold}",
    )


def commit(store: DataStore, transformation: Transformation) -> StoreSnapshot | None:
    return store.apply_transformation(
        transformation.rows,
        transformation.headers,
        type=transformation.type,
        description=transformation.description,
    )


def _compute(
    store: DataStore,
    operation: Callable[..., Transformation],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> Transformation | None:
    data = store.processed_data
    try:
        if data is None:
            raise NoDataLoadedError("No data loaded")
        transformation = operation(data, *args, **kwargs)
    except DataStoreError as e:
        store.record_failure(getattr(operation, "__name__", "transformation"), e)
        return None
    logger.debug(f"computed {transformation.type}: {transformation.description}")
    return transformation


def apply(
    store: DataStore,
    operation: Callable[..., Transformation],
    *args: Any,
    **kwargs: Any,
) -> StoreSnapshot | None:
    """Run ``operation`` on the store's current data and commit the result.

    Returns the new snapshot, or None (with ``store.error`` set and no
    history entry added) when the operation could not be applied.
    """
    transformation = _compute(store, operation, args, kwargs)
    if transformation is None:
        return None
    return commit(store, transformation)


async def apply_async(
    store: DataStore,
    operation: Callable[..., Transformation],
    *args: Any,
    **kwargs: Any,
) -> StoreSnapshot | None:
    """apply() whose re-aggregation yields to the event loop between chunks."""
    transformation = _compute(store, operation, args, kwargs)
    if transformation is None:
        return None
    return await store.apply_transformation_async(
        transformation.rows,
        transformation.headers,
        type=transformation.type,
        description=transformation.description,
    )
