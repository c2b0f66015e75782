from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..models.cells import is_numeric
from ..models.processed_data import ProcessedData
from .distribution import finite_or_none, require_numerical

"""Correlation between numerical columns (Pearson and Spearman).

Pairs are formed row by row and a pair is used only when both cells are
numeric. Spearman is the Pearson coefficient of the average ranks, so ties
are handled the usual way. correlate_with() reports an undefined coefficient
(fewer than two pairs, or a constant column) as None; correlation_matrix()
leaves it NaN.
"""

__all__ = [
    "CORRELATION_METHODS",
    "ColumnCorrelation",
    "numeric_frame",
    "correlation_matrix",
    "correlate_with",
]

CORRELATION_METHODS = ("pearson", "spearman")


@dataclass(frozen=True)
class ColumnCorrelation:
    column: str
    pearson: float | None
    spearman: float | None
    pairs: int  # rows where both cells are numeric


def numeric_frame(data: ProcessedData, columns: Sequence[str] | None = None) -> pd.DataFrame:
    """float64 frame of numerical columns; non-numeric cells become NaN."""
    selected = list(data.summary.numerical_columns) if columns is None else list(columns)
    for column in selected:
        require_numerical(data, column)
    return pd.DataFrame(
        {
            column: [row.get(column) if is_numeric(row.get(column)) else np.nan for row in data.rows]
            for column in selected
        },
        columns=selected,
        dtype="float64",
    )


def correlation_matrix(
    data: ProcessedData,
    method: str = "pearson",
    columns: Sequence[str] | None = None,
) -> pd.DataFrame:
    """Pairwise correlation matrix over the numerical columns."""
    if method not in CORRELATION_METHODS:
        raise ValueError(f"unknown correlation method '{method}'")
    return numeric_frame(data, columns).corr(method=method, min_periods=2)


def _pearson(x: pd.Series, y: pd.Series) -> float | None:
    if len(x) < 2:
        return None
    return finite_or_none(x.corr(y))


def correlate_with(data: ProcessedData, column: str) -> list[ColumnCorrelation]:
    """Pearson and Spearman coefficients of ``column`` against every numerical column."""
    require_numerical(data, column)
    frame = numeric_frame(data)
    base = frame[column]
    results: list[ColumnCorrelation] = []
    for other in frame.columns:
        target = frame[other]
        mask = base.notna() & target.notna()
        x, y = base[mask], target[mask]
        results.append(
            ColumnCorrelation(
                column=other,
                pearson=_pearson(x, y),
                spearman=_pearson(x.rank(), y.rank()),
                pairs=int(mask.sum()),
            )
        )
    return results
