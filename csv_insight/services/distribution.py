from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import pandas as pd

from ..models.cells import is_missing, is_numeric, stringify
from ..models.processed_data import ProcessedData

"""Distribution analytics over the current ProcessedData.

- describe_distribution(): count, min/max, mean, median, quartiles, sample
  std dev, skewness and excess kurtosis of one numerical column
- histogram(): equal-width bins (20 by default)
- kernel_density(): Gaussian KDE on a 101-point grid, rule-of-thumb bandwidth
  ``0.9 * std * n ** -0.2``
- category_totals(): sum of a numerical column per category value

Only numeric cells take part; missing and non-numeric cells are skipped.
"""

__all__ = [
    "AnalysisError",
    "DistributionStats",
    "HistogramBin",
    "DEFAULT_BINS",
    "KDE_POINTS",
    "require_numerical",
    "finite_or_none",
    "numeric_series",
    "describe_distribution",
    "histogram",
    "kernel_density",
    "category_totals",
]

DEFAULT_BINS = 20
KDE_POINTS = 101


class AnalysisError(Exception):
    """Raised when an analysis targets an unknown or unsuitable column."""


@dataclass(frozen=True)
class DistributionStats:
    count: int
    min: float | None = None
    max: float | None = None
    mean: float | None = None
    median: float | None = None
    q1: float | None = None
    q3: float | None = None
    std_dev: float | None = None  # N-1
    skewness: float | None = None  # adjusted Fisher-Pearson, needs 3 values
    kurtosis: float | None = None  # excess, needs 4 values

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["stdDev"] = out.pop("std_dev")
        return out


@dataclass(frozen=True)
class HistogramBin:
    x0: float
    x1: float
    count: int

    @property
    def midpoint(self) -> float:
        return (self.x0 + self.x1) / 2


def _require_column(data: ProcessedData, column: str) -> None:
    if column not in data.headers:
        raise AnalysisError(f"Unknown column '{column}'")


def require_numerical(data: ProcessedData, column: str) -> None:
    _require_column(data, column)
    if not data.summary.is_numerical(column):
        raise AnalysisError(f"Column '{column}' is not numerical")


def finite_or_none(value: Any) -> float | None:
    value = float(value)
    return value if math.isfinite(value) else None


def numeric_series(data: ProcessedData, column: str) -> pd.Series:
    """Numeric cells of a numerical column in row order, as float64."""
    require_numerical(data, column)
    values = [v for v in (row.get(column) for row in data.rows) if is_numeric(v)]
    return pd.Series(values, dtype="float64", name=column)


def describe_distribution(data: ProcessedData, column: str) -> DistributionStats:
    """Summary statistics of ``column``; fields stay None when undefined.

    Quartiles interpolate linearly between closest ranks.
    """
    s = numeric_series(data, column)
    if s.empty:
        return DistributionStats(count=0)
    return DistributionStats(
        count=int(s.size),
        min=float(s.min()),
        max=float(s.max()),
        mean=float(s.mean()),
        median=float(s.median()),
        q1=float(s.quantile(0.25)),
        q3=float(s.quantile(0.75)),
        std_dev=finite_or_none(s.std(ddof=1)),
        skewness=finite_or_none(s.skew()),
        kurtosis=finite_or_none(s.kurt()),
    )


def histogram(data: ProcessedData, column: str, bins: int = DEFAULT_BINS) -> list[HistogramBin]:
    """Equal-width bins over [min, max]; the last bin includes max."""
    if bins < 1:
        raise ValueError("bins must be >= 1")
    values = numeric_series(data, column).to_numpy()
    if values.size == 0:
        return []
    counts, edges = np.histogram(values, bins=bins)
    return [
        HistogramBin(x0=float(edges[i]), x1=float(edges[i + 1]), count=int(counts[i]))
        for i in range(len(counts))
    ]


def kernel_density(
    data: ProcessedData, column: str, points: int = KDE_POINTS
) -> tuple[np.ndarray, np.ndarray]:
    """Gaussian kernel density estimate evaluated on ``points`` grid values.

    Returns ``(grid, density)``; both are empty when the column has no
    numeric cells.
    """
    values = numeric_series(data, column).to_numpy()
    if values.size == 0:
        return np.array([]), np.array([])
    std = float(values.std(ddof=1)) if values.size > 1 else 0.0
    bandwidth = 0.9 * (std or 1.0) * values.size ** -0.2
    grid = np.linspace(values.min(), values.max(), points)
    norm = bandwidth * math.sqrt(2 * math.pi)
    # one grid point at a time keeps memory at O(n)
    density = np.array(
        [np.exp(-((x - values) ** 2) / (2 * bandwidth**2)).mean() for x in grid]
    ) / norm
    return grid, density


def category_totals(
    data: ProcessedData,
    category_column: str | None = None,
    value_column: str | None = None,
) -> dict[str, float]:
    """Sum of ``value_column`` per value of ``category_column``.

    Defaults to the first categorical and the first numerical column.
    Categories keep first-encounter order; rows with a missing category are
    skipped and non-numeric values count as 0.
    """
    summary = data.summary
    if category_column is None:
        if not summary.categorical_columns:
            raise AnalysisError("No categorical column to group by")
        category_column = summary.categorical_columns[0]
    if value_column is None:
        if not summary.numerical_columns:
            raise AnalysisError("No numerical column to sum")
        value_column = summary.numerical_columns[0]
    _require_column(data, category_column)
    require_numerical(data, value_column)

    frame = pd.DataFrame(
        {
            "category": [
                None if is_missing(row.get(category_column)) else stringify(row[category_column])
                for row in data.rows
            ],
            "value": [
                row[value_column] if is_numeric(row.get(value_column)) else 0.0
                for row in data.rows
            ],
        }
    )
    totals = frame.dropna(subset=["category"]).groupby("category", sort=False)["value"].sum()
    return {str(k): float(v) for k, v in totals.items()}
