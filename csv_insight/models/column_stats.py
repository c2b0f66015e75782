from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Column classification and summary statistics models.

ColumnStats holds the per-column aggregate produced by the aggregation
engine; DataSummary groups them with the header partition into numerical and
categorical columns.
"""

__all__ = [
    "ColumnKind",
    "MostCommonValue",
    "ColumnStats",
    "DataSummary",
]


class ColumnKind(Enum):
    """Classification of a column, resolved once per aggregation run.

    - NUMERICAL: enough of the sampled cells are numbers
    - CATEGORICAL: everything else
    """
    NUMERICAL = "numerical"
    CATEGORICAL = "categorical"


@dataclass(frozen=True)
class MostCommonValue:
    value: str  # stringified cell value
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "count": self.count}


@dataclass(frozen=True)
class ColumnStats:
    """Derived statistics for a single column.

    Numeric fields (min, max, mean, median, std_dev) are only populated for
    numerical columns with at least one valid value; std_dev additionally
    needs two values (sample standard deviation).
    """
    unique_values: int  # distinct stringified non-null values
    most_common: tuple[MostCommonValue, ...] = ()
    valid_count: int = 0  # non-missing cells
    missing_count: int = 0  # None / NaN cells
    min: float | None = None
    max: float | None = None
    mean: float | None = None
    median: float | None = None
    std_dev: float | None = None

    @property
    def has_numeric_stats(self) -> bool:
        return self.mean is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting absent numeric fields."""
        out: dict[str, Any] = {}
        for key, value in (
            ("min", self.min),
            ("max", self.max),
            ("mean", self.mean),
            ("median", self.median),
            ("stdDev", self.std_dev),
        ):
            if value is not None:
                out[key] = value
        out["uniqueValues"] = self.unique_values
        out["mostCommon"] = [m.to_dict() for m in self.most_common]
        return out


@dataclass(frozen=True)
class DataSummary:
    """Summary of a dataset: shape, header partition and per-column stats."""
    row_count: int
    column_count: int
    headers: tuple[str, ...]
    numerical_columns: tuple[str, ...]
    categorical_columns: tuple[str, ...]
    column_stats: dict[str, ColumnStats] = field(default_factory=dict)
    column_kinds: dict[str, ColumnKind] = field(default_factory=dict)

    def kind_of(self, column: str) -> ColumnKind | None:
        return self.column_kinds.get(column)

    def is_numerical(self, column: str) -> bool:
        return self.column_kinds.get(column) is ColumnKind.NUMERICAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowCount": self.row_count,
            "columnCount": self.column_count,
            "headers": list(self.headers),
            "numericalColumns": list(self.numerical_columns),
            "categoricalColumns": list(self.categorical_columns),
            "columnStats": {c: s.to_dict() for c, s in self.column_stats.items()},
        }
