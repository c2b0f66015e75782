from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .column_stats import DataSummary

"""ProcessedData, history entries and store snapshots.

ProcessedData is the unit stored in the transformation history: the rows, the
ordered headers and the summary derived from them. It is recomputed from
scratch on every transformation and never mutated afterwards.
"""

__all__ = [
    "RawRow",
    "RawDataset",
    "ProcessedData",
    "HistoryEntry",
    "StoreSnapshot",
]

RawRow = dict[str, Any]
RawDataset = list[RawRow]


@dataclass(frozen=True)
class ProcessedData:
    rows: RawDataset
    headers: tuple[str, ...]
    summary: DataSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": self.rows,
            "headers": list(self.headers),
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class HistoryEntry:
    """One committed step of the transformation history.

    type is a short tag ("load", "sort", "delete", "combine", "filter",
    "custom"); description is the human readable label shown to users.
    """
    type: str
    description: str
    data: ProcessedData
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def create(type: str, description: str, data: ProcessedData) -> HistoryEntry:
        return HistoryEntry(type=type, description=description, data=data)

    def label(self) -> str:
        """Description prefixed with the UTC time of the commit."""
        return f"{self.timestamp.strftime('%H:%M:%S')} {self.description}"


@dataclass(frozen=True)
class StoreSnapshot:
    """Committed state of a DataStore at one point in time."""
    raw_data: RawDataset | None
    processed_data: ProcessedData | None
    filter_value: str
    selected_columns: tuple[str, ...]
    history: tuple[HistoryEntry, ...]
    current_history_index: int  # -1 when history is empty
    error: str | None = None

    @property
    def current_entry(self) -> HistoryEntry | None:
        if self.current_history_index < 0:
            return None
        return self.history[self.current_history_index]
