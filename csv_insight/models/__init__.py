"""Domain models for the CSV analytics core.

This package contains the data model shared by the aggregation engine, the
data store, the filter layer and the transformation operations.
"""

from .column_stats import ColumnKind, ColumnStats, DataSummary, MostCommonValue
from .config_models import AnalysisConfig
from .error_record import ErrorRecord
from .processed_data import HistoryEntry, ProcessedData, RawDataset, RawRow, StoreSnapshot

__all__ = [
    # Configuration models
    "AnalysisConfig",
    # Summary models
    "ColumnKind",
    "ColumnStats",
    "DataSummary",
    "MostCommonValue",
    # Store models
    "HistoryEntry",
    "ProcessedData",
    "RawDataset",
    "RawRow",
    "StoreSnapshot",
    "ErrorRecord",
]
