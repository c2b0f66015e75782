from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from ..logging.error_log import ErrorLogBuffer
from ..models.cells import is_blank_row
from ..models.config_models import AnalysisConfig
from ..models.error_record import ErrorRecord
from ..models.processed_data import HistoryEntry, ProcessedData, RawDataset, StoreSnapshot
from .aggregation import ChunkMetrics, classify_and_aggregate, classify_and_aggregate_async
from .chat_context import build_data_context
from .filtering import get_filtered_view

"""Data store: the single owner of the dataset state.

DataStore holds the raw rows, the current ProcessedData, the filter text, the
selected columns and a linear transformation history with undo/redo. State
changes only through its mutators, each of which returns the newly committed
StoreSnapshot, or None when the operation failed. A failed operation leaves
the previous state untouched and exposes its message through ``error``.

Every data mutation takes a generation number when it starts. The async
variants yield to the event loop while aggregating; when they resume and a
newer mutation has started meanwhile, their result is dropped (None, no
error) so an older request never overwrites a newer one.
"""

__all__ = [
    "DataStore",
    "DataStoreError",
    "NoValidDataError",
    "NoDataLoadedError",
]

logger = logging.getLogger(__name__)


class DataStoreError(Exception):
    """Base exception for store operations."""
    error_type = "STORE_ERROR"


class NoValidDataError(DataStoreError):
    """Raised when a dataset has no rows left after dropping blank rows."""
    error_type = "NO_VALID_DATA"


class NoDataLoadedError(DataStoreError):
    """Raised when an operation needs a loaded dataset and there is none."""
    error_type = "NO_DATA_LOADED"


def _error_type(exc: Exception) -> str:
    if isinstance(exc, DataStoreError):
        return exc.error_type
    return "AGGREGATION_FAILED"


def _reconcile_columns(
    selected: Sequence[str], old_headers: Sequence[str], new_headers: Sequence[str]
) -> list[str]:
    """Keep selected columns that still exist and select newly added ones."""
    kept = [c for c in selected if c in new_headers]
    added = [h for h in new_headers if h not in old_headers and h not in kept]
    return kept + added


class DataStore:
    """State container for one dataset session.

    Args:
        config: Aggregation constants (defaults if None)
        error_log: Optional buffer receiving an ErrorRecord per failure
        source: Dataset name used in error records (e.g. the CSV file name)
        on_chunk: Optional aggregation progress callback
    """

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        *,
        error_log: ErrorLogBuffer | None = None,
        source: str = "<memory>",
        on_chunk: Callable[[ChunkMetrics], None] | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.error_log = error_log
        self.source = source
        self.on_chunk = on_chunk
        self._raw_data: RawDataset | None = None
        self._processed_data: ProcessedData | None = None
        self._filter_value = ""
        self._selected_columns: list[str] = []
        self._history: list[HistoryEntry] = []
        self._current_history_index = -1
        self._error: str | None = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def raw_data(self) -> RawDataset | None:
        return self._raw_data

    @property
    def processed_data(self) -> ProcessedData | None:
        return self._processed_data

    @property
    def filter_value(self) -> str:
        return self._filter_value

    @property
    def selected_columns(self) -> tuple[str, ...]:
        return tuple(self._selected_columns)

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._history)

    @property
    def current_history_index(self) -> int:
        return self._current_history_index

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def can_undo(self) -> bool:
        return self._current_history_index > 0

    @property
    def can_redo(self) -> bool:
        return 0 <= self._current_history_index < len(self._history) - 1

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            raw_data=self._raw_data,
            processed_data=self._processed_data,
            filter_value=self._filter_value,
            selected_columns=tuple(self._selected_columns),
            history=tuple(self._history),
            current_history_index=self._current_history_index,
            error=self._error,
        )

    # ------------------------------------------------------------------
    # Generations
    # ------------------------------------------------------------------
    def _begin(self) -> int:
        self._generation += 1
        return self._generation

    def _superseded(self, generation: int, operation: str) -> bool:
        if generation == self._generation:
            return False
        logger.info(f"{operation}: superseded by a newer request, result dropped")
        return True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _prepare_load(self, rows: Iterable[dict]) -> RawDataset:
        valid = [dict(r) for r in rows if not is_blank_row(r)]
        if not valid:
            raise NoValidDataError("No valid data found in the uploaded file")
        return valid

    def _commit_load(self, valid: RawDataset, processed: ProcessedData) -> StoreSnapshot:
        self._raw_data = valid
        self._processed_data = processed
        self._selected_columns = list(processed.headers)
        self._filter_value = ""
        self._history = [
            HistoryEntry.create("load", f"Loaded {len(valid)} rows", processed)
        ]
        self._current_history_index = 0
        self._error = None
        logger.info(
            f"loaded source={self.source} rows={processed.summary.row_count} "
            f"columns={processed.summary.column_count}"
        )
        return self.snapshot()

    def load(self, rows: Iterable[dict]) -> StoreSnapshot | None:
        """Replace the dataset with ``rows`` and reset the history.

        Blank rows are dropped first. When nothing survives, the store keeps
        its previous state and ``error`` is set.
        """
        self._begin()
        try:
            valid = self._prepare_load(rows)
            processed = classify_and_aggregate(valid, self.config, on_chunk=self.on_chunk)
        except Exception as e:
            return self._fail("load", e)
        return self._commit_load(valid, processed)

    async def load_async(self, rows: Iterable[dict]) -> StoreSnapshot | None:
        """load() through the chunked async aggregation.

        Returns None without touching the state when another mutation started
        while this one was aggregating.
        """
        generation = self._begin()
        try:
            valid = self._prepare_load(rows)
            processed = await classify_and_aggregate_async(
                valid, self.config, on_chunk=self.on_chunk
            )
        except Exception as e:
            if self._superseded(generation, "load"):
                return None
            return self._fail("load", e)
        if self._superseded(generation, "load"):
            return None
        return self._commit_load(valid, processed)

    def clear(self) -> StoreSnapshot:
        """Drop the dataset, the history and the filter state."""
        self._begin()
        self._raw_data = None
        self._processed_data = None
        self._filter_value = ""
        self._selected_columns = []
        self._history = []
        self._current_history_index = -1
        self._error = None
        return self.snapshot()

    # ------------------------------------------------------------------
    # Transformations & history
    # ------------------------------------------------------------------
    @staticmethod
    def _check_transformation(
        current: ProcessedData | None, rows: RawDataset, description: str
    ) -> ProcessedData:
        if current is None:
            raise NoDataLoadedError("No data loaded")
        if not rows:
            raise DataStoreError(f"{description}: no rows left")
        return current

    def _commit_transformation(
        self, type: str, description: str, processed: ProcessedData, previous_headers: Sequence[str]
    ) -> StoreSnapshot:
        del self._history[self._current_history_index + 1 :]
        self._history.append(HistoryEntry.create(type, description, processed))
        self._current_history_index = len(self._history) - 1
        self._restore(processed, previous_headers)
        self._error = None
        logger.info(f"applied {type}: {description} rows={processed.summary.row_count}")
        return self.snapshot()

    def apply_transformation(
        self,
        rows: RawDataset,
        headers: Sequence[str] | None = None,
        *,
        type: str = "custom",
        description: str = "Custom transformation",
    ) -> StoreSnapshot | None:
        """Commit a transformed row set as a new history entry.

        Entries after the current index are discarded before appending.
        ``headers`` overrides the header order inferred from the first row.
        """
        self._begin()
        try:
            current = self._check_transformation(self._processed_data, rows, description)
            processed = classify_and_aggregate(
                rows, self.config, headers=headers, on_chunk=self.on_chunk
            )
        except Exception as e:
            return self._fail(type, e)
        return self._commit_transformation(type, description, processed, current.headers)

    async def apply_transformation_async(
        self,
        rows: RawDataset,
        headers: Sequence[str] | None = None,
        *,
        type: str = "custom",
        description: str = "Custom transformation",
    ) -> StoreSnapshot | None:
        """apply_transformation() through the chunked async aggregation.

        The result is dropped (None, no error) when another mutation started
        while this one was aggregating.
        """
        generation = self._begin()
        try:
            current = self._check_transformation(self._processed_data, rows, description)
            processed = await classify_and_aggregate_async(
                rows, self.config, headers=headers, on_chunk=self.on_chunk
            )
        except Exception as e:
            if self._superseded(generation, type):
                return None
            return self._fail(type, e)
        if self._superseded(generation, type):
            return None
        return self._commit_transformation(type, description, processed, current.headers)

    def _restore(self, data: ProcessedData, previous_headers: Sequence[str]) -> None:
        self._processed_data = data
        self._selected_columns = _reconcile_columns(
            self._selected_columns, previous_headers, data.headers
        )

    def undo(self) -> StoreSnapshot:
        """Step back one history entry (no-op at the first entry)."""
        if self.can_undo and self._processed_data is not None:
            self._begin()
            previous_headers = self._processed_data.headers
            self._current_history_index -= 1
            entry = self._history[self._current_history_index]
            self._restore(entry.data, previous_headers)
            logger.debug(f"undo -> index={self._current_history_index} ({entry.description})")
        return self.snapshot()

    def redo(self) -> StoreSnapshot:
        """Step forward one history entry (no-op at the last entry)."""
        if self.can_redo and self._processed_data is not None:
            self._begin()
            previous_headers = self._processed_data.headers
            self._current_history_index += 1
            entry = self._history[self._current_history_index]
            self._restore(entry.data, previous_headers)
            logger.debug(f"redo -> index={self._current_history_index} ({entry.description})")
        return self.snapshot()

    # ------------------------------------------------------------------
    # Filter state
    # ------------------------------------------------------------------
    def set_filter_value(self, value: str) -> StoreSnapshot:
        self._filter_value = value
        return self.snapshot()

    def set_selected_columns(self, columns: Sequence[str]) -> StoreSnapshot:
        """Select columns for the live filter; unknown names are ignored."""
        known = self._processed_data.headers if self._processed_data else ()
        self._selected_columns = [c for c in columns if c in known]
        return self.snapshot()

    def get_filtered_view(self) -> RawDataset:
        if self._processed_data is None:
            return []
        return get_filtered_view(
            self._filter_value, self._selected_columns, self._processed_data.rows
        )

    # ------------------------------------------------------------------
    # Errors & collaborators
    # ------------------------------------------------------------------
    def clear_error(self) -> None:
        self._error = None

    def record_failure(self, operation: str, exc: Exception) -> None:
        """Store ``exc`` as the user-visible error without touching the data."""
        self._error = str(exc) or exc.__class__.__name__
        if isinstance(exc, DataStoreError):
            logger.warning(f"{operation}: {self._error}")
        else:
            logger.error(f"{operation} failed: {exc.__class__.__name__}: {self._error}")
        if self.error_log is not None:
            self.error_log.append(
                ErrorRecord.create(self.source, operation, _error_type(exc), self._error)
            )

    def _fail(self, operation: str, exc: Exception) -> None:
        self.record_failure(operation, exc)
        return None

    def data_context(self) -> str:
        """Text summary of the current dataset for the chat collaborator."""
        if self._processed_data is None:
            return ""
        return build_data_context(self._processed_data.summary)
