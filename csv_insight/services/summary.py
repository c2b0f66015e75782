from __future__ import annotations

from ..models.processed_data import StoreSnapshot

"""SUMMARY line rendering for CLI runs.

Format:
SUMMARY rows={rows} columns={columns} numerical={n} categorical={k}
history={entries} filtered={filtered_rows} elapsed_sec={elapsed}
"""


def _format_seconds(elapsed: float) -> str:
    if elapsed == 0:
        return "0"
    if elapsed == int(elapsed):
        return str(int(elapsed))
    if elapsed < 0.01:
        # avoid scientific notation for very small values
        return f"{elapsed:.6f}".rstrip("0").rstrip(".")
    return f"{elapsed:.3f}".rstrip("0").rstrip(".")


def render_summary_line(snapshot: StoreSnapshot, filtered_rows: int, elapsed_seconds: float) -> str:
    """Render the SUMMARY line for the committed state of a store.

    Examples:
        >>> from csv_insight.services.store import DataStore
        >>> store = DataStore()
        >>> snap = store.load([{"a": 1}, {"a": 2}])
        >>> render_summary_line(snap, 2, 0.5)
        'SUMMARY rows=2 columns=1 numerical=1 categorical=0 history=1 filtered=2 elapsed_sec=0.5'
    """
    data = snapshot.processed_data
    if data is None:
        rows = columns = numerical = categorical = 0
    else:
        summary = data.summary
        rows = summary.row_count
        columns = summary.column_count
        numerical = len(summary.numerical_columns)
        categorical = len(summary.categorical_columns)
    return (
        f"SUMMARY rows={rows} "
        f"columns={columns} "
        f"numerical={numerical} "
        f"categorical={categorical} "
        f"history={len(snapshot.history)} "
        f"filtered={filtered_rows} "
        f"elapsed_sec={_format_seconds(elapsed_seconds)}"
    )
