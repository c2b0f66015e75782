from __future__ import annotations

from collections.abc import Sequence

from ..models.cells import is_missing, stringify
from ..models.processed_data import RawDataset

"""Live search filter over the current rows.

The filter text is split on whitespace into lowercased terms. A row is kept
when every term is a substring of at least one selected column's value
(AND across terms, OR across columns). Missing cells never match.
"""

__all__ = [
    "split_terms",
    "row_matches",
    "get_filtered_view",
]


def split_terms(filter_value: str) -> list[str]:
    return filter_value.lower().split()


def row_matches(row: dict, terms: Sequence[str], columns: Sequence[str]) -> bool:
    lowered = [
        stringify(row[c]).lower()
        for c in columns
        if c in row and not is_missing(row[c])
    ]
    return all(any(term in value for value in lowered) for term in terms)


def get_filtered_view(
    filter_value: str, selected_columns: Sequence[str], rows: RawDataset
) -> RawDataset:
    """Return the rows matching ``filter_value`` within ``selected_columns``.

    With no search terms the input list itself is returned.
    """
    terms = split_terms(filter_value)
    if not terms:
        return rows
    return [row for row in rows if row_matches(row, terms, selected_columns)]
