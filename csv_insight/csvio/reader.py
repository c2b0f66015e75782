from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..models.cells import parse_number

"""CSV reader: turns an uploaded CSV file into a RawDataset.

- First line is the header row
- pandas infers column dtypes, so numeric-looking cells arrive as numbers
- NaN becomes None and numpy scalars become plain Python values
- String cells are stripped; numeric-looking text becomes int/float;
  configured null sentinels become None
- Fully empty rows are skipped
"""

__all__ = [
    "CsvData",
    "CsvReadError",
    "EmptyCsvError",
    "read_csv_file",
    "normalize_frame",
]


class CsvReadError(Exception):
    """Raised when a CSV file is missing or cannot be parsed."""


class EmptyCsvError(CsvReadError):
    """Raised when a CSV file has no header row."""


@dataclass
class CsvData:
    columns: list[str]
    rows: list[dict[str, Any]]  # column name -> normalized value


def _na_options(keep_na_strings: list[str] | tuple[str, ...] | None) -> dict[str, Any]:
    """read_csv NA options, keeping ``keep_na_strings`` as literal text."""
    if not keep_na_strings:
        return {"keep_default_na": True, "na_values": None}
    # pandas' default NA strings, minus the ones the caller wants to keep
    import pandas._libs.parsers as parsers

    custom_na = parsers.STR_NA_VALUES - set(keep_na_strings)
    return {"keep_default_na": False, "na_values": list(custom_na)}


def _coerce_number(text: str) -> Any:
    """Numeric-looking text -> int/float, anything else unchanged."""
    number = parse_number(text)
    return text if number is None else number


def _to_python(value: Any) -> Any:
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def normalize_frame(
    df: pd.DataFrame,
    null_sentinels: set[str] | frozenset[str] | None = None,
    coerce_numbers: bool = True,
) -> CsvData:
    """Convert a DataFrame into header list + row dicts.

    Steps:
    1. Header names are stringified and stripped
    2. Cells are converted to plain Python values (NaN -> None)
    3. String cells are stripped; upper-cased matches of ``null_sentinels`` -> None;
       remaining numeric-looking text is converted when ``coerce_numbers``
    4. Rows where every cell is None are skipped
    """
    columns = [str(c).strip() for c in df.columns]
    rows: list[dict[str, Any]] = []
    for raw in df.itertuples(index=False, name=None):
        row: dict[str, Any] = {}
        for col, val in zip(columns, raw, strict=False):
            val = _to_python(val)
            if isinstance(val, str):
                val = val.strip()
                if null_sentinels and val.upper() in null_sentinels:
                    val = None
                elif coerce_numbers:
                    val = _coerce_number(val)
            row[col] = val
        if all(v is None for v in row.values()):
            continue
        rows.append(row)
    return CsvData(columns=columns, rows=rows)


def read_csv_file(
    path: Path,
    keep_na_strings: list[str] | tuple[str, ...] | None = None,
    null_sentinels: set[str] | frozenset[str] | None = None,
    encoding: str = "utf-8",
) -> CsvData:
    """Read a CSV file with a header row.

    Parameters
    ----------
    path: CSV file path
    keep_na_strings: strings excluded from pandas' default NaN conversion (e.g. ['NA'])
    null_sentinels: upper-cased strings converted to None after reading
    encoding: file encoding
    """
    if not path.exists():
        raise CsvReadError(f"file not found: {path}")
    try:
        df = pd.read_csv(path, encoding=encoding, **_na_options(keep_na_strings))
    except pd.errors.EmptyDataError as e:
        raise EmptyCsvError(f"'{path.name}' has no header row") from e
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
        raise CsvReadError(f"failed to parse '{path.name}': {e}") from e
    return normalize_frame(df, null_sentinels=null_sentinels)
