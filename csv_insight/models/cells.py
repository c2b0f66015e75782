from __future__ import annotations

import math
import re
from typing import Any

"""Cell-level helpers shared by aggregation, filtering and transformations.

A cell holds ``str | int | float | None``. These helpers decide how a cell is
classified (numeric or not), when it counts as blank, and how it is rendered
as a string for frequency counting and substring search.
"""

__all__ = [
    "CellValue",
    "is_numeric",
    "is_missing",
    "is_blank",
    "is_blank_row",
    "stringify",
    "parse_number",
    "NUMBER_RE",
]

CellValue = str | int | float | None

# plain decimal or exponent notation; no digit separators, inf or nan
NUMBER_RE = re.compile(r"^[-+]?(\d+\.?|\.\d+|\d+\.\d+)([eE][-+]?\d+)?$")


def is_numeric(value: Any) -> bool:
    """True for int/float cells that are not NaN (bool is not numeric)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return not math.isnan(value)
    return False


def is_missing(value: Any) -> bool:
    """True for None and float NaN."""
    return value is None or (isinstance(value, float) and math.isnan(value))


def is_blank(value: Any) -> bool:
    """Missing, empty string or whitespace-only string."""
    if is_missing(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def is_blank_row(row: dict[str, Any]) -> bool:
    """A row is blank when every value is blank (an empty dict is blank too)."""
    return all(is_blank(v) for v in row.values())


def stringify(value: Any) -> str:
    """Render a non-missing cell as text.

    Integral floats drop their fractional part so ``10.0`` and ``10`` count
    as the same value.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(text: str) -> int | float | None:
    """Number written in ``text`` (surrounding whitespace ignored), else None.

    >>> parse_number(" 42 "), parse_number("1e3"), parse_number("1_000")
    (42, 1000.0, None)
    """
    text = text.strip()
    if not NUMBER_RE.match(text):
        return None
    try:
        return int(text)
    except ValueError:
        value = float(text)
    # "1e999" overflows to inf
    return value if math.isfinite(value) else None
