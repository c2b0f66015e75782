from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the CSV analytics core.

These are the typed domain settings consumed by the aggregation engine and the
CSV reader. Loading and validating them from YAML lives in
csv_insight/config/loader.py.
"""

DEFAULT_NUMERIC_THRESHOLD = 0.7
DEFAULT_SAMPLE_SIZE = 1000
DEFAULT_MOST_COMMON_LIMIT = 5
DEFAULT_CHUNK_SIZE = 10_000


@dataclass(frozen=True)
class AnalysisConfig:
    """Tunable constants for column classification and aggregation.

    The numeric threshold and the most-common cutoff are product decisions,
    not derived values, so they are configuration rather than code.
    """
    numeric_threshold: float = DEFAULT_NUMERIC_THRESHOLD  # share of sampled cells that must be numeric
    sample_size: int = DEFAULT_SAMPLE_SIZE  # rows sampled for classification
    most_common_limit: int = DEFAULT_MOST_COMMON_LIMIT  # entries kept in most_common
    chunk_size: int = DEFAULT_CHUNK_SIZE  # rows aggregated between yields
    keep_na_strings: tuple[str, ...] = ()  # strings pandas must not turn into NaN (e.g. 'NA')
    null_sentinels: frozenset[str] = field(default_factory=frozenset)  # upper-cased strings read as NULL
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if not 0.0 <= self.numeric_threshold <= 1.0:
            raise ValueError("numeric_threshold must be within [0, 1]")
        if self.sample_size < 1:
            raise ValueError("sample_size must be >= 1")
        if self.most_common_limit < 1:
            raise ValueError("most_common_limit must be >= 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
