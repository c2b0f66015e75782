from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from ..models.column_stats import ColumnStats, DataSummary

"""Data context for the chat collaborator.

The chat relay receives ``{"prompt": ..., "context": ...}`` and answers with a
server-sent-event stream of ``data: {"content": "..."}`` lines terminated by
``data: [DONE]``. This module builds the request payload from a DataSummary
and decodes the stream back into content chunks. No HTTP happens here.
"""

__all__ = [
    "STREAM_DONE",
    "build_data_context",
    "build_chat_request",
    "iter_stream_content",
]

logger = logging.getLogger(__name__)

STREAM_DONE = "[DONE]"
_DATA_PREFIX = "data:"


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _describe_column(column: str, stats: ColumnStats) -> str:
    parts: list[str] = []
    if stats.min is not None:
        parts.append(f"min: {_format_number(stats.min)}")
    if stats.max is not None:
        parts.append(f"max: {_format_number(stats.max)}")
    if stats.mean is not None:
        parts.append(f"mean: {stats.mean:.2f}")
    if stats.median is not None:
        parts.append(f"median: {_format_number(stats.median)}")
    if stats.std_dev is not None:
        parts.append(f"std dev: {stats.std_dev:.2f}")
    if not stats.has_numeric_stats:
        parts.append(f"unique values: {stats.unique_values}")
        if stats.most_common:
            top = ", ".join(f"{m.value} ({m.count})" for m in stats.most_common)
            parts.append(f"most common: {top}")
    return f"{column}: {', '.join(parts)}"


def build_data_context(summary: DataSummary) -> str:
    """Render a DataSummary as the plain-text context sent with each prompt."""
    lines = [
        "Dataset Summary:",
        f"- Total rows: {summary.row_count}",
        f"- Total columns: {summary.column_count}",
        f"- Numerical columns: {', '.join(summary.numerical_columns)}",
        f"- Categorical columns: {', '.join(summary.categorical_columns)}",
        "",
        "Column Statistics:",
    ]
    for column in summary.headers:
        stats = summary.column_stats.get(column)
        if stats is not None:
            lines.append(_describe_column(column, stats))
    return "\n".join(lines)


def build_chat_request(prompt: str, summary: DataSummary | None) -> dict[str, str]:
    """JSON body for the chat relay."""
    context = build_data_context(summary) if summary is not None else ""
    return {"prompt": prompt, "context": context}


def iter_stream_content(lines: Iterable[str]) -> Iterator[str]:
    """Yield content chunks from server-sent-event lines.

    Stops at the ``[DONE]`` sentinel. Lines without the ``data:`` prefix are
    ignored; malformed JSON payloads are logged and skipped.
    """
    for raw in lines:
        line = raw.strip()
        if not line.startswith(_DATA_PREFIX):
            continue
        payload = line[len(_DATA_PREFIX):].strip()
        if payload == STREAM_DONE:
            return
        try:
            parsed: Any = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning(f"chat stream: skipping malformed payload: {e}")
            continue
        if isinstance(parsed, dict) and parsed.get("content"):
            yield str(parsed["content"])
