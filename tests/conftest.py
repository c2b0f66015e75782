# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from csv_insight.logging.init import reset_logging
from csv_insight.services.store import DataStore


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("CSV_INSIGHT_CONFIG", raising=False)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    # each test gets a handler bound to its own (captured) stdout
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_rows() -> list[dict]:
    return [
        {"name": "Alice", "city": "Paris", "age": 34, "score": 88.5},
        {"name": "Bob", "city": "Berlin", "age": 27, "score": 72.0},
        {"name": "Carol", "city": "Paris", "age": 45, "score": 91.25},
        {"name": "Dave", "city": "Madrid", "age": 27, "score": None},
        {"name": "Eve", "city": "Berlin", "age": 39, "score": 65.0},
    ]


@pytest.fixture()
def loaded_store(sample_rows: list[dict]) -> DataStore:
    store = DataStore()
    assert store.load(sample_rows) is not None
    return store


@pytest.fixture()
def sample_csv_text() -> str:
    return (
        "name,city,age,score\n"
        "Alice,Paris,34,88.5\n"
        "Bob,Berlin,27,72\n"
        "Carol,Paris,45,91.25\n"
        "Dave,Madrid,27,\n"
        "Eve,Berlin,39,65\n"
    )


@pytest.fixture()
def write_csv(temp_workdir: Path, sample_csv_text: str) -> Path:
    path = temp_workdir / "data" / "people.csv"
    path.write_text(sample_csv_text, encoding="utf-8")
    return path


@pytest.fixture()
def sample_config_yaml() -> str:
    return """numeric_threshold: 0.7
sample_size: 1000
most_common_limit: 3
chunk_size: 2
keep_na_strings: [NA]
null_sentinels: ["NULL", "n/a"]
encoding: utf-8
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "analysis.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
