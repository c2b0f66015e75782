from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from csv_insight.logging.error_log import ErrorLogBuffer
from csv_insight.models.config_models import AnalysisConfig
from csv_insight.models.processed_data import StoreSnapshot
from csv_insight.services.store import DataStore

"""Unit tests for DataStore state, history and error handling."""


def test_empty_store_state():
    store = DataStore()
    snap = store.snapshot()

    assert snap.processed_data is None
    assert snap.history == ()
    assert snap.current_history_index == -1
    assert snap.current_entry is None
    assert store.get_filtered_view() == []
    assert store.data_context() == ""
    assert not store.can_undo and not store.can_redo


def test_load_resets_state(sample_rows):
    store = DataStore()
    snap = store.load(sample_rows)

    assert isinstance(snap, StoreSnapshot)
    assert snap.selected_columns == ("name", "city", "age", "score")
    assert snap.current_history_index == 0
    assert len(snap.history) == 1
    assert snap.history[0].type == "load"
    assert snap.history[0].description == "Loaded 5 rows"
    assert snap.raw_data == sample_rows
    assert snap.error is None


def test_load_drops_blank_rows():
    rows = [
        {"a": 1, "b": "x"},
        {"a": None, "b": "   "},
        {"a": "", "b": None},
        {"a": 2, "b": "y"},
    ]
    store = DataStore()
    snap = store.load(rows)

    assert snap.processed_data.summary.row_count == 2
    assert [r["a"] for r in snap.raw_data] == [1, 2]


def test_load_copies_rows(sample_rows):
    store = DataStore()
    store.load(sample_rows)
    sample_rows[0]["name"] = "Mallory"

    assert store.processed_data.rows[0]["name"] == "Alice"


def test_load_without_valid_rows_keeps_state(loaded_store):
    before = loaded_store.snapshot()

    assert loaded_store.load([{"a": None}, {"a": " "}]) is None
    assert loaded_store.error == "No valid data found in the uploaded file"
    assert loaded_store.processed_data is before.processed_data
    assert loaded_store.history == before.history

    assert DataStore().load([]) is None


def test_reload_clears_history(loaded_store):
    loaded_store.apply_transformation(loaded_store.processed_data.rows[:2], type="filter")
    loaded_store.set_filter_value("paris")

    snap = loaded_store.load([{"x": 1}])

    assert len(snap.history) == 1
    assert snap.current_history_index == 0
    assert snap.filter_value == ""
    assert snap.selected_columns == ("x",)


def test_apply_transformation_requires_data():
    store = DataStore()
    assert store.apply_transformation([{"a": 1}]) is None
    assert store.error == "No data loaded"
    assert store.history == ()


def test_apply_transformation_appends_and_advances(loaded_store):
    rows = loaded_store.processed_data.rows[:3]
    snap = loaded_store.apply_transformation(rows, type="filter", description="first three")

    assert snap.current_history_index == 1
    assert len(snap.history) == 2
    assert snap.current_entry.description == "first three"
    assert snap.processed_data.summary.row_count == 3


def test_apply_transformation_header_override(loaded_store):
    rows = [{k: v for k, v in r.items() if k != "city"} for r in loaded_store.processed_data.rows]
    snap = loaded_store.apply_transformation(rows, ["age", "name", "score"], type="delete")

    assert snap.processed_data.headers == ("age", "name", "score")
    assert snap.selected_columns == ("name", "age", "score")


def test_new_columns_become_selected(loaded_store):
    rows = [{**r, "extra": 1} for r in loaded_store.processed_data.rows]
    snap = loaded_store.apply_transformation(rows, [*loaded_store.processed_data.headers, "extra"])

    assert snap.selected_columns[-1] == "extra"


def test_undo_redo_round_trip(loaded_store):
    loaded = loaded_store.processed_data
    after_t1 = loaded_store.apply_transformation(loaded.rows[:2]).processed_data

    undone = loaded_store.undo()
    assert undone.processed_data == loaded
    assert undone.current_history_index == 0

    redone = loaded_store.redo()
    assert redone.processed_data == after_t1
    assert redone.current_history_index == 1


def test_undo_and_redo_are_noops_at_ends(loaded_store):
    snap = loaded_store.undo()
    assert snap.current_history_index == 0

    loaded_store.apply_transformation(loaded_store.processed_data.rows[:1])
    snap = loaded_store.redo()
    assert snap.current_history_index == 1
    assert DataStore().undo().current_history_index == -1


def test_branch_discard(loaded_store):
    rows = loaded_store.processed_data.rows
    loaded_store.apply_transformation(rows[:2], description="T1")
    loaded_store.undo()
    snap = loaded_store.apply_transformation(rows[:3], description="T2")

    assert len(snap.history) == 2
    assert [e.description for e in snap.history] == ["Loaded 5 rows", "T2"]
    assert not loaded_store.can_redo


def test_undo_restores_deleted_column_selection(loaded_store):
    rows = [{k: v for k, v in r.items() if k != "city"} for r in loaded_store.processed_data.rows]
    loaded_store.apply_transformation(rows, ["name", "age", "score"])

    snap = loaded_store.undo()
    assert "city" in snap.selected_columns


def test_failed_aggregation_does_not_commit(loaded_store):
    before = loaded_store.snapshot()
    with patch(
        "csv_insight.services.store.classify_and_aggregate",
        side_effect=TypeError("unexpected value shape"),
    ):
        assert loaded_store.apply_transformation([{"a": 1}]) is None

    assert loaded_store.error == "unexpected value shape"
    assert loaded_store.history == before.history
    assert loaded_store.processed_data is before.processed_data
    assert loaded_store.current_history_index == before.current_history_index


def test_empty_transformation_result_is_rejected(loaded_store):
    assert loaded_store.apply_transformation([], type="filter", description="nothing") is None
    assert "no rows left" in loaded_store.error
    assert len(loaded_store.history) == 1


def test_success_clears_previous_error(loaded_store):
    loaded_store.apply_transformation([])
    assert loaded_store.error is not None

    loaded_store.apply_transformation(loaded_store.processed_data.rows[:1])
    assert loaded_store.error is None


def test_failures_are_recorded_in_error_log(sample_rows):
    buf = ErrorLogBuffer()
    store = DataStore(error_log=buf, source="people.csv")

    store.load([])
    store.load(sample_rows)
    with patch("csv_insight.services.store.classify_and_aggregate", side_effect=RuntimeError("boom")):
        store.apply_transformation(sample_rows, type="sort")

    records = buf.records
    assert [r.error_type for r in records] == ["NO_VALID_DATA", "AGGREGATION_FAILED"]
    assert [r.operation for r in records] == ["load", "sort"]
    assert all(r.source == "people.csv" for r in records)


def test_selected_columns_ignore_unknown(loaded_store):
    snap = loaded_store.set_selected_columns(["city", "nope"])
    assert snap.selected_columns == ("city",)


def test_filtered_view_uses_store_state(loaded_store):
    loaded_store.set_filter_value("paris")
    assert [r["name"] for r in loaded_store.get_filtered_view()] == ["Alice", "Carol"]

    loaded_store.set_selected_columns(["name"])
    assert loaded_store.get_filtered_view() == []


def test_clear(loaded_store):
    snap = loaded_store.clear()
    assert snap.processed_data is None
    assert snap.current_history_index == -1
    assert snap.selected_columns == ()


def test_load_async(sample_rows):
    store = DataStore()
    snap = asyncio.run(store.load_async(sample_rows))

    assert snap.processed_data.summary == DataStore().load(sample_rows).processed_data.summary
    assert asyncio.run(store.load_async([])) is None
    assert store.processed_data is snap.processed_data


def test_overlapping_async_loads_keep_the_latest():
    store = DataStore(AnalysisConfig(chunk_size=1))
    older = [{"a": i} for i in range(50)]
    newer = [{"b": "x"}, {"b": "y"}]

    async def run():
        return await asyncio.gather(store.load_async(older), store.load_async(newer))

    first, second = asyncio.run(run())

    assert first is None
    assert second is not None
    assert store.processed_data.headers == ("b",)
    assert store.raw_data == newer
    assert store.error is None
    assert len(store.history) == 1


def test_async_load_superseded_by_clear(sample_rows):
    store = DataStore(AnalysisConfig(chunk_size=1))

    async def run():
        pending = asyncio.ensure_future(store.load_async(sample_rows))
        await asyncio.sleep(0)
        store.clear()
        return await pending

    assert asyncio.run(run()) is None
    assert store.processed_data is None
    assert store.error is None


def test_apply_transformation_async(loaded_store):
    rows = [r for r in loaded_store.processed_data.rows if r["age"] > 30]
    snap = asyncio.run(
        loaded_store.apply_transformation_async(rows, type="filter", description="age > 30")
    )

    assert snap.current_entry.type == "filter"
    assert snap.processed_data.summary.row_count == 3
    assert len(loaded_store.history) == 2


def test_apply_transformation_async_failures():
    store = DataStore()
    assert asyncio.run(store.apply_transformation_async([{"v": 1}])) is None
    assert store.error == "No data loaded"

    store.load([{"v": 1}])
    assert asyncio.run(store.apply_transformation_async([], description="drop all")) is None
    assert store.error == "drop all: no rows left"
    assert len(store.history) == 1


def test_async_transformation_superseded_by_load(loaded_store, sample_rows):
    loaded_store.config = AnalysisConfig(chunk_size=1)
    rows = [{**r, "extra": 1} for r in sample_rows]

    async def run():
        pending = asyncio.ensure_future(loaded_store.apply_transformation_async(rows))
        await asyncio.sleep(0)
        loaded_store.load([{"v": 1}, {"v": 2}])
        return await pending

    assert asyncio.run(run()) is None
    assert loaded_store.processed_data.headers == ("v",)
    assert len(loaded_store.history) == 1
    assert loaded_store.error is None


def test_on_chunk_is_forwarded(sample_rows):
    seen = []
    store = DataStore(on_chunk=seen.append)
    store.load(sample_rows)

    assert seen and seen[-1].rows_done == 5


def test_data_context(loaded_store):
    text = loaded_store.data_context()
    assert "Total rows: 5" in text
    assert "age: min: 27" in text


@pytest.mark.parametrize("bad_rows", [[1, 2], ["a"]])
def test_unexpected_row_shapes_are_caught(bad_rows):
    store = DataStore()
    assert store.load(bad_rows) is None
    assert store.error
