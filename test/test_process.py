import logging

import numpy as np
import pandas as pd
import pytest

from chunkwise.exceptions import InvalidInputError, TransformError
from chunkwise.process import process_with_chunks, process_with_chunks_stats
from conftest import list_dir


def add_z(chunk: pd.DataFrame) -> pd.DataFrame:
    chunk = chunk.copy()
    chunk["z"] = chunk["x"] + chunk["y"]
    return chunk


def test_table_rows_in_order(df_xy, temp_dir):
    result = process_with_chunks(
        df_xy, add_z, chunk_size=10, scratch_dir=temp_dir, verbose=False
    )

    assert len(result) == 50
    assert list(result.x) == list(range(1, 51))
    assert list(result.z) == list(df_xy.x + df_xy.y)
    pd.testing.assert_frame_equal(result, add_z(df_xy))


def test_many_spills_match_no_spills(df_xy, temp_dir):
    spilled, stats_spilled = process_with_chunks_stats(
        df_xy, add_z, max_ram_mb=1e-6, chunk_size=7, scratch_dir=temp_dir, verbose=False
    )
    in_memory, stats_in_memory = process_with_chunks_stats(
        df_xy, add_z, max_ram_mb=1e12, chunk_size=7, scratch_dir=temp_dir, verbose=False
    )

    assert stats_spilled.n_spills == 8
    assert stats_in_memory.n_spills == 0
    pd.testing.assert_frame_equal(spilled, in_memory)
    assert list_dir(temp_dir) == []


def test_sequence_and_matrix_defaults(matrix, temp_dir):
    doubled = process_with_chunks(
        list(range(1, 98)),
        lambda chunk: [2 * v for v in chunk],
        max_ram_mb=1e-6,
        chunk_size=25,
        scratch_dir=temp_dir,
        verbose=False,
    )
    assert doubled == [2 * v for v in range(1, 98)]

    squared = process_with_chunks(
        matrix, np.square, chunk_size=3, scratch_dir=temp_dir, verbose=False
    )
    np.testing.assert_array_equal(squared, np.square(matrix))


def test_auto_chunk_size(df_xy, temp_dir):
    result, stats = process_with_chunks_stats(
        df_xy, add_z, max_ram_mb=1000, scratch_dir=temp_dir, verbose=False
    )
    assert 1 <= stats.chunk_size <= 50
    pd.testing.assert_frame_equal(result, add_z(df_xy))


def test_transform_failure_cleans_up(df_xy, temp_dir):
    def fail_on_third(chunk):
        if chunk["x"].iloc[0] == 21:
            raise ValueError("bad chunk")
        return chunk

    with pytest.raises(TransformError) as exc_info:
        process_with_chunks(
            df_xy,
            fail_on_third,
            max_ram_mb=1e-6,
            chunk_size=10,
            scratch_dir=temp_dir,
            verbose=False,
        )

    assert exc_info.value.chunk_index == 3
    assert isinstance(exc_info.value.__cause__, ValueError)
    assert list_dir(temp_dir) == []


def test_combine_failure_cleans_up(df_xy, temp_dir):
    def combine(x, y):
        raise RuntimeError("cannot combine")

    with pytest.raises(RuntimeError, match="cannot combine"):
        process_with_chunks(
            df_xy,
            add_z,
            max_ram_mb=1e-6,
            chunk_size=10,
            scratch_dir=temp_dir,
            combine_fn=combine,
            verbose=False,
        )
    assert list_dir(temp_dir) == []


def test_each_chunk_processed_once(temp_dir):
    seen = []

    def record(chunk):
        seen.append(list(chunk))
        return chunk

    process_with_chunks(
        list(range(30)), record, chunk_size=4, scratch_dir=temp_dir, verbose=False
    )
    assert [v for chunk in seen for v in chunk] == list(range(30))
    assert len(seen) == 8


def test_custom_combine(temp_dir):
    df = pd.DataFrame({"category": ["A", "B", "C"] * 30, "value": range(1, 91)})

    def aggregate(chunk):
        return chunk.groupby("category", as_index=False)["value"].sum()

    def combine(x, y):
        return aggregate(pd.concat([x, y]))

    result = process_with_chunks(
        df,
        aggregate,
        combine_fn=combine,
        chunk_size=20,
        scratch_dir=temp_dir,
        verbose=False,
    )
    pd.testing.assert_frame_equal(result, aggregate(df))


def test_empty_dataset_returns_none(temp_dir):
    assert process_with_chunks([], lambda c: c, scratch_dir=temp_dir, verbose=False) is None
    empty = pd.DataFrame({"x": pd.Series([], dtype="int64")})
    assert process_with_chunks(empty, add_z, scratch_dir=temp_dir, verbose=False) is None


def test_invalid_input(temp_dir):
    with pytest.raises(InvalidInputError):
        process_with_chunks({"x": 1}, lambda c: c, scratch_dir=temp_dir)
    with pytest.raises(InvalidInputError):
        process_with_chunks([1, 2], lambda c: c, chunk_size=0, scratch_dir=temp_dir)


def test_verbose_logs_progress(df_xy, temp_dir, caplog):
    with caplog.at_level(logging.INFO, logger="chunkwise"):
        process_with_chunks(df_xy, add_z, chunk_size=5, scratch_dir=temp_dir)
    messages = [r.getMessage() for r in caplog.records]
    assert "Starting processing with 10 chunks" in messages
    assert any(m.startswith("Processing chunk 10/10") for m in messages)
    assert any(m.startswith("Final RAM usage") for m in messages)


def test_quiet_run_logs_nothing_at_info(df_xy, temp_dir, caplog):
    with caplog.at_level(logging.INFO, logger="chunkwise"):
        process_with_chunks(df_xy, add_z, chunk_size=5, scratch_dir=temp_dir, verbose=False)
    assert [r for r in caplog.records if r.levelno >= logging.INFO] == []
