import numpy as np
import pandas as pd
import pytest
from hypothesis import given
from hypothesis import strategies as st

from chunkwise.exceptions import InvalidInputError
from chunkwise.iterator import ChunkIterator, chunk_bounds


def test_exact_division():
    iterator = ChunkIterator.over(list(range(1, 101)), chunk_size=25)
    chunks = list(iterator)

    assert iterator.total_chunks == 4
    assert [(c.start, c.end) for c in chunks] == [
        (1, 25),
        (26, 50),
        (51, 75),
        (76, 100),
    ]
    assert chunks[0].data == list(range(1, 26))
    assert chunks[3].data == list(range(76, 101))


def test_uneven_division():
    iterator = ChunkIterator.over(np.arange(1, 98), chunk_size=25)
    chunks = list(iterator)

    assert [len(c) for c in chunks] == [25, 25, 25, 22]
    assert [len(c.data) for c in chunks] == [25, 25, 25, 22]
    np.testing.assert_array_equal(chunks[3].data, np.arange(76, 98))


def test_get_next_returns_none_when_exhausted():
    iterator = ChunkIterator(10, 20)
    chunk = iterator.get_next()
    assert (chunk.start, chunk.end) == (1, 10)
    assert chunk.data is None
    assert not iterator.has_next()
    assert iterator.get_next() is None
    assert iterator.current_index() == 1


def test_reset():
    iterator = ChunkIterator.over(pd.DataFrame({"x": range(30)}), chunk_size=10)
    first = [c.data for c in iterator]
    assert iterator.current_index() == 3

    iterator.reset()
    assert iterator.current_index() == 0
    assert iterator.has_next()
    second = [c.data for c in iterator]
    for a, b in zip(first, second):
        pd.testing.assert_frame_equal(a, b)


def test_chunk_indexes_increase():
    iterator = ChunkIterator(95, 10)
    indexes = []
    while iterator.has_next():
        indexes.append(iterator.get_next().index)
    assert indexes == list(range(1, 11))


def test_empty_dataset():
    iterator = ChunkIterator.over([], chunk_size=5)
    assert iterator.total_chunks == 0
    assert not iterator.has_next()
    assert iterator.get_next() is None


@pytest.mark.parametrize("chunk_size", [0, -3, 2.5, True, "10"])
def test_invalid_chunk_size(chunk_size):
    with pytest.raises(InvalidInputError):
        ChunkIterator(10, chunk_size)


def test_numpy_integer_chunk_size():
    iterator = ChunkIterator(10, np.int64(3))
    assert iterator.total_chunks == 4


def test_table_chunks_preserve_columns_and_index(df_mixed):
    chunks = list(ChunkIterator.over(df_mixed, chunk_size=7))
    assert [len(c.data) for c in chunks] == [7, 7, 6]
    assert all(list(c.data.columns) == list(df_mixed.columns) for c in chunks)
    assert list(chunks[1].data.index) == list(range(7, 14))


def test_matrix_chunks(matrix):
    chunks = list(ChunkIterator.over(matrix, chunk_size=5))
    assert len(chunks) == 4
    assert all(c.data.shape == (5, 5) for c in chunks)
    np.testing.assert_array_equal(np.vstack([c.data for c in chunks]), matrix)


def test_chunk_bounds_is_pure():
    assert chunk_bounds(97, 25, 4) == (76, 97)
    assert chunk_bounds(97, 25, 4) == chunk_bounds(97, 25, 4)
    assert chunk_bounds(100, 25, 1) == (1, 25)


@given(st.integers(min_value=0, max_value=500), st.integers(min_value=1, max_value=120))
def test_chunks_cover_dataset(n, chunk_size):
    data = list(range(n))
    chunks = list(ChunkIterator.over(data, chunk_size))

    assert sum(len(c) for c in chunks) == n
    rebuilt = []
    for c in chunks:
        rebuilt.extend(c.data)
    assert rebuilt == data

    for prev, nxt in zip(chunks, chunks[1:]):
        assert nxt.start == prev.end + 1
        assert nxt.index == prev.index + 1
    if chunks:
        assert chunks[0].start == 1
        assert chunks[-1].end == n
