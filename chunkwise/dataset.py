"""
Dataset variants accepted by chunked runs.

A dataset is a table (pandas DataFrame), a matrix (2-D numpy array) or a
sequence (1-D numpy array, pandas Series, list or tuple). Each variant can
produce a contiguous sub-range of rows while preserving its shape, and carries
the default way its processed chunks are combined back together.
"""

import sys
from typing import Any, Callable

import numpy as np
import pandas as pd

from chunkwise.exceptions import InvalidInputError
from chunkwise.onto import DatasetKind

MB = 1024.0 * 1024.0


def combine_rows(x: pd.DataFrame, y: pd.DataFrame) -> pd.DataFrame:
    """row-wise concatenation, index labels are kept as they are"""
    return pd.concat([x, y])


def stack_rows(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    return np.concatenate([x, y], axis=0)


def append_elements(x, y):
    if isinstance(x, np.ndarray):
        return np.concatenate([x, np.asarray(y)])
    if isinstance(x, (pd.Series, pd.DataFrame)):
        return pd.concat([x, y])
    if isinstance(x, tuple) and isinstance(y, list):
        return list(x) + y
    if isinstance(x, list) and isinstance(y, tuple):
        return x + list(y)
    return x + y


def concat_results(x, y):
    """
    Combine two processed results by concatenation, dispatching on the type
    of the left operand.

    :param x: older result
    :param y: newer result
    :return: x followed by y
    """
    if isinstance(x, (pd.DataFrame, pd.Series)):
        return pd.concat([x, y])
    if isinstance(x, np.ndarray):
        return np.concatenate([x, np.asarray(y)], axis=0)
    if isinstance(x, (list, tuple)):
        return append_elements(x, y)
    raise TypeError(
        f"No default combine for results of type {type(x).__name__}; pass combine_fn"
    )


def _kind_of(data) -> DatasetKind:
    if isinstance(data, pd.DataFrame):
        return DatasetKind.TABLE
    if isinstance(data, pd.Series):
        return DatasetKind.SEQUENCE
    if isinstance(data, np.ndarray):
        if data.ndim == 2:
            return DatasetKind.MATRIX
        if data.ndim == 1:
            return DatasetKind.SEQUENCE
        raise InvalidInputError(
            f"Arrays must be 1-D or 2-D to be chunked, got ndim={data.ndim}"
        )
    if isinstance(data, (list, tuple)):
        return DatasetKind.SEQUENCE
    raise InvalidInputError(
        "Data must be a pandas DataFrame, a 2-D array (matrix) or a 1-D sequence, "
        f"got {type(data).__name__}"
    )


class Dataset:
    """Read-only view of the data being chunked."""

    def __init__(self, data):
        self.kind = _kind_of(data)
        self.data = data

    def __len__(self):
        if self.kind == DatasetKind.TABLE:
            return self.data.shape[0]
        return len(self.data)

    def take(self, start: int, stop: int):
        """rows [start, stop), zero-based"""
        if self.kind == DatasetKind.TABLE:
            return self.data.iloc[start:stop]
        if isinstance(self.data, pd.Series):
            return self.data.iloc[start:stop]
        if self.kind == DatasetKind.MATRIX:
            return self.data[start:stop, :]
        return self.data[start:stop]

    @property
    def default_combine(self) -> Callable[[Any, Any], Any]:
        if self.kind == DatasetKind.TABLE:
            return combine_rows
        if self.kind == DatasetKind.MATRIX:
            return stack_rows
        return append_elements

    def size_mb(self) -> float:
        return estimate_size_mb(self.data)


def as_dataset(data) -> Dataset:
    if isinstance(data, Dataset):
        return data
    return Dataset(data)


def estimate_size_mb(data) -> float:
    """
    in-memory footprint of the data in MB, the way the interpreter sees it
    """
    if isinstance(data, Dataset):
        data = data.data
    if isinstance(data, pd.DataFrame):
        nbytes = int(data.memory_usage(index=True, deep=True).sum())
    elif isinstance(data, pd.Series):
        nbytes = int(data.memory_usage(index=True, deep=True))
    elif isinstance(data, np.ndarray):
        nbytes = data.nbytes
    elif isinstance(data, (list, tuple)):
        nbytes = sys.getsizeof(data) + sum(sys.getsizeof(item) for item in data)
    else:
        raise InvalidInputError(f"Cannot estimate the size of {type(data).__name__}")
    return nbytes / MB


def split_chunks(data, chunk_size: int) -> list:
    """
    Eagerly split data into consecutive slices of at most chunk_size rows.

    :param data: a table, matrix or sequence
    :param chunk_size: rows per slice
    :return: list of slices in order; the last one may be shorter
    """
    from chunkwise.iterator import ChunkIterator

    return [chunk.data for chunk in ChunkIterator.over(data, chunk_size)]
