import math
from numbers import Integral
from typing import Any, Callable, Iterator, Optional

from chunkwise.dataset import as_dataset
from chunkwise.exceptions import InvalidInputError
from chunkwise.onto import Chunk


def chunk_bounds(n_rows: int, chunk_size: int, index: int) -> tuple[int, int]:
    """
        bounds of chunk `index` over `n_rows` rows

        chunks are numbered from 1, bounds are 1-based and inclusive;
        the last chunk may be shorter than chunk_size

    :param n_rows:
    :param chunk_size:
    :param index:
    :return: (start, end)
    """
    start = (index - 1) * chunk_size + 1
    end = min(index * chunk_size, n_rows)
    return start, end


class ChunkIterator:
    """
    Ordered, contiguous and non-overlapping slicing of n_rows rows.

    The only state is the cursor: `current_index()` chunks have been handed
    out so far. If a slicer is given, each chunk carries
    `slicer(start - 1, end)`, i.e. zero-based half-open bounds.
    """

    def __init__(
        self,
        n_rows: int,
        chunk_size: int,
        slicer: Optional[Callable[[int, int], Any]] = None,
    ):
        if (
            isinstance(chunk_size, bool)
            or not isinstance(chunk_size, Integral)
            or chunk_size < 1
        ):
            raise InvalidInputError(
                f"chunk_size must be a positive integer, got {chunk_size!r}"
            )
        if n_rows < 0:
            raise InvalidInputError(f"n_rows must be non-negative, got {n_rows}")
        self.n_rows = int(n_rows)
        self.chunk_size = int(chunk_size)
        self.total_chunks = math.ceil(self.n_rows / self.chunk_size)
        self.slicer = slicer
        self._cursor = 0

    @classmethod
    def over(cls, data, chunk_size: int) -> "ChunkIterator":
        dataset = as_dataset(data)
        return cls(len(dataset), chunk_size, slicer=dataset.take)

    def __len__(self):
        return self.total_chunks

    def __iter__(self) -> Iterator[Chunk]:
        while self.has_next():
            yield self.get_next()

    def has_next(self) -> bool:
        return self._cursor < self.total_chunks

    def current_index(self) -> int:
        return self._cursor

    def get_next(self) -> Chunk | None:
        if not self.has_next():
            return None
        self._cursor += 1
        start, end = chunk_bounds(self.n_rows, self.chunk_size, self._cursor)
        data = self.slicer(start - 1, end) if self.slicer is not None else None
        return Chunk(index=self._cursor, start=start, end=end, data=data)

    def reset(self):
        self._cursor = 0
