import logging
from functools import reduce
from typing import Any, Callable, Optional

from chunkwise.dataset import concat_results
from chunkwise.spill import SpillManager

logger = logging.getLogger(__name__)

_EMPTY = object()


def fold(results: list, combine_fn: Callable[[Any, Any], Any]):
    """left fold; a single result is returned as is"""
    if len(results) == 1:
        return results[0]
    return reduce(combine_fn, results)


class Combiner:
    """
    Merge the material held by a SpillManager into one result.

    Segments are older than anything still buffered, so they come first, in
    ascending sequence number; the buffer is combined as the last term.
    Merging consumes the material: each segment file is deleted once read and
    the buffer is emptied, so a second merge returns None.
    """

    def __init__(self, spill_manager: SpillManager):
        self.spill_manager = spill_manager

    def merge(self, combine_fn: Optional[Callable[[Any, Any], Any]] = None):
        if combine_fn is None:
            combine_fn = concat_results
        sm = self.spill_manager

        result = _EMPTY
        segments = sorted(sm.segments, key=lambda s: s.sequence)
        for record in segments:
            segment_results = sm.load_segment(record)
            sm.segments.remove(record)
            record.path.unlink(missing_ok=True)
            logger.debug(
                f"Merging segment {record.sequence} ({record.n_results} results)"
            )
            if not segment_results:
                continue
            segment_value = fold(segment_results, combine_fn)
            result = (
                segment_value if result is _EMPTY else combine_fn(result, segment_value)
            )

        if sm.buffer:
            buffered, sm.buffer = sm.buffer, []
            in_memory_value = fold(buffered, combine_fn)
            result = (
                in_memory_value
                if result is _EMPTY
                else combine_fn(result, in_memory_value)
            )

        return None if result is _EMPTY else result
