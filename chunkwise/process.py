"""
Chunked processing with bounded memory.

`process_with_chunks` slices the data, applies the caller's function to each
chunk in order, keeps results in a SpillManager (which writes them to disk
when the process grows past `max_ram_mb`) and finally merges everything, disk
segments first, into a single result.
"""

import logging
import pathlib
from typing import Any, Callable, Optional

import tqdm

from chunkwise.advisor import optimal_chunk_size
from chunkwise.combine import Combiner
from chunkwise.dataset import as_dataset
from chunkwise.exceptions import TransformError
from chunkwise.iterator import ChunkIterator
from chunkwise.memory import MemoryProbe
from chunkwise.onto import (
    DEFAULT_BATCH_LIMIT,
    DEFAULT_MAX_RAM_MB,
    PROGRESS_EVERY,
    RunStats,
)
from chunkwise.spill import SpillManager

logger = logging.getLogger(__name__)


def process_with_chunks_stats(
    data,
    process_fn: Callable[[Any], Any],
    max_ram_mb: float = DEFAULT_MAX_RAM_MB,
    chunk_size: Optional[int] = None,
    scratch_dir: Optional[pathlib.Path] = None,
    combine_fn: Optional[Callable[[Any, Any], Any]] = None,
    verbose: bool = True,
    batch_limit: int = DEFAULT_BATCH_LIMIT,
    probe: Optional[MemoryProbe] = None,
    progress: bool = False,
) -> tuple[Any, RunStats]:
    """
    Same as `process_with_chunks`, also returning the statistics of the run.
    """
    level = logging.INFO if verbose else logging.DEBUG
    dataset = as_dataset(data)
    probe = probe if probe is not None else MemoryProbe()

    if chunk_size is None:
        chunk_size = optimal_chunk_size(
            dataset.size_mb(), len(dataset), max_ram_mb=max_ram_mb
        )
        logger.log(level, f"Auto-calculated chunk size: {chunk_size} rows")

    iterator = ChunkIterator.over(dataset, chunk_size)
    if combine_fn is None:
        combine_fn = dataset.default_combine

    stats = RunStats(total_chunks=iterator.total_chunks, chunk_size=chunk_size)
    stats.initial_ram_mb = probe.current_usage_mb()
    stats.observe_ram(stats.initial_ram_mb)

    logger.log(level, f"Starting processing with {iterator.total_chunks} chunks")
    logger.log(level, f"Initial RAM usage: {stats.initial_ram_mb:.2f} MB")

    with SpillManager(
        max_ram_mb=max_ram_mb,
        scratch_dir=scratch_dir,
        batch_limit=batch_limit,
        probe=probe,
        verbose=verbose,
    ) as spill:
        chunks = iter(iterator)
        if progress:
            chunks = tqdm.tqdm(
                chunks, total=iterator.total_chunks, desc="Processing chunks"
            )
        for chunk in chunks:
            if chunk.index % PROGRESS_EVERY == 0:
                logger.log(
                    level,
                    f"Processing chunk {chunk.index}/{iterator.total_chunks} "
                    f"(RAM: {spill.last_ram_mb:.2f} MB)",
                )
            try:
                processed = process_fn(chunk.data)
            except Exception as e:
                logger.error(f"Error processing chunk {chunk.index}: {e}")
                raise TransformError(
                    f"process_fn failed on chunk {chunk.index} "
                    f"(rows {chunk.start}-{chunk.end}): {e}",
                    chunk_index=chunk.index,
                ) from e
            spill.add(processed)
            stats.observe_ram(spill.last_ram_mb)

        stats.n_spills = spill.n_spills
        stats.n_results_spilled = spill.n_results_spilled

        logger.log(level, "Processing complete. Combining results...")
        result = Combiner(spill).merge(combine_fn)

    stats.final_ram_mb = probe.current_usage_mb()
    stats.observe_ram(stats.final_ram_mb)
    logger.log(level, f"Final RAM usage: {stats.final_ram_mb:.2f} MB")
    logger.log(level, f"Run summary: {stats.to_json()}")
    return result, stats


def process_with_chunks(
    data,
    process_fn: Callable[[Any], Any],
    max_ram_mb: float = DEFAULT_MAX_RAM_MB,
    chunk_size: Optional[int] = None,
    scratch_dir: Optional[pathlib.Path] = None,
    combine_fn: Optional[Callable[[Any, Any], Any]] = None,
    verbose: bool = True,
    batch_limit: int = DEFAULT_BATCH_LIMIT,
    probe: Optional[MemoryProbe] = None,
    progress: bool = False,
):
    """
    Process data chunk by chunk while keeping an eye on RAM usage.

    Processed chunks are buffered in memory; whenever process memory exceeds
    `max_ram_mb` (or more than `batch_limit` results are buffered) the buffer
    is written to disk. The scratch directory is removed on every exit path.

    Args:
        data: pandas DataFrame, 2-D numpy array or 1-D sequence
        process_fn: function applied to each chunk; its errors abort the run
            as TransformError
        max_ram_mb: process RAM (MB) above which buffered results are spilled
        chunk_size: rows per chunk; by default a chunk is sized to take about
            10% of max_ram_mb
        scratch_dir: parent directory of the run's scratch directory
            (default: system temp dir)
        combine_fn: binary function merging two processed results; defaults
            to row concatenation for tables and matrices, element append for
            sequences
        verbose: log progress at INFO level
        batch_limit: maximum number of buffered results before spilling
        probe: memory probe, mostly useful for tests
        progress: show a tqdm progress bar

    Returns:
        the combined result, or None if data is empty

    Examples:
        >>> df = pd.DataFrame({"x": range(100), "y": range(100, 200)})
        >>> out = process_with_chunks(
        ...     df, lambda chunk: chunk.assign(z=chunk.x + chunk.y), chunk_size=25
        ... )
    """
    result, _ = process_with_chunks_stats(
        data,
        process_fn,
        max_ram_mb=max_ram_mb,
        chunk_size=chunk_size,
        scratch_dir=scratch_dir,
        combine_fn=combine_fn,
        verbose=verbose,
        batch_limit=batch_limit,
        probe=probe,
        progress=progress,
    )
    return result
