import math

from chunkwise.onto import DEFAULT_TARGET_FRACTION


def optimal_chunk_size(
    data_size_mb: float,
    total_rows: int,
    max_ram_mb: float,
    target_fraction: float = DEFAULT_TARGET_FRACTION,
) -> int:
    """
        number of rows per chunk so that a chunk takes about
        `target_fraction` of the RAM budget

        degenerate inputs are clamped rather than rejected, the result always
        lies in [1, max(total_rows, 1)]

    :param data_size_mb: in-memory size of the whole dataset
    :param total_rows: number of rows (elements) in the dataset
    :param max_ram_mb: RAM budget
    :param target_fraction: fraction of the budget a single chunk may use
    :return: chunk size
    """
    total_rows = int(total_rows)
    if total_rows < 1:
        return 1

    target_chunk_ram = max_ram_mb * target_fraction
    if math.isnan(target_chunk_ram) or target_chunk_ram <= 0:
        return 1
    if not math.isfinite(data_size_mb) or data_size_mb <= 0:
        return total_rows
    if target_chunk_ram >= data_size_mb:
        return total_rows

    chunk_size = math.floor(total_rows * target_chunk_ram / data_size_mb)
    return max(1, min(chunk_size, total_rows))
