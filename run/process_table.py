import click
import pathlib
import pandas as pd
import logging

from chunkwise.io import read_table, write_parquet
from chunkwise.process import process_with_chunks_stats

logger = logging.getLogger(__name__)


@click.command()
@click.option(
    "--input-path",
    type=click.Path(path_type=pathlib.Path, exists=True, dir_okay=False),
    required=True,
    help="Input table (feather, parquet, CSV/TSV optionally compressed).",
)
@click.option(
    "--expression",
    type=click.STRING,
    required=True,
    help="pandas `DataFrame.eval` expression applied to each chunk, e.g. `z = x + y`.",
)
@click.option(
    "--output-parquet-path",
    type=click.Path(path_type=pathlib.Path),
    default=None,
    help="Output Parquet file; defaults to the input path with a `.processed.parquet` suffix.",
)
@click.option(
    "--max-ram-mb",
    type=click.FLOAT,
    default=1000.0,
    help="Process RAM (MB) above which processed chunks are written to disk.",
)
@click.option(
    "--chunk-size",
    type=click.INT,
    default=None,
    help="Rows per chunk (skip it to size chunks from --max-ram-mb).",
)
@click.option(
    "--scratch-dir",
    type=click.Path(path_type=pathlib.Path, file_okay=False),
    default=None,
    help="Parent directory for temporary segments (default: system temp dir).",
)
@click.option(
    "--batch-limit",
    type=click.INT,
    default=50,
    help="Maximum number of processed chunks kept in memory before spilling.",
)
@click.option("--quiet", is_flag=True, default=False, help="Only log warnings.")
def run(
    input_path,
    expression,
    output_parquet_path,
    max_ram_mb,
    chunk_size,
    scratch_dir,
    batch_limit,
    quiet,
):
    logging.basicConfig(
        level=logging.WARNING if quiet else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if output_parquet_path is None:
        output_parquet_path = input_path.with_name(
            f"{input_path.name.split('.')[0]}.processed.parquet"
        )
    output_parquet_path = output_parquet_path.expanduser()
    output_parquet_path.parent.mkdir(parents=True, exist_ok=True)

    df = read_table(input_path)
    logger.info(f"Loaded {len(df)} rows and {len(df.columns)} columns from {input_path}")

    result, stats = process_with_chunks_stats(
        df,
        lambda chunk: chunk.eval(expression),
        max_ram_mb=max_ram_mb,
        chunk_size=chunk_size,
        scratch_dir=scratch_dir,
        batch_limit=batch_limit,
        verbose=not quiet,
        progress=not quiet,
    )

    if result is None:
        logger.warning("Input table is empty, nothing written")
        return
    if isinstance(result, pd.Series):
        # expressions without assignment evaluate to a column
        result = result.to_frame(name=result.name or "value")

    n_rows = write_parquet(result, output_parquet_path)
    logger.info(
        f"Processing completed: {n_rows} rows in {stats.total_chunks} chunks, "
        f"{stats.n_spills} spills. Output saved to {output_parquet_path}"
    )


if __name__ == "__main__":
    run()
