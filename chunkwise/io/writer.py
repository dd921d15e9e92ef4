import pathlib
from typing import Optional

import pandas as pd
import pyarrow as pa
from pyarrow import parquet as pq
import logging

logger = logging.getLogger(__name__)


class ParquetWriter:
    """
    Append DataFrames to a single Parquet file; the schema is fixed by the first frame
    """

    def __init__(self, output_path: pathlib.Path, preserve_index: bool = False):
        self.output_path = output_path
        self.writer: Optional[pq.ParquetWriter] = None
        self.schema: Optional[pa.Schema] = None
        self.total_rows = 0
        self.preserve_index = preserve_index

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _frame_to_table(self, df: pd.DataFrame) -> pa.Table:
        table = pa.Table.from_pandas(df, preserve_index=self.preserve_index)
        if self.schema is not None:
            table = table.cast(self.schema)
        return table

    def write_frame(self, df: pd.DataFrame):
        """Write a DataFrame to Parquet"""
        if df is None or df.empty:
            logger.info("Skipping empty frame")
            return

        try:
            table = self._frame_to_table(df)
            # Initialize schema and writer on first frame
            if self.writer is None:
                self.schema = table.schema
                self.writer = pq.ParquetWriter(self.output_path, self.schema)
                logger.info(f"Initialized Parquet writer with schema: {self.schema}")

            self.writer.write_table(table)
            self.total_rows += len(df)
            logger.info(f"Wrote frame with {len(df)} rows. Total: {self.total_rows}")

        except Exception as e:
            logger.error(f"Error writing frame: {e}")
            raise

    def close(self):
        """Close the writer"""
        if self.writer is not None:
            self.writer.close()
            self.writer = None
            logger.info(f"Closed Parquet writer. Total rows written: {self.total_rows}")


def write_parquet(df: pd.DataFrame, output_path: pathlib.Path) -> int:
    """write df to output_path, return the number of rows written"""
    with ParquetWriter(output_path) as writer:
        writer.write_frame(df)
    return writer.total_rows
