"""
Reading and writing of tables processed in chunks.
Supports Feather, Parquet, and CSV/TSV formats for input, Parquet for output.
"""

from chunkwise.io.reader import read_table
from chunkwise.io.writer import ParquetWriter, write_parquet

__all__ = ["read_table", "ParquetWriter", "write_parquet"]
