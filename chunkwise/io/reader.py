"""
Unified reader for tables to be processed in chunks.
Supports Feather, Parquet, and CSV/TSV formats.
"""

import pathlib
from typing import Optional

import pandas as pd
from pyarrow import feather as pf
from pyarrow import parquet as pq

COMPRESSION_EXTS = {".gz", ".bz2", ".xz", ".zip"}


def _base_suffix(file_path) -> Optional[str]:
    """last suffix of the path once compression extensions are dropped"""
    suffixes = [s.lower() for s in pathlib.Path(file_path).suffixes]
    base_suffixes = [s for s in suffixes if s not in COMPRESSION_EXTS]
    return base_suffixes[-1] if base_suffixes else None


def _detect_file_type(file_path) -> str:
    """Detect file type from extension, handling compressed files."""
    suffix = _base_suffix(file_path)

    if suffix is None:
        raise ValueError(
            f"Could not detect file type from path: {file_path}. "
            "Supported formats: .feather, .parquet, .csv, .tsv (optionally compressed)"
        )

    if suffix == ".feather":
        return "feather"
    elif suffix == ".parquet":
        return "parquet"
    elif suffix in (".csv", ".tsv"):
        return "csv"
    else:
        raise ValueError(
            f"Unsupported file type: {suffix}. "
            "Supported formats: .feather, .parquet, .csv, .tsv (optionally compressed)"
        )


def _read_csv(file_path, sep: Optional[str] = None, **kwargs) -> pd.DataFrame:
    if sep is None:
        sep = "\t" if _base_suffix(file_path) == ".tsv" else ","
    # pandas handles compression from the extension
    return pd.read_csv(file_path, sep=sep, **kwargs)


def read_table(
    file_path, file_type: Optional[str] = None, **kwargs
) -> pd.DataFrame:
    """
    Read a whole table into a pandas DataFrame.

    Automatically detects file type from extension if not provided.

    Args:
        file_path: Path to the file to read
        file_type: Optional file type override ('feather', 'parquet', 'csv').
                   If None, auto-detects from file extension.
        **kwargs: Additional arguments passed to format-specific readers:
                  - For CSV: sep, header, etc. (pandas.read_csv arguments)
                  - For Parquet and Feather: columns (list of column names to read)

    Returns:
        pd.DataFrame

    Examples:
        >>> df = read_table("data.parquet", columns=["x", "y"])
        >>> df = read_table("data.csv.gz", sep=";")
    """
    if file_type is None:
        file_type = _detect_file_type(file_path)

    if file_type == "feather":
        columns = kwargs.pop("columns", None)
        return pf.read_table(file_path, columns=columns).to_pandas()
    elif file_type == "parquet":
        columns = kwargs.pop("columns", None)
        return pq.read_table(file_path, columns=columns).to_pandas()
    elif file_type == "csv":
        return _read_csv(file_path, **kwargs)
    else:
        raise ValueError(f"Unsupported file type: {file_type}")
