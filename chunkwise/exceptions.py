"""
Error kinds raised by chunked runs.

Only the memory probe degrades gracefully (through ``ProbeFailureWarning``);
every other condition aborts the run after its scratch directory is removed.
"""


class ChunkwiseError(Exception):
    """Base class for chunkwise errors."""


class InvalidInputError(ChunkwiseError, ValueError):
    """Unsupported dataset shape or an invalid chunk size."""


class SegmentIOError(ChunkwiseError, OSError):
    """A spilled segment could not be written or read back."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class TransformError(ChunkwiseError, RuntimeError):
    """The caller's per-chunk function raised."""

    def __init__(self, message: str, chunk_index: int):
        super().__init__(message)
        self.chunk_index = chunk_index


class ProbeFailureWarning(RuntimeWarning):
    """Every memory-reading strategy failed; usage reads as 0.0."""
