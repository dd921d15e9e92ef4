import gc
import logging
import pathlib
import pickle
import shutil
import tempfile
import time
import zlib
from typing import Any, Callable, Optional

import joblib

from chunkwise.exceptions import SegmentIOError
from chunkwise.memory import MemoryProbe
from chunkwise.onto import (
    DEFAULT_BATCH_LIMIT,
    DEFAULT_MAX_RAM_MB,
    SCRATCH_PREFIX,
    SEGMENT_COMPRESS,
    SegmentRecord,
)

logger = logging.getLogger(__name__)


class SpillManager:
    """
    Bounded in-memory buffer of processed chunks backed by on-disk segments.

    After every `add` the process memory is read; if it exceeds `max_ram_mb`,
    or the buffer holds more than `batch_limit` results, the whole buffer is
    written as the next segment and cleared. Segments live in a scratch
    directory owned by this instance and removed by `cleanup`.

    Use it as a context manager to make sure `cleanup` runs on every exit path.
    """

    def __init__(
        self,
        max_ram_mb: float = DEFAULT_MAX_RAM_MB,
        scratch_dir: Optional[pathlib.Path] = None,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        probe: Optional[MemoryProbe] = None,
        verbose: bool = False,
    ):
        self.threshold_mb = max_ram_mb
        self.batch_limit = batch_limit
        self.probe = probe if probe is not None else MemoryProbe()
        self.verbose = verbose
        self.scratch_root = (
            pathlib.Path(scratch_dir).expanduser()
            if scratch_dir is not None
            else pathlib.Path(tempfile.gettempdir())
        )
        self.scratch_dir: Optional[pathlib.Path] = None
        self.buffer: list[Any] = []
        self.segments: list[SegmentRecord] = []
        self.n_results_spilled = 0
        self.last_ram_mb = 0.0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
        return False

    def _log(self, msg):
        logger.log(logging.INFO if self.verbose else logging.DEBUG, msg)

    @property
    def n_spills(self) -> int:
        return len(self.segments)

    @property
    def n_buffered(self) -> int:
        return len(self.buffer)

    @property
    def current_ram_mb(self) -> float:
        return self.probe.current_usage_mb()

    def _ensure_scratch_dir(self) -> pathlib.Path:
        if self.scratch_dir is None:
            stamp = time.strftime("%Y%m%d_%H%M%S")
            try:
                self.scratch_root.mkdir(parents=True, exist_ok=True)
                self.scratch_dir = pathlib.Path(
                    tempfile.mkdtemp(
                        prefix=f"{SCRATCH_PREFIX}{stamp}_", dir=self.scratch_root
                    )
                )
            except OSError as e:
                raise SegmentIOError(
                    f"Could not create scratch directory in {self.scratch_root}: {e}",
                    path=self.scratch_root,
                ) from e
            logger.debug(f"Created scratch directory {self.scratch_dir}")
        return self.scratch_dir

    def add(self, result: Any):
        self.buffer.append(result)

        current_ram = self.probe.current_usage_mb()
        self.last_ram_mb = current_ram
        if current_ram > self.threshold_mb or len(self.buffer) > self.batch_limit:
            self._log(
                f"Flushing {len(self.buffer)} results to disk (RAM: {current_ram:.2f} MB)"
            )
            self.spill()

    def spill(self) -> SegmentRecord | None:
        """
        Write the whole buffer as the next segment and clear it.

        The buffer is only cleared once the segment is on disk; a failed write
        raises SegmentIOError and leaves the buffer untouched.
        """
        if not self.buffer:
            return None

        sequence = len(self.segments) + 1
        scratch_dir = self._ensure_scratch_dir()
        path = scratch_dir / SegmentRecord.file_name(sequence)
        try:
            joblib.dump(self.buffer, path, compress=SEGMENT_COMPRESS)
        except (OSError, pickle.PicklingError, TypeError, AttributeError) as e:
            logger.error(f"Error writing segment {path}: {e}")
            raise SegmentIOError(f"Could not write segment {path}: {e}", path=path) from e

        record = SegmentRecord(sequence=sequence, path=path, n_results=len(self.buffer))
        self.segments.append(record)
        self.n_results_spilled += record.n_results
        self.buffer = []
        gc.collect()

        self._log(
            f"Wrote segment {sequence} with {record.n_results} results. "
            f"New RAM usage: {self.probe.current_usage_mb():.2f} MB"
        )
        return record

    def load_segment(self, record: SegmentRecord) -> list[Any]:
        try:
            return joblib.load(record.path)
        except (
            OSError,
            EOFError,
            ValueError,
            pickle.UnpicklingError,
            zlib.error,
        ) as e:
            logger.error(f"Error reading segment {record.path}: {e}")
            raise SegmentIOError(
                f"Could not read segment {record.path}: {e}", path=record.path
            ) from e

    def get_results(self, combine_fn: Optional[Callable[[Any, Any], Any]] = None):
        from chunkwise.combine import Combiner

        return Combiner(self).merge(combine_fn)

    def cleanup(self):
        self.buffer = []
        self.segments = []
        if self.scratch_dir is not None:
            shutil.rmtree(self.scratch_dir, ignore_errors=True)
            if self.scratch_dir.exists():
                logger.warning(
                    f"Scratch directory {self.scratch_dir} could not be fully removed"
                )
            else:
                logger.debug(f"Removed scratch directory {self.scratch_dir}")
            self.scratch_dir = None
