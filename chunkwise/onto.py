import dataclasses
import pathlib
from enum import Enum
from typing import Any

from dataclass_wizard import JSONWizard

DEFAULT_MAX_RAM_MB = 1000.0
DEFAULT_BATCH_LIMIT = 50
DEFAULT_TARGET_FRACTION = 0.1

# log a progress line every PROGRESS_EVERY chunks when verbose
PROGRESS_EVERY = 10

SCRATCH_PREFIX = "chunks_"
SEGMENT_PREFIX = "segment-"
SEGMENT_SUFFIX = ".joblib"
SEGMENT_COMPRESS = 3


class DatasetKind(Enum):
    TABLE = "table"
    MATRIX = "matrix"
    SEQUENCE = "sequence"


class BaseDataclass(JSONWizard, JSONWizard.Meta):
    key_transform_with_dump = "SNAKE"
    skip_defaults = True


@dataclasses.dataclass
class Chunk:
    index: int  # ordinal of the chunk, 1-based
    start: int  # first row, 1-based inclusive
    end: int  # last row, 1-based inclusive
    data: Any = None

    def __len__(self):
        return self.end - self.start + 1


@dataclasses.dataclass(frozen=True)
class SegmentRecord:
    sequence: int
    path: pathlib.Path
    n_results: int

    @classmethod
    def file_name(cls, sequence: int) -> str:
        return f"{SEGMENT_PREFIX}{sequence:04d}{SEGMENT_SUFFIX}"


@dataclasses.dataclass
class MemoryInfo(BaseDataclass):
    total_ram_mb: float
    available_ram_mb: float
    used_ram_mb: float


@dataclasses.dataclass
class RunStats(BaseDataclass):
    total_chunks: int = 0
    chunk_size: int = 0
    n_spills: int = 0
    n_results_spilled: int = 0
    initial_ram_mb: float = 0.0
    peak_ram_mb: float = 0.0
    final_ram_mb: float = 0.0

    def observe_ram(self, ram_mb: float):
        self.peak_ram_mb = max(self.peak_ram_mb, ram_mb)
