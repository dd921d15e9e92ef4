"""
Cross-platform reading of the current process memory footprint.

The readings are only meant for comparison against a threshold: they are
not precise RSS accounting. When every strategy fails the probe reports 0.0
and warns, so a threshold check never fires in that case and only the batch
limit of a SpillManager will trigger spills.

The getrusage fallback reports the peak resident set size, which never goes
down: once it crosses a threshold, every later check stays above it and a
SpillManager spills after each add.
"""

import logging
import os
import pathlib
import sys
import warnings

import psutil

from chunkwise.exceptions import ProbeFailureWarning
from chunkwise.onto import MemoryInfo

logger = logging.getLogger(__name__)

MB = 1024.0 * 1024.0

PROC_STATUS_PATH = pathlib.Path("/proc/self/status")


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def _is_apple() -> bool:
    return sys.platform == "darwin"


class MemoryProbe:
    def __init__(self, proc_status_path: pathlib.Path = PROC_STATUS_PATH):
        self.proc_status_path = proc_status_path

    def _read_proc_status(self) -> float | None:
        """VmRSS from /proc/<pid>/status, in MB"""
        try:
            with open(self.proc_status_path, "r") as f:
                for line in f:
                    if line.startswith("VmRSS:"):
                        rss_kb = float(line[len("VmRSS:") :].split()[0])
                        return rss_kb / 1024.0
        except (OSError, ValueError, IndexError) as e:
            logger.debug(f"Could not read {self.proc_status_path}: {e}")
        return None

    def _read_rusage(self) -> float | None:
        """peak resident set size; Linux reports KB, Apple platforms bytes"""
        try:
            import resource
        except ImportError:
            return None
        try:
            maxrss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        except (OSError, ValueError) as e:
            logger.debug(f"getrusage failed: {e}")
            return None
        if _is_apple():
            return maxrss / MB
        return maxrss / 1024.0

    def _read_process_info(self) -> float | None:
        try:
            info = psutil.Process().memory_info()
        except (psutil.Error, OSError) as e:
            logger.debug(f"psutil memory_info failed: {e}")
            return None
        # private bytes is the PrivateUsage counter on Windows
        return getattr(info, "private", info.rss) / MB

    def _strategies(self):
        if _is_windows():
            return [self._read_process_info]
        return [self._read_proc_status, self._read_rusage]

    def current_usage_mb(self) -> float:
        for strategy in self._strategies():
            value = strategy()
            if value is not None:
                return value
        logger.warning(
            "Memory usage could not be read; reporting 0.0 MB, RAM threshold checks are disabled"
        )
        warnings.warn(
            "all memory probes failed, usage reads as 0.0 MB",
            ProbeFailureWarning,
            stacklevel=2,
        )
        return 0.0

    def ram_threshold_exceeded(self, max_ram_mb: float) -> bool:
        return self.current_usage_mb() > max_ram_mb

    def _sysconf_memory(self) -> tuple[float, float] | None:
        try:
            page_size = os.sysconf("SC_PAGE_SIZE")
            pages = os.sysconf("SC_PHYS_PAGES")
            avail_pages = os.sysconf("SC_AVPHYS_PAGES")
        except (AttributeError, ValueError, OSError):
            # macOS has no SC_AVPHYS_PAGES, Windows has no sysconf
            return None
        if page_size < 0 or pages < 0 or avail_pages < 0:
            return None
        return pages * page_size / MB, avail_pages * page_size / MB

    def system_info(self) -> MemoryInfo:
        totals = None if _is_windows() else self._sysconf_memory()
        if totals is None:
            vm = psutil.virtual_memory()
            totals = vm.total / MB, vm.available / MB
        total_ram_mb, available_ram_mb = totals
        return MemoryInfo(
            total_ram_mb=total_ram_mb,
            available_ram_mb=available_ram_mb,
            used_ram_mb=self.current_usage_mb(),
        )


_default_probe = MemoryProbe()


def get_ram_usage() -> float:
    """
    current RAM usage of this process in MB, 0.0 if it cannot be read
    """
    return _default_probe.current_usage_mb()


def get_system_info() -> MemoryInfo:
    return _default_probe.system_info()
