"""Host filesystem access package.

Provides thin readers for the host state the collectors inspect: the
``/proc`` process table and plain-text log files. Readers return raw,
validated data with minimal processing. Business logic and metric
transformations are handled by collector modules.

Exports:
    ProcFilesystem: Reader for per-process descriptor limits and counts.
    SourceUnavailableError: Raised when a whole source cannot be read.
    EntrySkippedError: Raised when a single process entry cannot be read.
    logfile: Module containing log file scanning helpers.
    types: Module containing Pydantic models for raw host data.
    DEFAULT_PROC_PATH: Default mount point of procfs.
"""

from . import logfile, types
from .client import (
    DEFAULT_PROC_PATH,
    EntrySkippedError,
    ProcFilesystem,
    SourceUnavailableError,
)

__all__ = [
    "DEFAULT_PROC_PATH",
    "EntrySkippedError",
    "ProcFilesystem",
    "SourceUnavailableError",
    "logfile",
    "types",
]
