"""Process table reader.

Provides a psutil-backed reader that enumerates processes and reads their
open file descriptor limits and counts, returning Pydantic-validated data.
"""

import psutil
import structlog

from .types import RawProcessData

logger = structlog.get_logger(__name__)

DEFAULT_PROC_PATH = "/proc"


class SourceUnavailableError(Exception):
    """Raised when a collector's whole data source cannot be read."""


class EntrySkippedError(Exception):
    """Raised when a single entry of an enumeration cannot be read."""


class ProcFilesystem:
    """Reader for the host process table.

    Only reads; never caches. Every call reflects the process table at the
    time of the call, so a process can vanish between ``list_processes``
    and a per-process read. Such races surface as :class:`EntrySkippedError`.
    """

    def __init__(self, proc_path: str = DEFAULT_PROC_PATH):
        """Initialize the reader.

        Args:
            proc_path: Mount point of procfs (overridable for containers
                with the host's procfs bind-mounted elsewhere).
        """
        self.proc_path = proc_path
        psutil.PROCFS_PATH = proc_path

    def list_processes(self) -> list[psutil.Process]:
        """List processes in host listing order.

        Returns:
            psutil processes with ``pid`` and ``name`` prefetched in ``info``.

        Raises:
            SourceUnavailableError: If the process table cannot be listed.
        """
        try:
            processes = list(psutil.process_iter(["pid", "name"]))
        except (psutil.Error, OSError) as e:
            msg = f"Cannot list process table {self.proc_path}: {e}"
            raise SourceUnavailableError(msg) from e

        logger.debug(
            "Listed process table",
            proc_path=self.proc_path,
            process_count=len(processes),
        )
        return processes

    def get_process(self, proc: psutil.Process) -> RawProcessData:
        """Read descriptor limit and usage of a single process.

        A process whose name is not readable is still returned, with an
        empty name.

        Raises:
            EntrySkippedError: If the limit or the descriptor count cannot
                be read.
        """
        pid = str(proc.info["pid"])
        try:
            soft_limit, _ = proc.rlimit(psutil.RLIMIT_NOFILE)
            open_files = proc.num_fds()
        except (psutil.NoSuchProcess, psutil.AccessDenied, OSError) as e:
            msg = f"Cannot read open files of pid {pid}: {e}"
            raise EntrySkippedError(msg) from e

        name = proc.info.get("name")
        if name is None:
            logger.debug("Process name unavailable", pid=pid)

        return RawProcessData(
            pid=pid,
            name=name or "",
            max_open_files=None if soft_limit == psutil.RLIM_INFINITY else soft_limit,
            open_files=open_files,
        )
