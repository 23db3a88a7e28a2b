"""Shared fixtures for faking the host process table."""

from collections.abc import Callable, Iterator
from unittest.mock import MagicMock, patch

import psutil
import pytest

FakeProcess = Callable[..., MagicMock]


@pytest.fixture
def process_table() -> Iterator[list[MagicMock]]:
    """Patch psutil.process_iter to list the returned (initially empty) table."""
    processes: list[MagicMock] = []
    with patch(
        "host_telemetry_exporter.hostfs.client.psutil.process_iter",
        return_value=processes,
    ):
        yield processes


@pytest.fixture
def make_process(process_table: list[MagicMock]) -> FakeProcess:
    """Factory adding a fake psutil process to the patched process table.

    ``limit=None`` makes reading the open files limit fail with AccessDenied.
    """

    def _make(
        pid: int,
        limit: int | None = 1024,
        open_files: int = 0,
        name: str | None = "proc",
    ) -> MagicMock:
        proc = MagicMock(spec=psutil.Process)
        proc.pid = pid
        proc.info = {"pid": pid, "name": name}
        if limit is None:
            proc.rlimit.side_effect = psutil.AccessDenied(pid)
        else:
            proc.rlimit.return_value = (limit, limit)
        proc.num_fds.return_value = open_files
        process_table.append(proc)
        return proc

    return _make
