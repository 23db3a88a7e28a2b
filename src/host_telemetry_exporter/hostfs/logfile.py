"""Log file scanning helpers.

Every helper opens the file, scans it forward once and closes it before
returning. Lines are matched as bytes and decoded leniently, so a log with
stray non-UTF-8 bytes never aborts a scan.
"""

import os
import time
from collections.abc import Iterator, Sequence

import structlog

from .client import SourceUnavailableError

logger = structlog.get_logger(__name__)


def _decode(raw_line: bytes) -> str:
    return raw_line.decode("utf-8", errors="replace").rstrip("\r\n")


def iter_matching_lines(path: str, pattern: bytes) -> Iterator[str]:
    """Yield every line of a file containing a literal byte pattern.

    Args:
        path: Log file to scan.
        pattern: Literal bytes to look for (no regex semantics).

    Yields:
        Matching lines, decoded and without the line terminator.

    Raises:
        SourceUnavailableError: If the file cannot be opened or read.
    """
    try:
        with open(path, "rb") as f:
            for raw_line in f:
                if pattern in raw_line:
                    yield _decode(raw_line)
    except OSError as e:
        msg = f"Cannot read log file {path}: {e}"
        raise SourceUnavailableError(msg) from e


def last_matching_line(path: str, marker: bytes) -> str:
    """Return the last line containing ``marker``, or "" if none does."""
    last_line = ""
    for line in iter_matching_lines(path, marker):
        last_line = line
    return last_line


def seconds_since_modified(path: str) -> float:
    """Return wall-clock seconds elapsed since the file was last modified.

    Raises:
        SourceUnavailableError: If the file cannot be stat'ed.
    """
    try:
        mtime = os.stat(path).st_mtime
    except OSError as e:
        msg = f"Cannot stat log file {path}: {e}"
        raise SourceUnavailableError(msg) from e
    return time.time() - mtime


def first_existing(paths: Sequence[str]) -> str:
    """Pick the first path of an ordered candidate list that exists.

    Raises:
        SourceUnavailableError: If none of the candidates exist.
    """
    for path in paths:
        if os.path.exists(path):
            return path

    logger.debug("No candidate log file exists", candidates=list(paths))
    msg = f"No log file found, tried: {', '.join(paths)}"
    raise SourceUnavailableError(msg)
