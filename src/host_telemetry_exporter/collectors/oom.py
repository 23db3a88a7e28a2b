"""Out-of-memory killer collector.

Scans the kernel/system log for OOM killer entries and reports how many
processes were killed plus one sample per kill event.

Kill events are decoded with fixed offsets into the syslog line, e.g.::

    Oct 19 10:00:00 host kernel: [1234.5678] Killed process 1234 (myproc) ...
    |--- time ----|                           field 8 -^   ^- field 9

A line that does not follow this layout (a different syslog daemon, a
padded kernel timestamp like ``[ 12.3]``) still counts as a kill, but its
pid and program may come out as 0 and "".
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import structlog
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.metrics_core import Metric

from .. import hostfs

logger = structlog.get_logger(__name__)

SUBSYSTEM = "oom"

DEFAULT_SYSLOG_FILES = ("/var/log/kern.log", "/var/log/messages")
DEFAULT_PATTERN = "Killed process"

# Expected layout of an OOM killer syslog line.
OOM_LINE_LAYOUT = {
    "timestamp_width": 15,
    "pid_field": 8,
    "program_field": 9,
}

EVENT_LABEL_NAMES = ["pid", "time", "program"]


@dataclass
class OomEvent:
    """A single OOM killer event decoded from a syslog line."""

    timestamp: str
    program: str
    pid: float


def _field(fields: list[str], index: int) -> str:
    return fields[index] if index < len(fields) else ""


def _parse_event(line: str) -> OomEvent:
    """Decode an OOM killer line using ``OOM_LINE_LAYOUT``.

    Never raises: fields missing from the line decode as 0 or "".
    """
    fields = line.split()
    raw_pid = _field(fields, OOM_LINE_LAYOUT["pid_field"])
    program = _field(fields, OOM_LINE_LAYOUT["program_field"])

    try:
        pid = float(raw_pid)
    except ValueError:
        logger.debug("Unexpected OOM line layout", line=line)
        pid = 0.0

    return OomEvent(
        timestamp=line[: OOM_LINE_LAYOUT["timestamp_width"]],
        program=program.replace("(", "").replace(")", ""),
        pid=pid,
    )


def fetch(
    syslog_files: Sequence[str] = DEFAULT_SYSLOG_FILES,
    pattern: str = DEFAULT_PATTERN,
) -> list[OomEvent]:
    """Decode every OOM killer event in the first existing syslog file.

    Args:
        syslog_files: Ordered candidate log files, first existing one wins.
        pattern: Literal text identifying an OOM kill line.

    Returns:
        One event per matching line, in file order.

    Raises:
        SourceUnavailableError: If no candidate exists or it cannot be read.
    """
    log_file = hostfs.logfile.first_existing(syslog_files)
    events = [
        _parse_event(line)
        for line in hostfs.logfile.iter_matching_lines(log_file, pattern.encode())
    ]
    logger.debug("Scanned syslog", log_file=log_file, matches=len(events))
    return events


def generate_metrics(
    events: list[OomEvent],
    namespace: str = "node",
) -> Iterator[Metric]:
    """Generate OOM kill count and per-event metrics.

    Args:
        events: Decoded OOM killer events.
        namespace: Metric namespace.

    Yields:
        Prometheus Metric objects.
    """
    oom_count = CounterMetricFamily(
        f"{namespace}_{SUBSYSTEM}_count",
        "counter for out of memory killer occurrences.",
    )
    oom_count.add_metric([], len(events))
    yield oom_count

    oom_pid = GaugeMetricFamily(
        f"{namespace}_{SUBSYSTEM}_pid",
        "pid that was killed by the out of memory killer.",
        labels=EVENT_LABEL_NAMES,
    )
    for event in events:
        oom_pid.add_metric(
            [f"{event.pid:.0f}", event.timestamp, event.program],
            event.pid,
        )
    yield oom_pid
