"""Open file handle limit collector.

Scans the process table for processes whose open file descriptor count has
reached a configured percentage of their soft ``RLIMIT_NOFILE`` limit.
Processes whose limit cannot be read, is unlimited or is zero are left
out rather than reported with a made-up ratio.
"""

from collections.abc import Iterator
from dataclasses import dataclass

import structlog
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.metrics_core import Metric

from .. import hostfs

logger = structlog.get_logger(__name__)

SUBSYSTEM = "filehandles"

DEFAULT_THRESHOLD = 90.0

LIMIT_LABEL_NAMES = [
    "pid",
    "process_name",
    "max_open_files",
    "open_files",
    "percent",
]


@dataclass
class ProcessRecord:
    """Descriptor usage of a single process.

    ``percent`` is open_files relative to max_open_files, in percent.
    """

    pid: str
    name: str
    max_open_files: float
    open_files: float
    percent: float


def _utilization_percent(open_files: float, max_open_files: float) -> float:
    return open_files / max_open_files * 100


def _transform_process(raw: hostfs.types.RawProcessData) -> ProcessRecord | None:
    """Transform raw process data into a ProcessRecord.

    Returns:
        The record, or None if the process has no finite, positive limit.
    """
    if raw.max_open_files is None or raw.max_open_files <= 0:
        return None

    open_files = float(raw.open_files)
    return ProcessRecord(
        pid=raw.pid,
        name=raw.name,
        max_open_files=raw.max_open_files,
        open_files=open_files,
        percent=_utilization_percent(open_files, raw.max_open_files),
    )


def fetch(procfs: hostfs.ProcFilesystem, threshold: float) -> list[ProcessRecord]:
    """Find processes at or above ``threshold`` percent of their fd limit.

    A process whose limit or descriptor count cannot be read is skipped and
    the scan continues. A qualifying process whose name cannot be read is
    still reported, with an empty name.

    Args:
        procfs: Process table reader.
        threshold: Utilization percent a process must reach to be reported.

    Returns:
        Qualifying processes in process table listing order.

    Raises:
        SourceUnavailableError: If the process table cannot be listed.
    """
    records: list[ProcessRecord] = []
    skipped = 0

    for proc in procfs.list_processes():
        try:
            raw = procfs.get_process(proc)
        except hostfs.EntrySkippedError as e:
            skipped += 1
            logger.debug("Skipping process", reason=str(e))
            continue

        record = _transform_process(raw)
        if record is not None and record.percent >= threshold:
            records.append(record)

    logger.debug(
        "Scanned process table",
        threshold=threshold,
        limit_reached=len(records),
        skipped=skipped,
    )
    return records


def generate_metrics(
    records: list[ProcessRecord],
    threshold: float = DEFAULT_THRESHOLD,
    namespace: str = "node",
) -> Iterator[Metric]:
    """Generate limit-reached metrics from qualifying processes.

    Creates a counter with the number of qualifying processes and a gauge
    per process (value is its open file count) labeled with its pid, name,
    limit, open file count and utilization percent.

    Args:
        records: Processes that reached the threshold.
        threshold: Threshold the records were selected with (help text only).
        namespace: Metric namespace.

    Yields:
        Prometheus Metric objects.
    """
    limit_reached_count = CounterMetricFamily(
        f"{namespace}_{SUBSYSTEM}_limit_reached_count",
        f"Count of how many processes have reached {threshold:g}% "
        "of max open files.",
    )
    limit_reached_count.add_metric([], len(records))
    yield limit_reached_count

    limit_reached = GaugeMetricFamily(
        f"{namespace}_{SUBSYSTEM}_limit_reached",
        f"Process that has reached {threshold:g}% of max open files.",
        labels=LIMIT_LABEL_NAMES,
    )
    for record in records:
        limit_reached.add_metric(
            [
                record.pid,
                record.name,
                f"{record.max_open_files:.0f}",
                f"{record.open_files:.0f}",
                f"{record.percent:.2f}",
            ],
            record.open_files,
        )
    yield limit_reached
