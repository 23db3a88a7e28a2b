"""Chef client run collector.

Tails the chef-client run log and reports whether the last recorded run
succeeded and how long ago the log was last written.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric

from .. import hostfs

SUBSYSTEM = "chef_client"

DEFAULT_LOG_FILE = "/var/log/chefrun"
DEFAULT_RUN_MARKER = "chef"
DEFAULT_SUCCESS_MARKER = "status=success"


@dataclass
class ClientRunStatus:
    """Outcome of the most recent chef-client run found in the log."""

    log_file: str
    status: float
    seconds_since_last_run: float


def fetch(
    log_file: str,
    run_marker: str = DEFAULT_RUN_MARKER,
    success_marker: str = DEFAULT_SUCCESS_MARKER,
) -> list[ClientRunStatus]:
    """Read the last run status and freshness of the chef-client log.

    A log with no line containing ``run_marker`` reports a failed run.

    Raises:
        SourceUnavailableError: If the log file cannot be read.
    """
    last_line = hostfs.logfile.last_matching_line(log_file, run_marker.encode())
    age = hostfs.logfile.seconds_since_modified(log_file)
    status = 1.0 if success_marker in last_line else 0.0
    return [
        ClientRunStatus(
            log_file=log_file,
            status=status,
            seconds_since_last_run=age,
        ),
    ]


def generate_metrics(
    runs: list[ClientRunStatus],
    namespace: str = "node",
) -> Iterator[Metric]:
    """Generate last-run status and freshness gauges."""
    for run in runs:
        last_run_status = GaugeMetricFamily(
            f"{namespace}_{SUBSYSTEM}_last_run_status",
            "Status of last chef-client run (1 is ok, 0 is not ok).",
        )
        last_run_status.add_metric([], run.status)
        yield last_run_status

        last_run = GaugeMetricFamily(
            f"{namespace}_{SUBSYSTEM}_last_run",
            "Seconds since last chef-client run "
            f"(modification time of {run.log_file}).",
        )
        last_run.add_metric([], run.seconds_since_last_run)
        yield last_run
