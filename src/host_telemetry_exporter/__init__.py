"""Host Telemetry Exporter.

Prometheus exporter for host state the stock node exporter does not cover:
chef-client run status, processes close to their open file limit, and OOM
killer events from the system log.
"""

__version__ = "0.1.0"
