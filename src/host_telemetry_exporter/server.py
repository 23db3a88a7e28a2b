"""HTTP server for the Host Telemetry Exporter."""

import json
import logging
import os
import pathlib
from collections.abc import Callable
from dataclasses import dataclass

import prometheus_client
import prometheus_client.core
import pydantic
import starlette.applications
import starlette.requests
import starlette.responses
import starlette.routing
import structlog

from . import collector, hostfs
from .collectors import chef_client, filehandles, oom

CONFIG_ENV_VAR = "HOST_EXPORTER_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ChefClientConfig(pydantic.BaseModel):
    """Configuration for the chef-client run collector."""

    model_config = pydantic.ConfigDict(frozen=True)

    log_file: str = pydantic.Field(
        chef_client.DEFAULT_LOG_FILE,
        description="Logfile to monitor chef-client runs",
    )
    run_marker: str = pydantic.Field(
        chef_client.DEFAULT_RUN_MARKER,
        description="Text identifying a chef-client run line",
    )
    success_marker: str = pydantic.Field(
        chef_client.DEFAULT_SUCCESS_MARKER,
        description="Text identifying a successful run",
    )


class FilehandlesConfig(pydantic.BaseModel):
    """Configuration for the open file handle limit collector."""

    model_config = pydantic.ConfigDict(frozen=True)

    threshold: float = pydantic.Field(
        filehandles.DEFAULT_THRESHOLD,
        description="Threshold for max open files in %",
        ge=0,
        le=100,
    )
    proc_path: str = pydantic.Field(
        hostfs.DEFAULT_PROC_PATH,
        description="Mount point of procfs",
    )


class OomConfig(pydantic.BaseModel):
    """Configuration for the OOM killer collector."""

    model_config = pydantic.ConfigDict(frozen=True)

    syslog_files: tuple[str, ...] = pydantic.Field(
        oom.DEFAULT_SYSLOG_FILES,
        description="Candidate syslog files, first existing one is scanned",
        min_length=1,
    )
    pattern: str = pydantic.Field(
        oom.DEFAULT_PATTERN,
        description="Text identifying an OOM killer line",
        min_length=1,
    )


class ExporterConfig(pydantic.BaseModel):
    """Configuration for the Host Telemetry Exporter."""

    model_config = pydantic.ConfigDict(frozen=True)

    port: int = pydantic.Field(9100, description="HTTP server port", gt=0, lt=65536)
    metrics_path: str = pydantic.Field(
        "/metrics",
        description="URL path for metrics endpoint",
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")
    namespace: str = pydantic.Field("node", description="Metric namespace")
    collectors: dict[str, bool] = pydantic.Field(
        default_factory=dict,
        description="Per-collector enable flags overriding the defaults",
    )
    chef_client: ChefClientConfig = pydantic.Field(default_factory=ChefClientConfig)
    filehandles: FilehandlesConfig = pydantic.Field(
        default_factory=FilehandlesConfig,
    )
    oom: OomConfig = pydantic.Field(default_factory=OomConfig)


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> ExporterConfig:
    """Load configuration from JSON file."""
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return ExporterConfig(**data)


def build_chef_client(config: ExporterConfig) -> collector.HostCollector:
    settings = config.chef_client
    return collector.HostCollector(
        fetcher=lambda: chef_client.fetch(
            settings.log_file,
            run_marker=settings.run_marker,
            success_marker=settings.success_marker,
        ),
        generator=lambda runs: chef_client.generate_metrics(
            runs,
            namespace=config.namespace,
        ),
        subsystem=chef_client.SUBSYSTEM,
        namespace=config.namespace,
    )


def build_filehandles(config: ExporterConfig) -> collector.HostCollector:
    settings = config.filehandles
    procfs = hostfs.ProcFilesystem(settings.proc_path)
    return collector.HostCollector(
        fetcher=lambda: filehandles.fetch(procfs, settings.threshold),
        generator=lambda records: filehandles.generate_metrics(
            records,
            threshold=settings.threshold,
            namespace=config.namespace,
        ),
        subsystem=filehandles.SUBSYSTEM,
        namespace=config.namespace,
    )


def build_oom(config: ExporterConfig) -> collector.HostCollector:
    settings = config.oom
    return collector.HostCollector(
        fetcher=lambda: oom.fetch(settings.syslog_files, pattern=settings.pattern),
        generator=lambda events: oom.generate_metrics(
            events,
            namespace=config.namespace,
        ),
        subsystem=oom.SUBSYSTEM,
        namespace=config.namespace,
    )


@dataclass(frozen=True)
class CollectorEntry:
    """A named collector constructor and whether it is enabled by default."""

    name: str
    enabled_by_default: bool
    build: Callable[[ExporterConfig], collector.HostCollector]


COLLECTORS: tuple[CollectorEntry, ...] = (
    CollectorEntry("chef_client", False, build_chef_client),
    CollectorEntry("filehandles", False, build_filehandles),
    CollectorEntry("oom", False, build_oom),
)


def enabled_collectors(config: ExporterConfig) -> list[CollectorEntry]:
    """Resolve which collectors are enabled, in table order.

    Raises:
        ValueError: If the config names a collector that does not exist.
    """
    known = {entry.name for entry in COLLECTORS}
    unknown = sorted(set(config.collectors) - known)
    if unknown:
        msg = (
            f"Unknown collector(s) in config: {', '.join(unknown)} "
            f"(available: {', '.join(sorted(known))})"
        )
        raise ValueError(msg)

    return [
        entry
        for entry in COLLECTORS
        if config.collectors.get(entry.name, entry.enabled_by_default)
    ]


def create_registry_with_collectors(
    config: ExporterConfig,
) -> prometheus_client.core.CollectorRegistry:
    """Create a Prometheus registry with the enabled host collectors.

    Creates a custom registry (not the global one) and registers one
    HostCollector per enabled entry of ``COLLECTORS``. Configuration is
    injected into the fetcher functions at build time.

    Args:
        config: Validated exporter configuration.

    Returns:
        Configured Prometheus registry.
    """
    registry = prometheus_client.core.CollectorRegistry()

    for entry in enabled_collectors(config):
        registry.register(entry.build(config))
        logger.info("Registered collector", collector=entry.name)

    return registry


def create_starlette_app(
    metrics_path: str,
    registry: prometheus_client.core.CollectorRegistry,
) -> starlette.applications.Starlette:
    """Create a Starlette application for serving Prometheus metrics.

    Args:
        metrics_path: URL path for metrics endpoint (e.g., "/metrics").
        registry: Prometheus collector registry.

    Returns:
        Configured Starlette application.
    """

    def metrics_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        """Generate and serve Prometheus metrics.

        Args:
            request: The incoming HTTP request.

        Returns:
            PlainTextResponse with metrics in Prometheus exposition format.
        """
        metrics_output = prometheus_client.generate_latest(registry)
        logger.info(
            "HTTP request",
            client_ip=request.client.host if request.client else "unknown",
            method=request.method,
            path=request.url.path,
        )
        return starlette.responses.PlainTextResponse(
            content=metrics_output,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    routes = [
        starlette.routing.Route(metrics_path, metrics_endpoint, methods=["GET"]),
    ]

    return starlette.applications.Starlette(routes=routes)


def create_exporter(config: ExporterConfig) -> starlette.applications.Starlette:
    """Construct the exporter ASGI app from validated config."""
    registry = create_registry_with_collectors(config)
    return create_starlette_app(
        metrics_path=config.metrics_path,
        registry=registry,
    )


def create_app(config_path: str | None = None) -> starlette.applications.Starlette:
    """Create the exporter ASGI app using a config path or environment default."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, "/config.json")
    config = load_config(resolved_path)
    configure_logging(config.log_level)
    return create_exporter(config)
