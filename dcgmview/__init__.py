"""Live terminal dashboard for DCGM accelerator telemetry."""

__version__ = "0.1.0"

from .history import MetricHistory
from .metrics import CATALOGS, MetricKind, MetricSpec
from .parser import LineParser, TelemetryRecord, parse_metric_line
from .runtime import (
    ProcessLineSource,
    ViewerConfigurationError,
    ViewerLaunchError,
    build_dmon_command,
)
from .stats import PercentileSnapshot, format_magnitude, percentile, summarise
from .telemetry import SampleLogError, SampleLogger, build_sample_logger

__all__ = [
    "CATALOGS",
    "LineParser",
    "MetricHistory",
    "MetricKind",
    "MetricSpec",
    "PercentileSnapshot",
    "ProcessLineSource",
    "SampleLogError",
    "SampleLogger",
    "TelemetryRecord",
    "ViewerConfigurationError",
    "ViewerLaunchError",
    "build_dmon_command",
    "build_sample_logger",
    "format_magnitude",
    "parse_metric_line",
    "percentile",
    "summarise",
    "__version__",
]
