"""Config module exports."""

from searchplane.config.loader import load_config
from searchplane.config.models import (
    IndexConfig,
    LoggingConfig,
    LogOutputConfig,
    SchedulerConfig,
    SearchConfig,
    SearchPlaneConfig,
)

__all__ = [
    "load_config",
    "SearchPlaneConfig",
    "IndexConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "SchedulerConfig",
    "SearchConfig",
]
