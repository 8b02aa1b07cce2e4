"""Core module exports."""

from searchplane.core.errors import (
    ConfigError,
    ErrorCode,
    InternalError,
    RepositoryError,
    SearchIndexError,
    SearchPlaneError,
)
from searchplane.core.logging import (
    configure_logging,
    get_log_file_path,
    get_logger,
    get_pass_id,
    pass_context,
)

__all__ = [
    # Errors
    "ErrorCode",
    "SearchPlaneError",
    "ConfigError",
    "SearchIndexError",
    "RepositoryError",
    "InternalError",
    # Logging
    "configure_logging",
    "get_log_file_path",
    "get_logger",
    "get_pass_id",
    "pass_context",
]
