"""SearchPlane error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index
- 4xxx: Repository
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Index (3xxx)
    INDEX_OPEN_FAILED = 3001
    INDEX_WRITE_FAILED = 3002
    INDEX_QUERY_INVALID = 3003

    # Repository (4xxx)
    REPOSITORY_NOT_FOUND = 4001
    REPOSITORY_READ_FAILED = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class SearchPlaneError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'INDEX_OPEN_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SearchPlaneError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class SearchIndexError(SearchPlaneError):
    """Full-text index engine errors."""

    @classmethod
    def open_failed(cls, location: str, reason: str) -> "SearchIndexError":
        return cls(
            code=ErrorCode.INDEX_OPEN_FAILED,
            message=f"Cannot open index at {location}: {reason}",
            retryable=True,
            details={"location": location, "reason": reason},
        )

    @classmethod
    def write_failed(cls, location: str, reason: str) -> "SearchIndexError":
        return cls(
            code=ErrorCode.INDEX_WRITE_FAILED,
            message=f"Cannot write index at {location}: {reason}",
            retryable=True,
            details={"location": location, "reason": reason},
        )

    @classmethod
    def query_invalid(cls, query: str, reason: str) -> "SearchIndexError":
        return cls(
            code=ErrorCode.INDEX_QUERY_INVALID,
            message=f"Invalid query {query!r}: {reason}",
            details={"query": query, "reason": reason},
        )


class RepositoryError(SearchPlaneError):
    """Repository resolution and read errors."""

    @classmethod
    def not_found(cls, name: str) -> "RepositoryError":
        return cls(
            code=ErrorCode.REPOSITORY_NOT_FOUND,
            message=f"Repository not found: {name}",
            details={"name": name},
        )

    @classmethod
    def read_failed(cls, name: str, reason: str) -> "RepositoryError":
        return cls(
            code=ErrorCode.REPOSITORY_READ_FAILED,
            message=f"Failed to read repository {name}: {reason}",
            retryable=True,
            details={"name": name, "reason": reason},
        )


class InternalError(SearchPlaneError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
