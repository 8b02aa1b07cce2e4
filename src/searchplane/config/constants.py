"""Configuration constants.

Values here are format and protocol constraints, not user settings.
For configurable values, see models.py.
"""

INDEX_SCHEMA_VERSION = 1
"""Version of the on-disk index layout. A stored version that differs forces a rebuild."""

ISSUES_BRANCH = "refs/heads/gb-issues"
"""Reserved branch holding issue records instead of source code."""

DATE_FORMAT = "%Y%m%d%H%M"
"""Stored document dates: UTC, minute resolution."""

CONFIG_DIR_NAME = ".searchplane"
"""Per-root configuration folder, never treated as a repository."""
