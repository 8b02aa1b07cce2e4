"""Branch cursor store: per-repository record of what the index already holds.

The record lives in a small YAML file next to the repository's index
directory::

    schema_version: 1
    branches:
      <sha1 of refs/heads/main>:
        name: refs/heads/main
        last_commit: 3f2a...

A missing or unreadable record behaves like an empty one, which forces a
full rebuild on the next pass.
"""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

from searchplane.config.constants import INDEX_SCHEMA_VERSION
from searchplane.config.models import IndexConfig

if TYPE_CHECKING:
    from searchplane.repositories import SearchableRepository

logger = structlog.get_logger()


def branch_key(branch_name: str) -> str:
    """Config-safe key for a fully qualified branch name."""
    return hashlib.sha1(branch_name.encode("utf-8")).hexdigest()


class BranchCursor(BaseModel):
    """Last commit reflected in the index for one branch."""

    name: str
    last_commit: str


class CursorRecord(BaseModel):
    """Persisted synchronization state of one repository index."""

    schema_version: int = 0
    branches: dict[str, BranchCursor] = Field(default_factory=dict)

    def get(self, branch_name: str) -> BranchCursor | None:
        return self.branches.get(branch_key(branch_name))

    def advance(self, branch_name: str, commit_sha: str) -> None:
        self.branches[branch_key(branch_name)] = BranchCursor(
            name=branch_name, last_commit=commit_sha
        )

    def branch_names(self) -> set[str]:
        return {cursor.name for cursor in self.branches.values()}


class BranchCursorStore:
    """Loads, saves and deletes cursor records and the index they describe."""

    def __init__(self, config: IndexConfig | None = None) -> None:
        self._config = config or IndexConfig()

    def index_dir(self, repository: SearchableRepository) -> Path:
        return repository.git_dir / self._config.index_dir_name

    def cursor_path(self, repository: SearchableRepository) -> Path:
        return repository.git_dir / self._config.cursor_file_name

    def load(self, repository: SearchableRepository) -> CursorRecord:
        path = self.cursor_path(repository)
        if not path.exists():
            logger.debug("cursor_missing", repository=repository.name, path=str(path))
            return CursorRecord()
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return CursorRecord.model_validate(data)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.warning(
                "cursor_unreadable",
                repository=repository.name,
                path=str(path),
                error=str(e),
            )
            return CursorRecord()

    def save(self, repository: SearchableRepository, record: CursorRecord) -> None:
        path = self.cursor_path(repository)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", text=True
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(record.model_dump(), f, default_flow_style=False, sort_keys=True)
            os.replace(tmp_path, path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def should_reindex(self, repository: SearchableRepository) -> bool:
        """True unless the stored schema version matches the current one."""
        record = self.load(repository)
        if record.schema_version != INDEX_SCHEMA_VERSION:
            if record.schema_version:
                logger.info(
                    "cursor_schema_mismatch",
                    repository=repository.name,
                    stored=record.schema_version,
                    expected=INDEX_SCHEMA_VERSION,
                )
            return True
        return False

    def delete_all(self, repository: SearchableRepository) -> None:
        """Remove the cursor record, then the index directory.

        The record goes first: a crash in between leaves no record behind,
        so the next pass still rebuilds.
        """
        self.cursor_path(repository).unlink(missing_ok=True)
        index_dir = self.index_dir(repository)
        if index_dir.exists():
            shutil.rmtree(index_dir)
