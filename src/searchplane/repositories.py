"""Repository registry: names under a repositories root and live handles to them."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import structlog

from searchplane.config.constants import CONFIG_DIR_NAME
from searchplane.git import NotARepositoryError, RepoAccess
from searchplane.issues import IssueTracker

logger = structlog.get_logger()

IssueTrackerFactory = Callable[[RepoAccess], IssueTracker | None]


@dataclass
class SearchableRepository:
    """A named, open repository plus its optional issue tracker."""

    name: str
    access: RepoAccess
    issues: IssueTracker | None = None

    @property
    def git_dir(self) -> Path:
        return self.access.git_dir

    def close(self) -> None:
        self.access.close()


def _is_bare_repository(path: Path) -> bool:
    return (path / "HEAD").is_file() and (path / "objects").is_dir() and (path / "refs").is_dir()


class RepositoryRegistry:
    """Discovers repositories below a root folder.

    Names are root-relative paths with ``/`` separators, e.g.
    ``team/project.git`` for a bare repository or ``tools/cli`` for a
    working tree.
    """

    def __init__(
        self,
        root: Path | str,
        issue_tracker_factory: IssueTrackerFactory | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self._issue_tracker_factory = issue_tracker_factory

    def list_names(self) -> list[str]:
        names: list[str] = []
        if not self.root.is_dir():
            return names
        for dirpath, dirnames, _filenames in os.walk(self.root):
            current = Path(dirpath)
            if current != self.root and (
                (current / ".git").exists() or _is_bare_repository(current)
            ):
                names.append(current.relative_to(self.root).as_posix())
                dirnames.clear()
                continue
            # Hidden folders hold config and git internals, not repositories
            dirnames[:] = sorted(
                d for d in dirnames if not d.startswith(".") and d != CONFIG_DIR_NAME
            )
        return sorted(names)

    def resolve_path(self, name: str) -> Path | None:
        path = (self.root / name).resolve()
        if path == self.root or not path.is_relative_to(self.root):
            return None
        return path

    def open(self, name: str) -> SearchableRepository | None:
        """Open a repository by name; None when it doesn't exist."""
        path = self.resolve_path(name)
        if path is None or not path.exists():
            return None
        try:
            access = RepoAccess(path)
        except NotARepositoryError:
            logger.debug("repository_not_a_git_repo", name=name, path=str(path))
            return None
        issues = self._issue_tracker_factory(access) if self._issue_tracker_factory else None
        return SearchableRepository(name=name, access=access, issues=issues)
