"""Incremental synchronizer: keeps a repository index in step with its history.

Two modes per repository:

- Full rebuild (reindex): drop index and cursor, index every branch tip's
  files, every commit reachable from any branch (once), and every issue,
  then commit and record the cursor.
- Incremental update (update_index): for each branch replay, oldest first,
  the commits newer than the branch cursor; remove documents of branches
  that no longer exist.

All write sequences for one repository run under the location's write
lock in the handle cache, so a background pass and a direct call after a
push are serialized.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from searchplane.config.constants import INDEX_SCHEMA_VERSION, ISSUES_BRANCH
from searchplane.config.models import IndexConfig
from searchplane.git import BranchInfo, CommitInfo, RepoAccess, make_branch_ref
from searchplane.index.cursor import BranchCursorStore, CursorRecord, branch_key
from searchplane.index.documents import DocumentBuilder
from searchplane.index.handles import IndexHandleCache, IndexWriterSession
from searchplane.index.schema import (
    FIELD_BRANCH,
    FIELD_ID,
    FIELD_KEY,
    FIELD_KIND,
    DocumentKind,
    document_key,
)
from searchplane.issues import IssueModel, issue_id_from_message

if TYPE_CHECKING:
    from searchplane.repositories import SearchableRepository

logger = structlog.get_logger()


@dataclass
class IndexResult:
    """Outcome of one rebuild or update pass."""

    success: bool = False
    commit_count: int = 0
    duration_seconds: float = 0.0
    rebuilt: bool = False
    error: str | None = None


class IncrementalSynchronizer:
    """Decides between rebuild and update and drives documents into the index."""

    def __init__(
        self,
        handles: IndexHandleCache,
        cursors: BranchCursorStore,
        config: IndexConfig | None = None,
    ) -> None:
        config = config or IndexConfig()
        self._handles = handles
        self._cursors = cursors
        self._excluded_branches = frozenset(config.excluded_branches)
        self._builder = DocumentBuilder(
            excluded_extensions=frozenset(config.excluded_extensions),
            max_content_bytes=config.max_file_size_mb * 1024 * 1024,
        )

    @property
    def builder(self) -> DocumentBuilder:
        return self._builder

    def should_reindex(self, repository: SearchableRepository) -> bool:
        return self._cursors.should_reindex(repository)

    # =========================================================================
    # Entry point
    # =========================================================================

    def index_repository(self, repository: SearchableRepository) -> IndexResult:
        """Rebuild or update one repository's index as needed. Never raises."""
        try:
            if not repository.access.has_commits():
                logger.info("repository_empty_skipped", repository=repository.name)
                return IndexResult(success=True)
            with self._handles.lock(self._cursors.index_dir(repository)):
                if self.should_reindex(repository):
                    result = self.reindex(repository)
                    event = "repository_index_built"
                else:
                    result = self.update_index(repository)
                    event = "repository_index_updated"
        except Exception as e:
            logger.exception("repository_index_failed", repository=repository.name)
            return IndexResult(error=str(e))

        if result.success:
            if result.commit_count > 0:
                logger.info(
                    event,
                    repository=repository.name,
                    commits=result.commit_count,
                    duration_ms=int(result.duration_seconds * 1000),
                )
        else:
            logger.error(
                "repository_index_incomplete",
                repository=repository.name,
                mode="rebuild" if result.rebuilt else "update",
            )
        return result

    # =========================================================================
    # Full rebuild
    # =========================================================================

    def reindex(self, repository: SearchableRepository) -> IndexResult:
        """Destroy and rebuild the repository index from scratch."""
        result = IndexResult(rebuilt=True)
        location = self._cursors.index_dir(repository)
        access = repository.access
        start = time.monotonic()
        try:
            with self._handles.lock(location):
                self._handles.close(location)
                self._cursors.delete_all(repository)

                record = CursorRecord(schema_version=INDEX_SCHEMA_VERSION)
                tags = access.annotated_tags()
                indexed_commits: set[str] = set()
                branches = access.local_branches()

                with self._handles.writing(location, force_create=True) as session:
                    for branch in branches:
                        if branch.name in self._excluded_branches or branch.name == ISSUES_BRANCH:
                            continue
                        tip = access.commit_info(branch.target_sha)
                        record.advance(branch.name, tip.sha)
                        self._index_tree(session, repository, branch, tip)

                        # Newest first from the tip; shared history is indexed once
                        for commit in access.rev_log(tip.sha):
                            if commit.sha in indexed_commits:
                                continue
                            indexed_commits.add(commit.sha)
                            session.add(
                                self._builder.commit(
                                    repository.name, commit, branch.name, tags.get(commit.sha)
                                )
                            )
                            result.commit_count += 1

                    issues_branch = _find_branch(branches, ISSUES_BRANCH)
                    if repository.issues is not None and issues_branch is not None:
                        for issue in repository.issues.list_issues():
                            session.add(self._builder.issue(repository.name, issue))
                        record.advance(ISSUES_BRANCH, issues_branch.target_sha)

                    session.commit()

                # Only a committed index gets a cursor
                self._cursors.save(repository, record)
            result.success = True
        except Exception as e:
            result.error = str(e)
            logger.exception("repository_index_failed", repository=repository.name, mode="rebuild")
        result.duration_seconds = time.monotonic() - start
        return result

    def _index_tree(
        self,
        session: IndexWriterSession,
        repository: SearchableRepository,
        branch: BranchInfo,
        tip: CommitInfo,
    ) -> None:
        access = repository.access
        for path, blob_id in access.iter_tree(tip.sha):
            content = None
            if self._builder.indexes_content(path, access.blob_size(blob_id)):
                content = access.read_blob(blob_id, path)
            session.add(self._builder.blob(repository.name, branch.name, path, content, tip))

    # =========================================================================
    # Incremental update
    # =========================================================================

    def update_index(self, repository: SearchableRepository) -> IndexResult:
        """Apply commits made since the last recorded cursor of every branch."""
        result = IndexResult()
        location = self._cursors.index_dir(repository)
        access = repository.access
        start = time.monotonic()
        try:
            with self._handles.lock(location):
                record = self._cursors.load(repository)
                tags = access.annotated_tags()

                # Every known branch is deleted until the walk proves otherwise
                deleted_branches = record.branch_names()
                branches = access.local_branches()

                for branch in branches:
                    deleted_branches.discard(branch.name)
                    if not self._tracks_branch(repository, branch.name):
                        continue

                    commits = self._new_commits(repository, record, branch)
                    for commit in reversed(commits):
                        self._apply_commit(repository, branch.name, commit, tags)
                        result.commit_count += 1

                    record.schema_version = INDEX_SCHEMA_VERSION
                    record.advance(branch.name, branch.target_sha)
                    self._cursors.save(repository, record)

                if deleted_branches:
                    live = [
                        b
                        for b in branches
                        if b.name != ISSUES_BRANCH and b.name not in self._excluded_branches
                    ]
                    for name in sorted(deleted_branches):
                        self._remove_branch(repository, name, live, tags)
                        record.branches.pop(branch_key(name), None)
                        logger.info(
                            "repository_branch_removed", repository=repository.name, branch=name
                        )
                    self._cursors.save(repository, record)
            result.success = True
        except Exception as e:
            result.error = str(e)
            logger.exception("repository_index_failed", repository=repository.name, mode="update")
        result.duration_seconds = time.monotonic() - start
        return result

    def _remove_branch(
        self,
        repository: SearchableRepository,
        name: str,
        live: Sequence[BranchInfo],
        tags: Mapping[str, Sequence[str]],
    ) -> None:
        """Delete a branch's documents, refiling commits a live branch still reaches."""
        access = repository.access
        location = self._cursors.index_dir(repository)
        filed = [
            doc.get_first(FIELD_ID)
            for doc in self._handles.find(location, FIELD_BRANCH, name)
            if doc.get_first(FIELD_KIND) == DocumentKind.COMMIT.value
        ]
        with self._handles.writing(location) as session:
            session.delete_branch(name)
            for sha in filed:
                owner = _first_reaching(access, live, sha)
                if owner is not None:
                    commit = access.commit_info(sha)
                    session.add(
                        self._builder.commit(repository.name, commit, owner, tags.get(sha))
                    )
            session.commit()

    def _tracks_branch(self, repository: SearchableRepository, branch: str) -> bool:
        if branch == ISSUES_BRANCH:
            return repository.issues is not None
        return branch not in self._excluded_branches

    def _new_commits(
        self,
        repository: SearchableRepository,
        record: CursorRecord,
        branch: BranchInfo,
    ) -> list[CommitInfo]:
        """Commits after the branch cursor, newest first."""
        access = repository.access
        cursor = record.get(branch.name)
        if cursor is None:
            return access.rev_log(branch.target_sha)
        if cursor.last_commit == branch.target_sha:
            return []
        if not access.has_commit(cursor.last_commit):
            logger.warning(
                "cursor_commit_missing",
                repository=repository.name,
                branch=branch.name,
                commit=cursor.last_commit,
            )
            return access.rev_log(branch.target_sha)
        return access.rev_log(branch.target_sha, since=cursor.last_commit)

    # =========================================================================
    # Single commit / issue
    # =========================================================================

    def index_commit(
        self,
        repository: SearchableRepository,
        branch: str,
        commit: CommitInfo | str,
    ) -> bool:
        """Apply one commit of a branch to the index. The cursor is not moved."""
        branch = make_branch_ref(branch)
        if not self._tracks_branch(repository, branch):
            return False
        try:
            if isinstance(commit, str):
                commit = repository.access.commit_info(commit)
            tags = repository.access.annotated_tags()
            with self._handles.lock(self._cursors.index_dir(repository)):
                self._apply_commit(repository, branch, commit, tags)
            return True
        except Exception:
            logger.exception(
                "repository_index_failed",
                repository=repository.name,
                mode="commit",
                branch=branch,
            )
            return False

    def index_issue(self, repository: SearchableRepository, issue: IssueModel) -> bool:
        """Replace one issue document."""
        try:
            with self._handles.writing(self._cursors.index_dir(repository)) as session:
                session.replace(self._builder.issue(repository.name, issue))
                session.commit()
            return True
        except Exception:
            logger.exception(
                "repository_index_failed", repository=repository.name, mode="issue", issue=issue.id
            )
            return False

    def _apply_commit(
        self,
        repository: SearchableRepository,
        branch: str,
        commit: CommitInfo,
        tags: Mapping[str, Sequence[str]],
    ) -> None:
        if branch == ISSUES_BRANCH:
            self._apply_issue_commit(repository, commit)
            return

        access = repository.access
        location = self._cursors.index_dir(repository)
        changes = access.changed_paths(commit.sha)
        owner = self._commit_owner(location, commit.sha)
        with self._handles.writing(location) as session:
            for change in changes:
                session.delete_by_key(DocumentKind.BLOB, change.path, branch)
                if change.is_deletion:
                    continue
                content = None
                if self._builder.indexes_content(change.path, change.size):
                    content = access.read_path(commit.sha, change.path)
                session.add(
                    self._builder.blob(repository.name, branch, change.path, content, commit)
                )
            session.commit()

            # Shared history stays filed under the branch that indexed it first
            if owner is None or owner == branch:
                session.replace(
                    self._builder.commit(repository.name, commit, branch, tags.get(commit.sha))
                )
                session.commit()
        logger.debug(
            "repository_commit_indexed",
            repository=repository.name,
            branch=branch,
            commit=commit.sha,
            paths=len(changes),
        )

    def _commit_owner(self, location: Path, sha: str) -> str | None:
        key = document_key(DocumentKind.COMMIT, sha)
        for doc in self._handles.find(location, FIELD_KEY, key):
            return doc.get_first(FIELD_BRANCH)
        return None

    def _apply_issue_commit(self, repository: SearchableRepository, commit: CommitInfo) -> None:
        if repository.issues is None:
            return
        issue_id = issue_id_from_message(commit.short_message)
        if not issue_id:
            return
        issue = repository.issues.get_issue(issue_id)
        with self._handles.writing(self._cursors.index_dir(repository)) as session:
            if issue is None:
                # Deleted issue
                session.delete_by_key(DocumentKind.ISSUE, issue_id)
            else:
                session.replace(self._builder.issue(repository.name, issue))
            session.commit()


def _find_branch(branches: Sequence[BranchInfo], name: str) -> BranchInfo | None:
    for branch in branches:
        if branch.name == name:
            return branch
    return None


def _first_reaching(access: RepoAccess, branches: Sequence[BranchInfo], sha: str) -> str | None:
    if not access.has_commit(sha):
        return None
    for branch in branches:
        if access.reaches(branch.target_sha, sha):
            return branch.name
    return None
