"""Shared fixtures for index tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import tantivy

from searchplane.config.models import IndexConfig
from searchplane.git import RepoAccess
from searchplane.index import (
    BranchCursorStore,
    IncrementalSynchronizer,
    IndexHandleCache,
    QueryFederator,
)
from searchplane.issues import IssueModel, IssueTracker
from searchplane.repositories import SearchableRepository

if TYPE_CHECKING:
    from conftest import RepoBuilder


class FakeIssueTracker:
    """In-memory issue tracker keyed by issue id."""

    def __init__(self, *issues: IssueModel) -> None:
        self.issues = {issue.id: issue for issue in issues}

    def get_issue(self, issue_id: str) -> IssueModel | None:
        return self.issues.get(issue_id)

    def list_issues(self) -> list[IssueModel]:
        return list(self.issues.values())


OpenRepository = Callable[..., SearchableRepository]


@pytest.fixture
def issue_tracker() -> FakeIssueTracker:
    return FakeIssueTracker()


@pytest.fixture
def index_config() -> IndexConfig:
    return IndexConfig(writer_heap_size=15_000_000)


@pytest.fixture
def cursors(index_config: IndexConfig) -> BranchCursorStore:
    return BranchCursorStore(index_config)


@pytest.fixture
def handles(index_config: IndexConfig) -> Iterator[IndexHandleCache]:
    cache = IndexHandleCache(index_config)
    yield cache
    cache.close_all()


@pytest.fixture
def synchronizer(
    handles: IndexHandleCache, cursors: BranchCursorStore, index_config: IndexConfig
) -> IncrementalSynchronizer:
    return IncrementalSynchronizer(handles, cursors, index_config)


@pytest.fixture
def federator(handles: IndexHandleCache, cursors: BranchCursorStore) -> QueryFederator:
    return QueryFederator(handles, cursors)


@pytest.fixture
def open_repository() -> Iterator[OpenRepository]:
    """Open a builder's repository as a SearchableRepository."""
    opened: list[SearchableRepository] = []

    def _open(
        builder: RepoBuilder, name: str | None = None, issues: IssueTracker | None = None
    ) -> SearchableRepository:
        repository = SearchableRepository(
            name=name or builder.path.name, access=RepoAccess(builder.path), issues=issues
        )
        opened.append(repository)
        return repository

    yield _open
    for repository in opened:
        repository.close()


FindDocuments = Callable[[Path, str, str], list[tantivy.Document]]


@pytest.fixture
def find_documents(handles: IndexHandleCache) -> FindDocuments:
    """Stored documents of an index whose raw field equals a value."""
    return handles.find
