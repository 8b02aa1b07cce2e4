"""Tests for query building and result handling."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from searchplane.core.errors import ErrorCode, SearchIndexError
from searchplane.index.cursor import BranchCursorStore
from searchplane.index.documents import IndexDocument
from searchplane.index.handles import IndexHandleCache
from searchplane.index.schema import DocumentKind
from searchplane.index.search import QueryFederator, SearchHit, _wildcard_regex, build_query
from searchplane.repositories import SearchableRepository

if TYPE_CHECKING:
    from conftest import RepoFactory
    from index.conftest import OpenRepository


def _doc(kind: DocumentKind, identifier: str, summary: str | None, content: str) -> IndexDocument:
    return IndexDocument(
        kind=kind,
        repository="alpha",
        identifier=identifier,
        date="202401010000",
        branch="refs/heads/main",
        summary=summary,
        content=content,
    )


@pytest.fixture
def repository(
    make_repo: RepoFactory,
    open_repository: OpenRepository,
    handles: IndexHandleCache,
    cursors: BranchCursorStore,
) -> SearchableRepository:
    """A repository whose index holds a few hand-made documents."""
    builder = make_repo("alpha.git")
    builder.commit(files={"a.txt": "a"})
    repository = open_repository(builder, "alpha")
    with handles.writing(cursors.index_dir(repository)) as session:
        session.add(_doc(DocumentKind.COMMIT, "c1", "Add lucene indexing", "Add lucene indexing"))
        session.add(_doc(DocumentKind.BLOB, "readme.md", None, "hello indexer world"))
        session.add(_doc(DocumentKind.ISSUE, "7", "Searching is slow", "profile the reader"))
        session.commit()
    return repository


class TestWildcardRegex:
    @pytest.mark.parametrize(
        ("term", "expected"),
        [("*cene", ".*cene"), ("ind?x", "ind.x"), ("Luc*", "luc.*"), ("a.b*", r"a\.b.*")],
    )
    def test_translation(self, term: str, expected: str) -> None:
        assert _wildcard_regex(term) == expected


class TestBuildQuery:
    def test_given_unknown_field_when_built_then_query_invalid(
        self, handles: IndexHandleCache, tmp_path: Path
    ) -> None:
        handles.get_writer(tmp_path / "idx")
        index = handles.get_index(tmp_path / "idx")

        with pytest.raises(SearchIndexError) as exc_info:
            build_query(index, "nosuchfield:value")

        assert exc_info.value.code is ErrorCode.INDEX_QUERY_INVALID

    def test_given_plain_and_wildcard_terms_when_built_then_query_returned(
        self, handles: IndexHandleCache, tmp_path: Path
    ) -> None:
        handles.get_writer(tmp_path / "idx")
        index = handles.get_index(tmp_path / "idx")

        assert build_query(index, "hello *cene") is not None


class TestSearchHit:
    def test_equality_ignores_display_fields(self) -> None:
        a = SearchHit(1.5, DocumentKind.BLOB, "alpha", "refs/heads/main", "a.txt", summary="x")
        b = SearchHit(1.5, DocumentKind.BLOB, "alpha", "refs/heads/main", "a.txt", summary="y")

        assert a == b
        assert list(dict.fromkeys([a, b])) == [a]

    def test_different_score_is_different_hit(self) -> None:
        a = SearchHit(1.5, DocumentKind.BLOB, "alpha", None, "a.txt")
        b = SearchHit(2.0, DocumentKind.BLOB, "alpha", None, "a.txt")

        assert a != b


class TestQueryFederator:
    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_given_empty_text_when_search_then_no_results(
        self, federator: QueryFederator, repository: SearchableRepository, text: str | None
    ) -> None:
        assert federator.search(text, 10, [repository]) == []

    def test_given_no_repositories_when_search_then_no_results(
        self, federator: QueryFederator
    ) -> None:
        assert federator.search("lucene", 10, []) == []

    def test_given_summary_match_when_search_then_hit_fields_populated(
        self, federator: QueryFederator, repository: SearchableRepository
    ) -> None:
        (hit,) = federator.search("lucene", 10, [repository])

        assert hit.kind is DocumentKind.COMMIT
        assert hit.identifier == "c1"
        assert hit.repository == "alpha"
        assert hit.branch == "refs/heads/main"
        assert hit.summary == "Add lucene indexing"
        assert hit.date is not None
        assert hit.score > 0

    def test_given_content_only_match_when_search_then_found(
        self, federator: QueryFederator, repository: SearchableRepository
    ) -> None:
        hits = federator.search("reader", 10, [repository])

        assert [h.identifier for h in hits] == ["7"]

    def test_given_leading_wildcard_when_search_then_matches(
        self, federator: QueryFederator, repository: SearchableRepository
    ) -> None:
        hits = federator.search("*dexer", 10, [repository])

        assert [h.identifier for h in hits] == ["readme.md"]

    def test_given_max_hits_when_search_then_truncated_by_score(
        self, federator: QueryFederator, repository: SearchableRepository
    ) -> None:
        hits = federator.search("lucene OR hello OR reader", 2, [repository])

        assert len(hits) == 2
        assert hits[0].score >= hits[1].score

    def test_given_invalid_query_when_search_then_empty(
        self, federator: QueryFederator, repository: SearchableRepository
    ) -> None:
        assert federator.search("nosuchfield:value", 10, [repository]) == []

    def test_given_zero_max_hits_when_search_then_empty(
        self, federator: QueryFederator, repository: SearchableRepository
    ) -> None:
        assert federator.search("lucene", 0, [repository]) == []

    def test_given_unindexed_repository_when_search_then_no_index_created(
        self,
        make_repo: RepoFactory,
        open_repository: OpenRepository,
        federator: QueryFederator,
        cursors: BranchCursorStore,
        repository: SearchableRepository,
    ) -> None:
        builder = make_repo("beta.git")
        builder.commit(files={"b.txt": "lucene"})
        unindexed = open_repository(builder, "beta")

        hits = federator.search("lucene", 10, [unindexed, repository])

        assert [h.repository for h in hits] == ["alpha"]
        assert not cursors.index_dir(unindexed).exists()
