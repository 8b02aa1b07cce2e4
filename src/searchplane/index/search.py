"""Query federation across repository indexes."""

from __future__ import annotations

import re
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
import tantivy

from searchplane.core.errors import ErrorCode, SearchIndexError
from searchplane.index.cursor import BranchCursorStore
from searchplane.index.documents import parse_date
from searchplane.index.handles import IndexHandleCache
from searchplane.index.schema import (
    FIELD_AUTHOR,
    FIELD_BRANCH,
    FIELD_COMMITTER,
    FIELD_DATE,
    FIELD_ID,
    FIELD_KIND,
    FIELD_LABEL,
    FIELD_REPOSITORY,
    FIELD_SUMMARY,
    QUERY_FIELDS,
    DocumentKind,
)

if TYPE_CHECKING:
    from searchplane.repositories import SearchableRepository

logger = structlog.get_logger()

# Plain terms carrying ? or * wildcards, leading ones included
_WILDCARD_TERM = re.compile(r"^[\w*?]*[*?][\w*?]*$")


@dataclass(frozen=True)
class SearchHit:
    """One scored document. Equal hits share kind, repository, branch, id and score."""

    score: float
    kind: DocumentKind | None
    repository: str
    branch: str | None
    identifier: str
    date: datetime | None = field(default=None, compare=False)
    summary: str | None = field(default=None, compare=False)
    author: str | None = field(default=None, compare=False)
    committer: str | None = field(default=None, compare=False)
    labels: tuple[str, ...] = field(default=(), compare=False)

    @classmethod
    def from_document(cls, doc: tantivy.Document, score: float) -> SearchHit:
        return cls(
            score=score,
            kind=DocumentKind.from_name(doc.get_first(FIELD_KIND)),
            repository=doc.get_first(FIELD_REPOSITORY) or "",
            branch=doc.get_first(FIELD_BRANCH),
            identifier=doc.get_first(FIELD_ID) or "",
            date=parse_date(doc.get_first(FIELD_DATE)),
            summary=doc.get_first(FIELD_SUMMARY),
            author=doc.get_first(FIELD_AUTHOR),
            committer=doc.get_first(FIELD_COMMITTER),
            labels=tuple(doc.get_all(FIELD_LABEL)),
        )


def _wildcard_regex(term: str) -> str:
    parts = []
    for char in term.lower():
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "".join(parts)


def build_query(index: tantivy.Index, text: str) -> tantivy.Query:
    """OR of the text parsed against each query field.

    Wildcard terms (``*lucene``, ``ind?x``) become regex queries on the
    field; everything else goes through tantivy's query parser.
    """
    tokens = text.split()
    wildcard_terms = [t for t in tokens if _WILDCARD_TERM.match(t)]
    plain = " ".join(t for t in tokens if not _WILDCARD_TERM.match(t))

    clauses: list[tuple[tantivy.Occur, tantivy.Query]] = []
    for field_name in QUERY_FIELDS:
        if plain:
            try:
                parsed = index.parse_query(plain, [field_name])
            except ValueError as e:
                raise SearchIndexError.query_invalid(text, str(e)) from e
            clauses.append((tantivy.Occur.Should, parsed))
        for term in wildcard_terms:
            clauses.append(
                (
                    tantivy.Occur.Should,
                    tantivy.Query.regex_query(index.schema, field_name, _wildcard_regex(term)),
                )
            )
    return tantivy.Query.boolean_query(clauses)


class QueryFederator:
    """Runs one text query over one or many repository indexes."""

    def __init__(self, handles: IndexHandleCache, cursors: BranchCursorStore) -> None:
        self._handles = handles
        self._cursors = cursors

    def search(
        self,
        text: str | None,
        max_hits: int,
        repositories: Sequence[SearchableRepository],
    ) -> list[SearchHit]:
        """Hits ordered by descending score, deduplicated, at most max_hits long."""
        if not text or not text.strip() or not repositories or max_hits <= 0:
            return []
        start = time.monotonic()
        try:
            hits: list[SearchHit] = []
            for repository in repositories:
                hits.extend(self._search_one(text, max_hits, repository))
        except SearchIndexError as e:
            if e.code is ErrorCode.INDEX_QUERY_INVALID:
                logger.warning("search_query_invalid", query=text, error=e.message)
            else:
                logger.error("search_failed", query=text, error=e.message)
            return []

        if len(repositories) > 1:
            # Stable: equal scores keep repository order
            hits.sort(key=lambda h: h.score, reverse=True)
        results = list(dict.fromkeys(hits))[:max_hits]
        logger.debug(
            "search_completed",
            query=text,
            repositories=len(repositories),
            hits=len(results),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return results

    def _search_one(
        self, text: str, max_hits: int, repository: SearchableRepository
    ) -> list[SearchHit]:
        location = self._cursors.index_dir(repository)
        if not self._handles.exists(location):
            logger.debug("search_index_missing", repository=repository.name)
            return []
        index = self._handles.get_index(location)
        query = build_query(index, text)
        searcher = self._handles.get_searcher(location)
        try:
            top_docs = searcher.search(query, limit=max_hits).hits
        except ValueError as e:
            raise SearchIndexError.query_invalid(text, str(e)) from e
        return [
            SearchHit.from_document(searcher.doc(doc_address), score)
            for score, doc_address in top_docs
        ]
