"""Document builder: maps commits, files and issues to flat index documents.

Builders are pure. Callers read blob content and pass it in; content that
can't be used as text degrades to a metadata-only document.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePosixPath

import tantivy

from searchplane.config.constants import DATE_FORMAT, ISSUES_BRANCH
from searchplane.git.models import CommitInfo
from searchplane.index.schema import (
    FIELD_ATTACHMENT,
    FIELD_AUTHOR,
    FIELD_BRANCH,
    FIELD_COMMITTER,
    FIELD_CONTENT,
    FIELD_DATE,
    FIELD_ID,
    FIELD_KEY,
    FIELD_KIND,
    FIELD_LABEL,
    FIELD_REPOSITORY,
    FIELD_SUMMARY,
    DocumentKind,
    document_key,
)
from searchplane.issues import IssueModel


def format_date(value: datetime) -> str:
    """Render a date at minute resolution in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(DATE_FORMAT)


def parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        return None


def file_extension(path: str) -> str:
    """Lower-cased extension without the dot ('' when there is none)."""
    return PurePosixPath(path.lower()).suffix.lstrip(".")


@dataclass(frozen=True, slots=True)
class IndexDocument:
    """One unit stored in a repository index."""

    kind: DocumentKind
    repository: str
    identifier: str
    date: str
    branch: str | None = None
    author: str | None = None
    committer: str | None = None
    summary: str | None = None
    content: str | None = None
    labels: tuple[str, ...] = ()
    attachments: str | None = None

    @property
    def key(self) -> str:
        return document_key(self.kind, self.identifier, self.branch)

    def to_tantivy(self) -> tantivy.Document:
        doc = tantivy.Document()
        doc.add_text(FIELD_KIND, self.kind.value)
        doc.add_text(FIELD_KEY, self.key)
        doc.add_text(FIELD_ID, self.identifier)
        doc.add_text(FIELD_REPOSITORY, self.repository)
        doc.add_text(FIELD_DATE, self.date)
        optional = (
            (FIELD_BRANCH, self.branch),
            (FIELD_AUTHOR, self.author),
            (FIELD_COMMITTER, self.committer),
            (FIELD_SUMMARY, self.summary),
            (FIELD_CONTENT, self.content),
            (FIELD_ATTACHMENT, self.attachments),
        )
        for name, value in optional:
            if value is not None:
                doc.add_text(name, value)
        for label in self.labels:
            doc.add_text(FIELD_LABEL, label)
        return doc


@dataclass
class DocumentBuilder:
    """Builds index documents for one set of content rules."""

    excluded_extensions: frozenset[str] = field(default_factory=frozenset)
    max_content_bytes: int | None = None

    def indexes_content(self, path: str, size: int | None = None) -> bool:
        """Whether the content of path should be read and indexed at all."""
        ext = file_extension(path)
        if ext and ext in self.excluded_extensions:
            return False
        if size is not None and self.max_content_bytes is not None:
            return size <= self.max_content_bytes
        return True

    def commit(
        self,
        repository: str,
        commit: CommitInfo,
        branch: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> IndexDocument:
        return IndexDocument(
            kind=DocumentKind.COMMIT,
            repository=repository,
            identifier=commit.sha,
            date=format_date(commit.commit_time),
            branch=branch,
            author=commit.committer.name,
            summary=commit.short_message,
            content=commit.message,
            labels=tuple(tags or ()),
        )

    def blob(
        self,
        repository: str,
        branch: str,
        path: str,
        content: bytes | None,
        tip: CommitInfo,
    ) -> IndexDocument:
        text = self._decode(path, content)
        return IndexDocument(
            kind=DocumentKind.BLOB,
            repository=repository,
            identifier=path,
            date=format_date(tip.commit_time),
            branch=branch,
            author=tip.author.name,
            committer=tip.committer.name,
            content=text,
            labels=(branch,),
        )

    def issue(self, repository: str, issue: IssueModel) -> IndexDocument:
        return IndexDocument(
            kind=DocumentKind.ISSUE,
            repository=repository,
            identifier=issue.id,
            date=format_date(issue.created),
            branch=ISSUES_BRANCH,
            author=issue.reporter,
            summary=issue.summary,
            content=issue.render(),
            labels=tuple(issue.labels),
            attachments=_flatten(a.name.lower() for a in issue.attachments),
        )

    def _decode(self, path: str, content: bytes | None) -> str | None:
        if content is None or not self.indexes_content(path, len(content)):
            return None
        if b"\x00" in content:
            return None
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError:
            return None


def _flatten(values: Iterable[str]) -> str | None:
    joined = " ".join(values)
    return joined or None
