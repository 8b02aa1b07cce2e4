"""Issue records consumed by the indexer.

Issues live on the reserved issues branch of a repository. Reading and
writing them belongs to the issue tracker; the indexer only needs to
resolve an issue by id and list every issue of a repository.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class Attachment:
    """A file attached to an issue."""

    name: str
    size: int = 0


@dataclass(frozen=True, slots=True)
class IssueModel:
    """A discussion/issue record."""

    id: str
    reporter: str
    created: datetime
    summary: str
    body: str = ""
    labels: tuple[str, ...] = ()
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)

    def render(self) -> str:
        """Full-text rendering used as the searchable content."""
        parts = [self.summary, self.body]
        if self.labels:
            parts.append(" ".join(self.labels))
        return "\n\n".join(p for p in parts if p)


@runtime_checkable
class IssueTracker(Protocol):
    """Read access to a repository's issues."""

    def get_issue(self, issue_id: str) -> IssueModel | None: ...

    def list_issues(self) -> list[IssueModel]: ...


def issue_id_from_message(short_message: str) -> str:
    """Issue id referenced by an issues-branch commit ("# <id>" style messages)."""
    return short_message[2:].strip()
