"""Serializable data models for git objects consumed by the indexer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

import pygit2
from pygit2.enums import DeltaStatus

from searchplane.git.parsing import first_line

ChangeType = Literal["added", "deleted", "modified", "renamed", "copied", "unknown"]

_DELTA_STATUS_MAP: dict[int, ChangeType] = {
    DeltaStatus.ADDED: "added",
    DeltaStatus.DELETED: "deleted",
    DeltaStatus.MODIFIED: "modified",
    DeltaStatus.RENAMED: "renamed",
    DeltaStatus.COPIED: "copied",
    DeltaStatus.TYPECHANGE: "modified",
}


@dataclass(frozen=True, slots=True)
class Signature:
    """Git author/committer signature."""

    name: str
    email: str
    time: datetime

    @classmethod
    def from_pygit2(cls, sig: pygit2.Signature) -> Signature:
        return cls(sig.name, sig.email, datetime.fromtimestamp(sig.time, tz=UTC))


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """Git commit information."""

    sha: str
    message: str
    author: Signature
    committer: Signature
    commit_time: datetime
    parent_shas: tuple[str, ...]

    @property
    def short_message(self) -> str:
        return first_line(self.message).strip()

    @classmethod
    def from_pygit2(cls, commit: pygit2.Commit) -> CommitInfo:
        return cls(
            sha=str(commit.id),
            message=commit.message,
            author=Signature.from_pygit2(commit.author),
            committer=Signature.from_pygit2(commit.committer),
            commit_time=datetime.fromtimestamp(commit.commit_time, tz=UTC),
            parent_shas=tuple(str(p) for p in commit.parent_ids),
        )


@dataclass(frozen=True, slots=True)
class BranchInfo:
    """Local branch with its current tip."""

    name: str  # fully qualified, e.g. refs/heads/main
    short_name: str
    target_sha: str

    @classmethod
    def from_pygit2(cls, branch: pygit2.Branch) -> BranchInfo:
        return cls(
            name=branch.name,
            short_name=branch.shorthand,
            target_sha=str(branch.peel(pygit2.Commit).id),
        )


@dataclass(frozen=True, slots=True)
class TagInfo:
    """Git tag information."""

    name: str
    target_sha: str
    is_annotated: bool


@dataclass(frozen=True, slots=True)
class PathChange:
    """One path touched by a commit, relative to its first parent."""

    path: str
    change_type: ChangeType
    size: int | None = None

    @property
    def is_deletion(self) -> bool:
        return self.change_type == "deleted"

    @classmethod
    def from_delta(cls, delta: pygit2.DiffDelta) -> PathChange:
        change_type = _DELTA_STATUS_MAP.get(delta.status, "unknown")
        if change_type == "deleted":
            return cls(delta.old_file.path, change_type)
        return cls(delta.new_file.path, change_type, delta.new_file.size)
