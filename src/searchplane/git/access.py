"""Repository access layer - owns pygit2.Repository and exposes what the indexer reads."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pygit2
from pygit2.enums import ObjectType, RepositoryOpenFlag, SortMode

from searchplane.git.errors import (
    GitError,
    NotARepositoryError,
    ObjectReadError,
    RefNotFoundError,
)
from searchplane.git.models import BranchInfo, CommitInfo, PathChange, TagInfo
from searchplane.git.parsing import extract_tag_name

# Newest first, children before parents
_HISTORY_ORDER = SortMode.TOPOLOGICAL | SortMode.TIME


class RepoAccess:
    """Owns pygit2.Repository and provides normalized access to history and content."""

    def __init__(self, repo_path: Path | str) -> None:
        self._path = Path(repo_path)
        try:
            # Only the path itself, never an enclosing repository
            self._repo = pygit2.Repository(str(self._path), RepositoryOpenFlag.NO_SEARCH)
        except pygit2.GitError as e:
            raise NotARepositoryError(str(self._path)) from e

    @property
    def repo(self) -> pygit2.Repository:
        return self._repo

    @property
    def git_dir(self) -> Path:
        """The .git directory (or the repository itself when bare)."""
        return Path(self._repo.path)

    @property
    def is_bare(self) -> bool:
        return bool(self._repo.is_bare)

    def close(self) -> None:
        self._repo.free()

    # =========================================================================
    # Refs
    # =========================================================================

    def has_commits(self) -> bool:
        """True when at least one local branch points at a commit."""
        return any(True for _ in self._iter_local_branches())

    def local_branches(self) -> list[BranchInfo]:
        """Local branches sorted by fully qualified name."""
        return sorted(
            (BranchInfo.from_pygit2(b) for b in self._iter_local_branches()),
            key=lambda b: b.name,
        )

    def _iter_local_branches(self) -> Iterator[pygit2.Branch]:
        for name in self._repo.branches.local:
            branch = self._repo.branches.local[name]
            try:
                branch.peel(pygit2.Commit)
            except (pygit2.GitError, KeyError, ValueError):
                # Dangling or non-commit branch; nothing to index
                continue
            yield branch

    def iter_tags(self) -> Iterator[TagInfo]:
        """Iterate tags; annotated tags report the object they point to."""
        for refname in self._repo.references:
            name = extract_tag_name(refname)
            if name is None:
                continue
            ref = self._repo.references[refname].resolve()
            obj = self._repo.get(ref.target)
            if isinstance(obj, pygit2.Tag):
                yield TagInfo(name, str(obj.target), True)
            else:
                yield TagInfo(name, str(ref.target), False)

    def annotated_tags(self) -> dict[str, list[str]]:
        """Map target object sha -> names of the annotated tags pointing at it."""
        tags: dict[str, list[str]] = {}
        for tag in self.iter_tags():
            if not tag.is_annotated:
                continue
            tags.setdefault(tag.target_sha, []).append(tag.name)
        return tags

    # =========================================================================
    # Commits
    # =========================================================================

    def has_commit(self, sha: str) -> bool:
        try:
            return isinstance(self._repo.get(sha), pygit2.Commit)
        except (ValueError, pygit2.GitError):
            return False

    def commit(self, sha: str) -> pygit2.Commit:
        try:
            obj = self._repo.get(sha)
        except (ValueError, pygit2.GitError) as e:
            raise RefNotFoundError(sha) from e
        if not isinstance(obj, pygit2.Commit):
            raise RefNotFoundError(sha)
        return obj

    def commit_info(self, sha: str) -> CommitInfo:
        return CommitInfo.from_pygit2(self.commit(sha))

    def rev_log(self, tip: str, since: str | None = None) -> list[CommitInfo]:
        """Commits reachable from tip, newest first, excluding since and its ancestors."""
        walker = self._repo.walk(self.commit(tip).id, _HISTORY_ORDER)
        if since is not None:
            walker.hide(self.commit(since).id)
        return [CommitInfo.from_pygit2(c) for c in walker]

    def reaches(self, tip: str, sha: str) -> bool:
        """Whether sha is tip itself or one of its ancestors."""
        if tip == sha:
            return True
        return bool(self._repo.descendant_of(self.commit(tip).id, self.commit(sha).id))

    def changed_paths(self, sha: str) -> list[PathChange]:
        """Paths changed by a commit relative to its first parent (all paths for a root)."""
        commit = self.commit(sha)
        try:
            if commit.parents:
                diff = self._repo.diff(commit.parents[0].tree, commit.tree)
            else:
                diff = self._repo.diff(self.get_empty_tree(), commit.tree)
        except pygit2.GitError as e:
            raise ObjectReadError(sha, str(e)) from e
        return [PathChange.from_delta(delta) for delta in diff.deltas]

    def get_empty_tree(self) -> pygit2.Tree:
        """Get an empty tree for diffing a root commit."""
        builder = self._repo.TreeBuilder()
        return self._repo.get(builder.write())  # type: ignore[return-value]

    # =========================================================================
    # Trees and blobs
    # =========================================================================

    def iter_tree(self, sha: str) -> Iterator[tuple[str, pygit2.Oid]]:
        """Yield (path, blob id) for every blob in a commit's tree, recursively."""
        yield from self._walk_tree(self.commit(sha).tree, "")

    def _walk_tree(self, tree: pygit2.Tree, prefix: str) -> Iterator[tuple[str, pygit2.Oid]]:
        for entry in tree:
            path = f"{prefix}{entry.name}"
            if entry.type == ObjectType.TREE:
                subtree = self._repo.get(entry.id)
                if subtree is None:
                    raise ObjectReadError(path, "missing tree object")
                yield from self._walk_tree(subtree, f"{path}/")  # type: ignore[arg-type]
            elif entry.type == ObjectType.BLOB:
                yield path, entry.id
            # Submodule entries (commits) carry no content here

    def read_blob(self, blob_id: pygit2.Oid | str, path: str = "") -> bytes:
        try:
            blob = self._repo.get(blob_id)
        except (ValueError, pygit2.GitError) as e:
            raise ObjectReadError(path or str(blob_id), str(e)) from e
        if not isinstance(blob, pygit2.Blob):
            raise ObjectReadError(path or str(blob_id), "not a blob")
        return blob.data

    def read_path(self, sha: str, path: str) -> bytes:
        """Read a path's content in a commit's tree."""
        tree = self.commit(sha).tree
        try:
            entry = tree[path]
        except KeyError as e:
            raise ObjectReadError(path, f"not in tree of {sha[:7]}") from e
        return self.read_blob(entry.id, path)

    def blob_size(self, blob_id: pygit2.Oid) -> int:
        try:
            return self._repo.get(blob_id).size  # type: ignore[union-attr]
        except (AttributeError, ValueError, pygit2.GitError) as e:
            raise GitError(f"Cannot stat blob {blob_id}: {e}") from e
