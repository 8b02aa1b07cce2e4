"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides a builder for throwaway git repositories.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pygit2
import pytest
from pygit2.enums import ObjectType

# Insert local src directory at the beginning of sys.path
# This ensures that the local searchplane package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of searchplane modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("searchplane"):
        del sys.modules[module_name]

AUTHOR = pygit2.Signature("Ann Author", "ann@example.com", 1_600_000_000, 0)


class RepoBuilder:
    """Writes commits straight into the object database, one branch at a time.

    Files are given as ``{path: text}``; a ``None`` value deletes the path.
    Every commit is one minute later than the previous one so history
    order is deterministic.
    """

    def __init__(self, path: Path, *, bare: bool = True) -> None:
        self.path = path
        self.repo = pygit2.init_repository(str(path), bare=bare, initial_head="main")
        self._clock = 1_600_000_000

    def _signature(self, name: str, email: str) -> pygit2.Signature:
        return pygit2.Signature(name, email, self._clock, 0)

    def tip(self, branch: str) -> str | None:
        ref = self.repo.references.get(f"refs/heads/{branch}")
        return str(ref.target) if ref is not None else None

    def files(self, sha: str | None) -> dict[str, bytes]:
        if sha is None:
            return {}
        result: dict[str, bytes] = {}
        self._collect(self.repo.get(sha).tree, "", result)
        return result

    def _collect(self, tree: pygit2.Tree, prefix: str, out: dict[str, bytes]) -> None:
        for entry in tree:
            if entry.type == ObjectType.TREE:
                self._collect(self.repo.get(entry.id), f"{prefix}{entry.name}/", out)
            else:
                out[f"{prefix}{entry.name}"] = self.repo.get(entry.id).data

    def _write_tree(self, files: dict[str, bytes]) -> pygit2.Oid:
        blobs: dict[str, bytes] = {}
        subdirs: dict[str, dict[str, bytes]] = {}
        for path, data in files.items():
            head, _, rest = path.partition("/")
            if rest:
                subdirs.setdefault(head, {})[rest] = data
            else:
                blobs[head] = data
        builder = self.repo.TreeBuilder()
        for name, data in blobs.items():
            builder.insert(name, self.repo.create_blob(data), pygit2.GIT_FILEMODE_BLOB)
        for name, content in subdirs.items():
            builder.insert(name, self._write_tree(content), pygit2.GIT_FILEMODE_TREE)
        return builder.write()

    def commit(
        self,
        branch: str = "main",
        files: dict[str, str | bytes | None] | None = None,
        message: str = "change",
        *,
        parents: list[str] | None = None,
        committer: str = "Cam Committer",
    ) -> str:
        """Commit on top of the branch tip (or explicit parents) and move the branch."""
        if parents is None:
            tip = self.tip(branch)
            parents = [tip] if tip else []
        tree_files = self.files(parents[0] if parents else None)
        for path, content in (files or {}).items():
            if content is None:
                tree_files.pop(path, None)
            else:
                tree_files[path] = content.encode() if isinstance(content, str) else content
        self._clock += 60
        oid = self.repo.create_commit(
            None,
            self._signature(AUTHOR.name, AUTHOR.email),
            self._signature(committer, "cam@example.com"),
            message,
            self._write_tree(tree_files),
            [pygit2.Oid(hex=p) for p in parents],
        )
        self.set_branch(branch, str(oid))
        return str(oid)

    def set_branch(self, branch: str, sha: str) -> None:
        self.repo.references.create(f"refs/heads/{branch}", pygit2.Oid(hex=sha), force=True)

    def branch(self, name: str, from_branch: str = "main") -> str:
        sha = self.tip(from_branch)
        assert sha is not None
        self.set_branch(name, sha)
        return sha

    def delete_branch(self, name: str) -> None:
        self.repo.references.delete(f"refs/heads/{name}")

    def tag(self, name: str, sha: str, message: str = "release") -> None:
        """Create an annotated tag."""
        tagger = self._signature("Rel Eng", "rel@example.com")
        self.repo.create_tag(name, pygit2.Oid(hex=sha), ObjectType.COMMIT, tagger, message)


RepoFactory = Callable[..., RepoBuilder]


@pytest.fixture
def repos_root(tmp_path: Path) -> Path:
    root = tmp_path / "repos"
    root.mkdir()
    return root


@pytest.fixture
def make_repo(repos_root: Path) -> Iterator[RepoFactory]:
    """Factory creating repositories under repos_root by name."""
    created: list[RepoBuilder] = []

    def _make(name: str, *, bare: bool = True) -> RepoBuilder:
        builder = RepoBuilder(repos_root / name, bare=bare)
        created.append(builder)
        return builder

    yield _make
    for builder in created:
        builder.repo.free()
