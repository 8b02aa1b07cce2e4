"""Git access for the indexer."""

from searchplane.git.access import RepoAccess
from searchplane.git.errors import (
    GitError,
    NotARepositoryError,
    ObjectReadError,
    RefNotFoundError,
)
from searchplane.git.models import (
    BranchInfo,
    ChangeType,
    CommitInfo,
    PathChange,
    Signature,
    TagInfo,
)
from searchplane.git.parsing import extract_branch_name, make_branch_ref

__all__ = [
    "RepoAccess",
    # Models
    "BranchInfo",
    "ChangeType",
    "CommitInfo",
    "PathChange",
    "Signature",
    "TagInfo",
    # Helpers
    "extract_branch_name",
    "make_branch_ref",
    # Errors
    "GitError",
    "NotARepositoryError",
    "ObjectReadError",
    "RefNotFoundError",
]
