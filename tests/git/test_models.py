"""Tests for git models and ref parsing helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from searchplane.git import RepoAccess
from searchplane.git.parsing import (
    extract_branch_name,
    extract_tag_name,
    first_line,
    make_branch_ref,
)

if TYPE_CHECKING:
    from conftest import RepoFactory


class TestParsing:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("main", "refs/heads/main"),
            ("feature/x", "refs/heads/feature/x"),
            ("refs/heads/main", "refs/heads/main"),
            ("refs/heads/gb-issues", "refs/heads/gb-issues"),
        ],
    )
    def test_make_branch_ref(self, name: str, expected: str) -> None:
        assert make_branch_ref(name) == expected

    def test_extract_names(self) -> None:
        assert extract_tag_name("refs/tags/v1.0") == "v1.0"
        assert extract_tag_name("refs/heads/main") is None
        assert extract_branch_name("refs/heads/main") == "main"
        assert extract_branch_name("refs/tags/v1.0") is None

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("subject\n\nbody", "subject"), ("", ""), ("single", "single")],
    )
    def test_first_line(self, text: str, expected: str) -> None:
        assert first_line(text) == expected


class TestCommitInfo:
    def test_given_commit_when_converted_then_signatures_split(
        self, make_repo: RepoFactory
    ) -> None:
        builder = make_repo("alpha.git")
        first = builder.commit(files={"a.txt": "a"}, message="Subject line\n\nLonger body")
        second = builder.commit(files={"a.txt": "b"}, message="Second", committer="Rita Reviewer")

        info = RepoAccess(builder.path).commit_info(second)

        assert info.sha == second
        assert info.parent_shas == (first,)
        assert info.author.name == "Ann Author"
        assert info.committer.name == "Rita Reviewer"
        assert info.commit_time.tzinfo is not None
        assert RepoAccess(builder.path).commit_info(first).short_message == "Subject line"
