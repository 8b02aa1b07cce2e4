"""Tantivy schema and field vocabulary for indexed documents."""

from __future__ import annotations

from enum import Enum

import tantivy

FIELD_KIND = "type"
FIELD_KEY = "key"
FIELD_ID = "id"
FIELD_BRANCH = "branch"
FIELD_REPOSITORY = "repository"
FIELD_SUMMARY = "summary"
FIELD_CONTENT = "content"
FIELD_AUTHOR = "author"
FIELD_COMMITTER = "committer"
FIELD_DATE = "date"
FIELD_LABEL = "label"
FIELD_ATTACHMENT = "attachment"

# Fields searched by free-text queries
QUERY_FIELDS = (FIELD_SUMMARY, FIELD_CONTENT)

_KEY_SEPARATOR = "\x1f"


class DocumentKind(str, Enum):
    """The types of objects that can be indexed and queried."""

    COMMIT = "commit"
    BLOB = "blob"
    ISSUE = "issue"

    @classmethod
    def from_name(cls, name: str | None) -> DocumentKind | None:
        for kind in cls:
            if kind.value == name:
                return kind
        return None


def document_key(kind: DocumentKind, identifier: str, branch: str | None = None) -> str:
    """Unique delete key of a document within one repository index.

    Blobs exist once per (branch, path); commits and issues once per id.
    """
    if kind is DocumentKind.BLOB:
        return _KEY_SEPARATOR.join((kind.value, branch or "", identifier))
    return _KEY_SEPARATOR.join((kind.value, identifier))


def build_schema() -> tantivy.Schema:
    builder = tantivy.SchemaBuilder()
    # Raw tokenizer: exact-match fields usable as delete terms
    builder.add_text_field(FIELD_KIND, stored=True, tokenizer_name="raw")
    builder.add_text_field(FIELD_KEY, stored=False, tokenizer_name="raw")
    builder.add_text_field(FIELD_ID, stored=True, tokenizer_name="raw")
    builder.add_text_field(FIELD_BRANCH, stored=True, tokenizer_name="raw")
    builder.add_text_field(FIELD_REPOSITORY, stored=True, tokenizer_name="raw")
    builder.add_text_field(FIELD_AUTHOR, stored=True, tokenizer_name="raw")
    builder.add_text_field(FIELD_COMMITTER, stored=True, tokenizer_name="raw")
    builder.add_text_field(FIELD_DATE, stored=True, tokenizer_name="raw")
    # Analyzed fields
    builder.add_text_field(FIELD_SUMMARY, stored=True, tokenizer_name="default")
    builder.add_text_field(FIELD_CONTENT, stored=False, tokenizer_name="default")
    builder.add_text_field(FIELD_LABEL, stored=True, tokenizer_name="default")
    builder.add_text_field(FIELD_ATTACHMENT, stored=True, tokenizer_name="default")
    return builder.build()
