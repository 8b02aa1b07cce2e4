"""Repository search index: documents, cursors, handles, synchronization, queries."""

from searchplane.index.cursor import BranchCursor, BranchCursorStore, CursorRecord, branch_key
from searchplane.index.documents import DocumentBuilder, IndexDocument, format_date, parse_date
from searchplane.index.handles import IndexHandleCache, IndexWriterSession
from searchplane.index.schema import DocumentKind, build_schema, document_key
from searchplane.index.search import QueryFederator, SearchHit, build_query
from searchplane.index.sync import IncrementalSynchronizer, IndexResult

__all__ = [
    # Documents
    "DocumentKind",
    "DocumentBuilder",
    "IndexDocument",
    "build_schema",
    "document_key",
    "format_date",
    "parse_date",
    # Cursors
    "BranchCursor",
    "BranchCursorStore",
    "CursorRecord",
    "branch_key",
    # Handles
    "IndexHandleCache",
    "IndexWriterSession",
    # Sync
    "IncrementalSynchronizer",
    "IndexResult",
    # Search
    "QueryFederator",
    "SearchHit",
    "build_query",
]
