"""Index handle cache: one writer and one searcher per repository index.

Tantivy allows a single writer per index directory. The cache keys every
handle by the resolved index location and serializes write sequences with
a re-entrant lock per location, so a scheduled pass and a direct call on
the same repository take turns instead of fighting over the writer lock.

Searchers are point-in-time snapshots. A searcher is dropped after every
commit; the next get_searcher() reloads the index and sees the new data.
"""

from __future__ import annotations

import shutil
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

import structlog
import tantivy

from searchplane.config.models import IndexConfig
from searchplane.core.errors import SearchIndexError
from searchplane.index.documents import IndexDocument
from searchplane.index.schema import (
    FIELD_BRANCH,
    FIELD_KEY,
    DocumentKind,
    build_schema,
    document_key,
)

logger = structlog.get_logger()


@dataclass
class _Handle:
    location: Path
    write_lock: threading.RLock = field(default_factory=threading.RLock)
    state_lock: threading.Lock = field(default_factory=threading.Lock)
    index: tantivy.Index | None = None
    writer: tantivy.IndexWriter | None = None
    searcher: tantivy.Searcher | None = None


class IndexWriterSession:
    """Write access to one repository index for the duration of a lock.

    Replacing a document is an explicit delete_by_key() followed by add();
    neither is visible to readers until commit().
    """

    def __init__(self, cache: IndexHandleCache, location: Path, writer: tantivy.IndexWriter):
        self._cache = cache
        self._location = location
        self._writer = writer
        self.pending = 0

    @property
    def location(self) -> Path:
        return self._location

    def delete_by_key(
        self, kind: DocumentKind, identifier: str, branch: str | None = None
    ) -> None:
        self._writer.delete_documents(FIELD_KEY, document_key(kind, identifier, branch))
        self.pending += 1

    def delete_branch(self, branch: str) -> None:
        """Delete every document tagged with a branch."""
        self._writer.delete_documents(FIELD_BRANCH, branch)
        self.pending += 1

    def add(self, document: IndexDocument) -> None:
        self._writer.add_document(document.to_tantivy())
        self.pending += 1

    def replace(self, document: IndexDocument) -> None:
        self.delete_by_key(document.kind, document.identifier, document.branch)
        self.add(document)

    def commit(self) -> None:
        """Commit pending changes and drop the cached searcher."""
        try:
            self._writer.commit()
        except (OSError, ValueError) as e:
            raise SearchIndexError.write_failed(str(self._location), str(e)) from e
        self.pending = 0
        self._cache.invalidate_searcher(self._location)


class IndexHandleCache:
    """Caches open tantivy indexes, writers and searchers by index location."""

    def __init__(self, config: IndexConfig | None = None) -> None:
        self._config = config or IndexConfig()
        self._schema = build_schema()
        self._handles: dict[Path, _Handle] = {}
        self._lock = threading.Lock()

    def _handle(self, location: Path | str) -> _Handle:
        key = Path(location).resolve()
        with self._lock:
            handle = self._handles.get(key)
            if handle is None:
                handle = _Handle(location=key)
                self._handles[key] = handle
            return handle

    @staticmethod
    def exists(location: Path | str) -> bool:
        path = Path(location)
        return path.is_dir() and bool(tantivy.Index.exists(str(path)))

    def _open_index(self, handle: _Handle, *, create: bool) -> tantivy.Index:
        try:
            handle.location.mkdir(parents=True, exist_ok=True)
            return tantivy.Index(self._schema, path=str(handle.location), reuse=not create)
        except (OSError, ValueError) as e:
            raise SearchIndexError.open_failed(str(handle.location), str(e)) from e

    def _existing_index(self, handle: _Handle) -> tantivy.Index:
        """Open index for readers, which never create one."""
        if handle.index is None:
            if not self.exists(handle.location):
                raise SearchIndexError.open_failed(str(handle.location), "no index")
            handle.index = self._open_index(handle, create=False)
        return handle.index

    # =========================================================================
    # Writers
    # =========================================================================

    def get_writer(self, location: Path | str, force_create: bool = False) -> tantivy.IndexWriter:
        """Cached writer for location; force_create or a missing index starts empty."""
        handle = self._handle(location)
        with handle.write_lock, handle.state_lock:
            if force_create or not self.exists(handle.location):
                # A writer over a recreated index must not be reused
                self._close_writer(handle, commit=False)
                handle.searcher = None
                handle.index = None
                if handle.location.exists():
                    shutil.rmtree(handle.location)
                handle.index = self._open_index(handle, create=True)
                logger.debug("index_created", location=str(handle.location))
            if handle.writer is None:
                index = self._existing_index(handle)
                try:
                    handle.writer = index.writer(
                        heap_size=self._config.writer_heap_size,
                        num_threads=self._config.writer_threads,
                    )
                except ValueError as e:
                    raise SearchIndexError.open_failed(str(handle.location), str(e)) from e
            return handle.writer

    @contextmanager
    def writing(
        self, location: Path | str, force_create: bool = False
    ) -> Iterator[IndexWriterSession]:
        """Hold the location's write lock; uncommitted changes roll back on error."""
        handle = self._handle(location)
        with handle.write_lock:
            writer = self.get_writer(handle.location, force_create=force_create)
            session = IndexWriterSession(self, handle.location, writer)
            try:
                yield session
            except BaseException:
                if session.pending:
                    try:
                        writer.rollback()
                    except ValueError as e:
                        logger.warning(
                            "index_rollback_failed", location=str(handle.location), error=str(e)
                        )
                raise

    def lock(self, location: Path | str) -> threading.RLock:
        """The re-entrant write lock of a location."""
        return self._handle(location).write_lock

    def _close_writer(self, handle: _Handle, *, commit: bool) -> None:
        writer, handle.writer = handle.writer, None
        if writer is None:
            return
        if commit:
            writer.commit()
        # Consumes the writer and releases the directory lock
        writer.wait_merging_threads()

    # =========================================================================
    # Searchers
    # =========================================================================

    def get_searcher(self, location: Path | str) -> tantivy.Searcher:
        """Cached searcher, or a fresh one over the latest committed data."""
        handle = self._handle(location)
        with handle.state_lock:
            if handle.searcher is None:
                index = self._existing_index(handle)
                try:
                    index.reload()
                    handle.searcher = index.searcher()
                except ValueError as e:
                    raise SearchIndexError.open_failed(str(handle.location), str(e)) from e
            return handle.searcher

    def get_index(self, location: Path | str) -> tantivy.Index:
        handle = self._handle(location)
        with handle.state_lock:
            return self._existing_index(handle)

    def find(self, location: Path | str, field_name: str, value: str) -> list[tantivy.Document]:
        """Committed documents whose raw field equals value; none without an index."""
        if not self.exists(location):
            return []
        searcher = self.get_searcher(location)
        if searcher.num_docs == 0:
            return []
        query = tantivy.Query.term_query(self._schema, field_name, value)
        hits = searcher.search(query, limit=searcher.num_docs).hits
        return [searcher.doc(address) for _score, address in hits]

    def invalidate_searcher(self, location: Path | str) -> None:
        handle = self._handle(location)
        with handle.state_lock:
            handle.searcher = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self, location: Path | str) -> None:
        """Commit and close the writer and drop the searcher of one location."""
        handle = self._handle(location)
        with handle.write_lock, handle.state_lock:
            try:
                self._close_writer(handle, commit=True)
            finally:
                handle.searcher = None
                handle.index = None

    def close_all(self) -> None:
        with self._lock:
            handles = list(self._handles.values())
        for handle in handles:
            try:
                self.close(handle.location)
            except (OSError, ValueError, SearchIndexError) as e:
                logger.error("index_close_failed", location=str(handle.location), error=str(e))
        logger.debug("index_handles_closed", count=len(handles))
