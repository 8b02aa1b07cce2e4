"""Indexing scheduler: a shared queue of repository names drained by a driver thread."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from searchplane.config.models import SchedulerConfig
from searchplane.core.errors import InternalError, RepositoryError
from searchplane.core.logging import pass_context

if TYPE_CHECKING:
    from searchplane.index.handles import IndexHandleCache
    from searchplane.index.sync import IncrementalSynchronizer
    from searchplane.repositories import RepositoryRegistry

logger = structlog.get_logger()


class SchedulerState(Enum):
    """Scheduler state."""

    IDLE = "idle"
    INDEXING = "indexing"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class SchedulerStatus:
    """Current scheduler status."""

    state: SchedulerState
    queue_size: int
    last_processed: tuple[str, ...] = ()
    last_error: str | None = None


@dataclass
class IndexingScheduler:
    """
    Queues repositories for indexing and drains the queue on each pass.

    Design:
    - enqueue() may be called from any thread
    - run_once() drains the queue; repeated names index once per pass
    - start() runs run_once() on a daemon thread every interval_sec
    - The handle cache's per-repository locks serialize passes with direct calls
    """

    registry: RepositoryRegistry
    synchronizer: IncrementalSynchronizer
    config: SchedulerConfig = field(default_factory=SchedulerConfig)
    handles: IndexHandleCache | None = None

    _queue: queue.Queue[str] = field(default_factory=queue.Queue, init=False)
    _first_run: bool = field(default=True, init=False)
    _run_lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, init=False)
    _thread: threading.Thread | None = field(default=None, init=False)
    _state: SchedulerState = field(default=SchedulerState.IDLE, init=False)
    _last_processed: tuple[str, ...] = field(default=(), init=False)
    _last_error: str | None = field(default=None, init=False)

    @property
    def is_ready(self) -> bool:
        """True when indexing is enabled by configuration."""
        return self.config.enabled

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the driver thread to exit."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)

    def has_empty_queue(self) -> bool:
        return self._queue.empty()

    def enqueue(self, repository_name: str) -> bool:
        """Queue a repository for the next pass. No-op when indexing is disabled."""
        if not self.is_ready:
            return False
        self._queue.put(repository_name)
        logger.debug("repository_queued", repository=repository_name)
        return True

    def run_once(self) -> list[str]:
        """Drive one pass; returns the names indexed in it."""
        if not self.is_ready:
            return []
        with self._run_lock, pass_context():
            return self._drain()

    def _drain(self) -> list[str]:
        if self._first_run or self.config.polling_mode:
            # Index everything on first run or in polling mode
            self._first_run = False
            for name in self.registry.list_names():
                self._queue.put(name)

        processed: list[str] = []
        seen: set[str] = set()
        self._state = SchedulerState.INDEXING
        try:
            while True:
                try:
                    name = self._queue.get_nowait()
                except queue.Empty:
                    break
                if name in seen:
                    # Queued more than once this pass
                    continue
                repository = self.registry.open(name)
                if repository is None:
                    self._last_error = RepositoryError.not_found(name).message
                    logger.warning("scheduler_repository_missing", repository=name)
                    continue
                try:
                    # Never raises; failures come back in the result
                    result = self.synchronizer.index_repository(repository)
                finally:
                    repository.close()
                if not result.success:
                    reason = result.error or "index incomplete"
                    self._last_error = RepositoryError.read_failed(name, reason).message
                seen.add(name)
                processed.append(name)
        finally:
            if self._state is SchedulerState.INDEXING:
                self._state = SchedulerState.IDLE
        self._last_processed = tuple(processed)
        if processed:
            logger.info("scheduler_pass_completed", repositories=len(processed))
        return processed

    # =========================================================================
    # Background driver
    # =========================================================================

    def start(self) -> None:
        """Start the background driver."""
        if self._thread is not None or not self.is_ready:
            return
        self._stop_event.clear()
        self._state = SchedulerState.IDLE
        self._thread = threading.Thread(
            target=self._loop, name="searchplane-scheduler", daemon=True
        )
        self._thread.start()
        logger.info("scheduler_started", interval_sec=self.config.interval_sec)

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                self._last_error = InternalError.unexpected(str(e)).message
                logger.exception("scheduler_pass_failed")
            self._stop_event.wait(self.config.interval_sec)

    def stop(self) -> None:
        """Stop the driver, waiting for a running pass to finish."""
        self._state = SchedulerState.STOPPING
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.config.stop_timeout_sec)
            if self._thread.is_alive():
                logger.warning("scheduler_stop_timeout", timeout_sec=self.config.stop_timeout_sec)
            self._thread = None
        self._state = SchedulerState.STOPPED
        logger.info("scheduler_stopped")

    def close(self) -> None:
        """Stop the driver and close every index handle."""
        self.stop()
        if self.handles is not None:
            self.handles.close_all()

    @property
    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            state=self._state,
            queue_size=self._queue.qsize(),
            last_processed=self._last_processed,
            last_error=self._last_error,
        )
