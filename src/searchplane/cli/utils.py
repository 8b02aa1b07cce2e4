"""CLI utilities."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click

from searchplane.config import SearchPlaneConfig, load_config
from searchplane.core.errors import ConfigError, RepositoryError
from searchplane.index import (
    BranchCursorStore,
    IncrementalSynchronizer,
    IndexHandleCache,
    QueryFederator,
)
from searchplane.repositories import RepositoryRegistry, SearchableRepository


@dataclass
class Services:
    """Components wired for one CLI invocation."""

    config: SearchPlaneConfig
    registry: RepositoryRegistry
    cursors: BranchCursorStore
    handles: IndexHandleCache
    synchronizer: IncrementalSynchronizer
    federator: QueryFederator


def load_root_config(root: Path) -> SearchPlaneConfig:
    try:
        return load_config(root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


@contextmanager
def open_services(root: Path, config: SearchPlaneConfig) -> Iterator[Services]:
    """Build the index components for a root; every handle is closed on exit."""
    cursors = BranchCursorStore(config.index)
    handles = IndexHandleCache(config.index)
    services = Services(
        config=config,
        registry=RepositoryRegistry(root),
        cursors=cursors,
        handles=handles,
        synchronizer=IncrementalSynchronizer(handles, cursors, config.index),
        federator=QueryFederator(handles, cursors),
    )
    try:
        yield services
    finally:
        handles.close_all()


@contextmanager
def open_repositories(
    registry: RepositoryRegistry, names: Sequence[str]
) -> Iterator[list[SearchableRepository]]:
    """Open repositories by name, failing on the first unknown one."""
    opened: list[SearchableRepository] = []
    try:
        for name in names:
            repository = registry.open(name)
            if repository is None:
                raise click.ClickException(RepositoryError.not_found(name).message)
            opened.append(repository)
        yield opened
    finally:
        for repository in opened:
            repository.close()
