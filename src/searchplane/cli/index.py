"""spl index / spl reindex commands."""

import click
from rich.console import Console
from rich.table import Table

from searchplane.cli.utils import open_repositories, open_services
from searchplane.core.logging import get_log_file_path
from searchplane.index import IndexResult


def _print_results(results: list[tuple[str, IndexResult]]) -> None:
    console = Console()
    table = Table(show_header=True, header_style="bold")
    table.add_column("Repository")
    table.add_column("Mode")
    table.add_column("Commits", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Status")
    for name, result in results:
        table.add_row(
            name,
            "rebuild" if result.rebuilt else "update",
            str(result.commit_count),
            f"{result.duration_seconds:.2f}s",
            "[green]ok[/green]" if result.success else "[red]failed[/red]",
        )
    console.print(table)


def _exit_on_failure(ctx: click.Context, results: list[tuple[str, IndexResult]]) -> None:
    if all(result.success for _, result in results):
        return
    if log_file := get_log_file_path():
        click.echo(f"Details in {log_file}", err=True)
    ctx.exit(1)


@click.command()
@click.argument("names", nargs=-1)
@click.pass_context
def index_command(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Bring repository indexes up to date.

    NAMES are repository names under the root (default: all of them).
    """
    with open_services(ctx.obj["root"], ctx.obj["config"]) as services:
        selected = list(names) or services.registry.list_names()
        if not selected:
            click.echo("No repositories found.")
            return
        results = []
        with open_repositories(services.registry, selected) as repositories:
            for repository in repositories:
                results.append(
                    (repository.name, services.synchronizer.index_repository(repository))
                )
    _print_results(results)
    _exit_on_failure(ctx, results)


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def reindex_command(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Drop and rebuild the indexes of the named repositories."""
    with open_services(ctx.obj["root"], ctx.obj["config"]) as services:
        results = []
        with open_repositories(services.registry, names) as repositories:
            for repository in repositories:
                if not repository.access.has_commits():
                    click.echo(f"Skipping empty repository: {repository.name}")
                    continue
                results.append((repository.name, services.synchronizer.reindex(repository)))
    if results:
        _print_results(results)
    _exit_on_failure(ctx, results)
