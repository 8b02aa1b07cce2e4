"""spl search command."""

import click
from rich.console import Console
from rich.table import Table

from searchplane.cli.utils import open_repositories, open_services
from searchplane.git import extract_branch_name


def _branch_label(branch: str | None) -> str:
    if branch is None:
        return ""
    return extract_branch_name(branch) or branch


@click.command()
@click.argument("text")
@click.option(
    "-r",
    "--repository",
    "repositories",
    multiple=True,
    help="Repository to search (repeatable, default: all)",
)
@click.option("-n", "--max-hits", type=int, default=None, help="Maximum number of hits")
@click.pass_context
def search_command(
    ctx: click.Context, text: str, repositories: tuple[str, ...], max_hits: int | None
) -> None:
    """Search commits, files and issues for TEXT."""
    config = ctx.obj["config"]
    limit = max_hits if max_hits is not None else config.search.max_hits_default
    with open_services(ctx.obj["root"], config) as services:
        names = list(repositories) or services.registry.list_names()
        with open_repositories(services.registry, names) as opened:
            hits = services.federator.search(text, limit, opened)

    if not hits:
        click.echo("No results.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Type")
    table.add_column("Repository")
    table.add_column("Branch")
    table.add_column("Id")
    table.add_column("Summary")
    for hit in hits:
        table.add_row(
            f"{hit.score:.3f}",
            hit.kind.value if hit.kind else "",
            hit.repository,
            _branch_label(hit.branch),
            hit.identifier,
            hit.summary or "",
        )
    Console().print(table)
