"""SearchPlane CLI - spl command."""

from pathlib import Path

import click

from searchplane.cli.index import index_command, reindex_command
from searchplane.cli.search import search_command
from searchplane.cli.utils import load_root_config
from searchplane.cli.watch import watch_command
from searchplane.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="spl")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Folder holding the repositories (default: current directory)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, root: Path, verbose: bool) -> None:
    """SearchPlane - full-text search over git repositories."""
    ctx.ensure_object(dict)
    root = root.resolve()
    config = load_root_config(root)
    ctx.obj["root"] = root
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    if verbose:
        configure_logging(level="DEBUG")
    else:
        configure_logging(config=config.logging)


cli.add_command(index_command, name="index")
cli.add_command(reindex_command, name="reindex")
cli.add_command(search_command, name="search")
cli.add_command(watch_command, name="watch")


if __name__ == "__main__":
    cli()
