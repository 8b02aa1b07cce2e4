"""spl watch command - run the indexing scheduler in the foreground."""

import click

from searchplane.cli.utils import open_services
from searchplane.daemon import IndexingScheduler


@click.command()
@click.option("--once", is_flag=True, help="Run a single pass and exit")
@click.option("--interval", type=float, default=None, help="Seconds between passes")
@click.pass_context
def watch_command(ctx: click.Context, once: bool, interval: float | None) -> None:
    """Index every repository under the root on a fixed interval."""
    config = ctx.obj["config"]
    update: dict[str, object] = {"enabled": True}
    if interval is not None:
        update["interval_sec"] = interval
    scheduler_config = config.scheduler.model_copy(update=update)

    with open_services(ctx.obj["root"], config) as services:
        scheduler = IndexingScheduler(
            registry=services.registry,
            synchronizer=services.synchronizer,
            config=scheduler_config,
            handles=services.handles,
        )
        if once:
            processed = scheduler.run_once()
            click.echo(f"Indexed {len(processed)} repositories.")
            return

        scheduler.start()
        click.echo(f"Watching {services.registry.root} (Ctrl+C to stop)")
        try:
            while scheduler.is_running:
                scheduler.join(timeout=1.0)
        except KeyboardInterrupt:
            pass
        finally:
            scheduler.close()
