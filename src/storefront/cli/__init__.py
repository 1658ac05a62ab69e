import asyncio
import json

import click

from storefront.api.server import default_bridge
from storefront.catalog.aggregator import CatalogAggregator
from storefront.catalog.errors import CatalogError
from storefront.catalog.models import QueryFilter
from storefront.config.settings import StoreConfig, load_config
from storefront.status.tracker import InstallStatusTracker


def build_aggregator(config: StoreConfig) -> CatalogAggregator:
    return CatalogAggregator(config, bridge=default_bridge(config))


def build_tracker(config: StoreConfig) -> InstallStatusTracker:
    bridge = default_bridge(config)
    if bridge is None:
        raise click.UsageError("Status tracking needs a native store (STOREFRONT_NATIVE=true).")
    return InstallStatusTracker.from_config(config, bridge)


def _run(coro):
    try:
        return asyncio.run(coro)
    except CatalogError as exc:
        raise click.ClickException(str(exc))


@click.group()
@click.option("--config", "config_path", help="Path to the configuration file.")
@click.pass_context
def main(ctx, config_path):
    """Storefront CLI"""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config_path)


@main.command(name="list")
@click.option("--order", type=click.Choice(["download", "score"]), default="download")
@click.option("--offset", default=0, help="Number of entries to skip.")
@click.option("--limit", default=20, help="Maximum number of entries.")
@click.option("--category", default="")
@click.option("--tag", default="")
@click.option("--keyword", default="")
@click.option("--author", default="")
@click.option("--packager", default="")
@click.option("--name", "names", multiple=True, help="Restrict to these names.")
@click.option("--filter-stat/--no-filter-stat", default=True)
@click.option("--filter-package/--no-filter-package", default=True)
@click.option("--json", "as_json", is_flag=True, help="Print entries as JSON.")
@click.pass_context
def list_entries(ctx, names, as_json, **filters):
    """List catalog entries."""
    query = QueryFilter(names=list(names), **filters)
    entries = _run(build_aggregator(ctx.obj["config"]).list(query))

    if as_json:
        payload = [entry.model_dump(mode="json", by_alias=True) for entry in entries]
        click.echo(json.dumps(payload, indent=2))
        return
    for entry in entries:
        downloads = entry.stat.download if entry.stat else "-"
        click.echo(f"{entry.name}\t{entry.info.name}\t{downloads}")


@main.command()
@click.argument("name")
@click.pass_context
def show(ctx, name):
    """Show one catalog entry."""
    entry = _run(build_aggregator(ctx.obj["config"]).get(name))
    if not entry:
        raise click.ClickException(f"Software '{name}' not found")
    click.echo(json.dumps(entry.model_dump(mode="json", by_alias=True), indent=2))


@main.command()
@click.argument("name")
@click.option("--ticks", default=1, help="Number of status updates to print.")
@click.pass_context
def status(ctx, name, ticks):
    """Print the install status of an entry."""
    tracker = build_tracker(ctx.obj["config"])

    async def watch():
        try:
            async with tracker.subscribe(name) as subscription:
                for _ in range(ticks):
                    event = await subscription.get()
                    if event.ok:
                        click.echo(event.status.value)
                    else:
                        click.echo(f"error: {event.error}")
        finally:
            await tracker.close()

    _run(watch())


@main.command()
@click.option("--host", default="127.0.0.1", help="The host to bind to.")
@click.option("--port", default=8000, help="The port to bind to.")
@click.pass_context
def server(ctx, host, port):
    """Run the FastAPI server."""
    import uvicorn

    from storefront.api.server import create_app

    uvicorn.run(create_app(ctx.obj["config"]), host=host, port=port)
