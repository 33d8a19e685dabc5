"""
CLI module for zotero_store.

Command-line interface for preparing and inspecting a Zotero store.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .. import __version__
from ..config import load_settings
from ..errors import AlreadyExistsError, StoreError
from ..store import Library, Store


console = Console()


def _run(ctx: click.Context, action: Callable[[Store], Awaitable[Any]]) -> Any:
    """Run ``action`` against a store built from the context, reporting store errors."""
    settings = ctx.obj["settings"]

    async def run_with_store():
        async with Store.from_settings(settings) as store:
            return await action(store)

    try:
        return asyncio.run(run_with_store())
    except StoreError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="zotero-store")
@click.option(
    "--env-file", "-e",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a .env file",
)
@click.option(
    "--url", "-u",
    help="Connection URL (overrides COUCHBASE_URL)",
)
@click.option(
    "--verbose", "-v",
    count=True,
    help="Show progress (-v) or debug (-vv) logging",
)
@click.pass_context
def main(ctx, env_file: Optional[Path], url: Optional[str], verbose: int):
    """zotero-store - Zotero library storage for Couchbase"""
    ctx.ensure_object(dict)

    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    try:
        ctx.obj["settings"] = load_settings(env_file=env_file, url=url)
    except StoreError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        sys.exit(1)


@main.command()
@click.option(
    "--ram-quota",
    default=200,
    show_default=True,
    help="RAM quota of the bucket in MB",
)
@click.pass_context
def setup(ctx, ram_quota: int):
    """Create the bucket"""

    async def create(store: Store):
        cluster = await store.get_cluster()
        try:
            await cluster.create_bucket(store.bucket_name, ram_quota)
            console.print(f"[green]Created bucket {store.bucket_name}[/green]")
        except AlreadyExistsError:
            console.print(f"[yellow]Bucket {store.bucket_name} already exists[/yellow]")

    _run(ctx, create)


@main.command()
@click.argument("prefix")
@click.pass_context
def provision(ctx, prefix: str):
    """Create the scope, collections and indexes of a library"""

    async def provision_library(store: Store):
        with console.status(f"[bold green]Provisioning {prefix}...", spinner="dots"):
            library = await store.get(prefix)
        console.print(f"[green]Library {prefix} ready in scope {library.scope_name}[/green]")

    _run(ctx, provision_library)


@main.command()
@click.argument("prefix")
@click.option(
    "--keys", "show_keys",
    is_flag=True,
    help="List item and collection keys",
)
@click.pass_context
def info(ctx, prefix: str, show_keys: bool):
    """Show the metadata of a library"""

    async def show(store: Store):
        library = await store.get(prefix)
        item_keys = await library.item_keys()
        collection_keys = await library.collection_keys()

        table = Table(title=f"Library {prefix}")
        table.add_column("Property", style="cyan")
        table.add_column("Value")
        table.add_row("Type", library.get_type())
        table.add_row("Scope", library.scope_name)
        table.add_row("Name", library.name or "[dim]-[/dim]")
        table.add_row("Version", str(library.version))
        table.add_row("Collections", str(len(collection_keys)))
        table.add_row("Items", str(len(item_keys)))
        console.print(table)

        if show_keys:
            console.print(f"[bold]Collections:[/bold] {' '.join(collection_keys)}")
            console.print(f"[bold]Items:[/bold] {' '.join(item_keys)}")

    _run(ctx, show)


async def apply_feed(library: Library, feed: dict) -> None:
    """
    Apply a library feed the way a synchronization engine does.

    The feed is a JSON object with the optional entries "name", "version",
    "collections", "items" and "deleted" ({"collections": [...], "items": [...]}).
    """
    deleted = feed.get("deleted", {})
    await library.remove_collections(deleted.get("collections", []))
    await library.remove(deleted.get("items", []))
    for collection in feed.get("collections", []):
        await library.add_collection(collection)
    for item in feed.get("items", []):
        await library.add(item)
    await library.save(feed.get("name", ""), feed.get("version", library.version))


@main.command(name="import")
@click.argument("prefix")
@click.argument("feed_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_feed(ctx, prefix: str, feed_file: Path):
    """Apply a JSON library feed to a library"""
    try:
        with open(feed_file, "r", encoding="utf-8") as f:
            feed = json.load(f)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: {feed_file} is not valid JSON: {e}[/red]")
        sys.exit(1)

    async def apply(store: Store):
        library = await store.get(prefix)
        with console.status(f"[bold green]Importing into {prefix}...", spinner="dots"):
            await apply_feed(library, feed)
        console.print(
            f"[green]Imported {len(feed.get('collections', []))} collections and "
            f"{len(feed.get('items', []))} items into {prefix} (version {library.version})[/green]"
        )

    _run(ctx, apply)


@main.command()
@click.argument("prefix")
@click.option(
    "--yes", "-y",
    is_flag=True,
    help="Do not ask for confirmation",
)
@click.pass_context
def remove(ctx, prefix: str, yes: bool):
    """Remove a library and all of its data"""
    if not yes:
        click.confirm(f"Remove library {prefix} and all of its data?", abort=True)

    async def remove_library(store: Store):
        await store.remove(prefix)
        console.print(f"[green]Removed library {prefix}[/green]")

    _run(ctx, remove_library)


if __name__ == "__main__":
    main()
