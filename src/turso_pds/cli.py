"""Admin CLI for the libSQL blob store.

Commands:
    init-schema              - Create the blobs table if missing
    put <path>               - Store a file for an owner
    promote <key>            - Make a temporary blob permanent
    cat <cid>                - Write a blob's bytes to stdout or a file
    status <cid>             - Show temp/stored state of a blob
    quarantine <cid>         - Hide a blob from reads
    unquarantine <cid>       - Lift a quarantine
    rm <cid>...              - Delete blobs
    purge                    - Delete every blob of an owner
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from turso_pds.blobstore import LibsqlBlobStore, content_id_for
from turso_pds.config import settings
from turso_pds.db import create_db_client, setup_schema
from turso_pds.errors import TursoPdsError

app = typer.Typer(
    name="turso-pds",
    help="turso-pds: blob storage for a PDS on libSQL",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True, soft_wrap=True)

Owner = Annotated[str, typer.Option("--owner", "-o", help="DID of the owning account")]


def run_async(coro):
    """Run an async coroutine in sync context."""
    return asyncio.run(coro)


def open_store(owner: str) -> LibsqlBlobStore:
    return LibsqlBlobStore.creator(settings.database)(owner)


def run_store_command(coro):
    """Run a store command, turning domain errors into exit code 1."""
    try:
        return run_async(coro)
    except TursoPdsError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


@app.callback()
def main_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
):
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


@app.command("init-schema")
def init_schema():
    """Create the blobs table (no-op if it already exists)."""
    async def _init():
        client = create_db_client(settings.database)
        try:
            await setup_schema(client)
        finally:
            await client.close()

    run_store_command(_init())
    console.print("[green]Schema initialized.[/green]")


@app.command()
def put(
    path: Annotated[Path, typer.Argument(help="File to store")],
    owner: Owner,
    permanent: Annotated[
        bool, typer.Option("--permanent", help="Store as permanent instead of temporary")
    ] = False,
):
    """Store a file's bytes and print the resulting CID."""
    if not path.is_file():
        err_console.print(f"[red]Error:[/red] Not a file: {path}")
        raise typer.Exit(1)
    data = path.read_bytes()

    async def _put():
        async with open_store(owner) as store:
            if permanent:
                cid = content_id_for(data)
                await store.put_permanent(cid, data)
                return cid
            return await store.put_temp(data)

    cid = run_store_command(_put())
    console.print(cid)


@app.command()
def promote(
    key: Annotated[str, typer.Argument(help="Temporary blob key")],
    owner: Owner,
    cid: Annotated[
        str | None, typer.Option("--cid", help="Final CID (defaults to the key)")
    ] = None,
):
    """Make a temporary blob permanent."""
    async def _promote():
        async with open_store(owner) as store:
            await store.make_permanent(key, cid or key)

    run_store_command(_promote())
    console.print(f"[green]Promoted[/green] {key}")


@app.command()
def cat(
    cid: Annotated[str, typer.Argument(help="Blob CID")],
    owner: Owner,
    output: Annotated[
        Path | None, typer.Option("--output", "-O", help="Write to file instead of stdout")
    ] = None,
):
    """Write a blob's bytes to stdout (or a file)."""
    async def _cat():
        async with open_store(owner) as store:
            return await store.get_bytes(cid)

    data = run_store_command(_cat())
    if output is not None:
        output.write_bytes(data)
        err_console.print(f"Wrote {len(data)} bytes to {output}")
    else:
        stdout = typer.get_binary_stream("stdout")
        stdout.write(data)
        stdout.flush()


@app.command()
def status(
    cid: Annotated[str, typer.Argument(help="Blob CID")],
    owner: Owner,
):
    """Show whether a blob is staged and whether it is stored."""
    async def _status():
        async with open_store(owner) as store:
            return await store.has_temp(cid), await store.has_stored(cid)

    temp, stored = run_store_command(_status())

    table = Table(title=cid)
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    table.add_row("temporary", "[yellow]yes[/yellow]" if temp else "no")
    table.add_row("stored", "[green]yes[/green]" if stored else "no")
    console.print(table)


@app.command()
def quarantine(
    cid: Annotated[str, typer.Argument(help="Blob CID")],
    owner: Owner,
):
    """Hide a blob from reads without deleting it."""
    async def _quarantine():
        async with open_store(owner) as store:
            await store.quarantine(cid)

    run_store_command(_quarantine())
    console.print(f"[yellow]Quarantined[/yellow] {cid}")


@app.command()
def unquarantine(
    cid: Annotated[str, typer.Argument(help="Blob CID")],
    owner: Owner,
):
    """Lift a quarantine."""
    async def _unquarantine():
        async with open_store(owner) as store:
            await store.unquarantine(cid)

    run_store_command(_unquarantine())
    console.print(f"[green]Unquarantined[/green] {cid}")


@app.command()
def rm(
    cids: Annotated[list[str], typer.Argument(help="Blob CIDs to delete")],
    owner: Owner,
):
    """Delete one or more blobs."""
    async def _rm():
        async with open_store(owner) as store:
            if len(cids) == 1:
                await store.delete(cids[0])
            else:
                await store.delete_many(cids)

    run_store_command(_rm())
    console.print(f"[green]Deleted[/green] {len(cids)} blob(s)")


@app.command()
def purge(
    owner: Owner,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip confirmation prompt")
    ] = False,
):
    """Delete every blob belonging to an owner.

    WARNING: This destroys data!
    """
    if not force:
        confirm = typer.confirm(
            f"This will DELETE ALL BLOBS of {owner}. Are you sure?",
            default=False,
        )
        if not confirm:
            console.print("[yellow]Aborted.[/yellow]")
            raise typer.Exit(0)

    async def _purge():
        async with open_store(owner) as store:
            await store.delete_all()

    run_store_command(_purge())
    console.print(f"[green]Purged blobs of[/green] {owner}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
