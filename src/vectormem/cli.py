"""CLI entry point — Typer app for vectormem commands.

Usage:
    vectormem check
    vectormem ensure collection memories
    vectormem add memories --id h1 --document "hello" --embedding 1,1,1
    vectormem query memories --embedding 1,1,0.99 --n-results 5
    vectormem drop memories
"""

from __future__ import annotations

import json
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from vectormem import __version__
from vectormem.config import load_settings
from vectormem.vectorstore import (
    ChromaClient,
    Entry,
    ResourceKind,
    VectorStoreError,
    contains,
)

app = typer.Typer(
    name="vectormem",
    help="Chroma vector store client — resolve resources, add and query entries.",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    url: str | None = typer.Option(None, "--url", help="Chroma server address"),
    tenant: str | None = typer.Option(None, "--tenant", help="Tenant name"),
    database: str | None = typer.Option(None, "--database", help="Database name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Load settings and apply command-line overrides."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    settings = load_settings()
    if url:
        settings.chroma.url = url
    if tenant:
        settings.chroma.tenant = tenant
    if database:
        settings.chroma.database = database
    ctx.obj = settings


def _client(ctx: typer.Context) -> ChromaClient:
    try:
        return ChromaClient.from_settings(ctx.obj)
    except VectorStoreError as exc:
        _fail(exc)


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]Error:[/] {exc}")
    raise typer.Exit(code=1)


def _parse_vector(raw: str) -> list[float]:
    try:
        return [float(v) for v in raw.split(",") if v.strip()]
    except ValueError as exc:
        raise typer.BadParameter(f"not a comma-separated list of numbers: {raw}") from exc


def _results_table(title: str, results: list[Entry]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Distance", justify="right")
    table.add_column("Document")
    table.add_column("Metadata", style="dim")

    for e in results:
        table.add_row(
            e.id,
            f"{e.distance:.6f}" if e.distance is not None else "",
            e.document[:80],
            json.dumps(e.metadata) if e.metadata else "",
        )
    return table


@app.command()
def check(ctx: typer.Context) -> None:
    """Run the add/query/remove self-test against the server."""
    settings = ctx.obj
    with _client(ctx) as client:
        try:
            results = client.check(settings.chroma.check_collection)
        except VectorStoreError as exc:
            _fail(exc)

    console.print(_results_table("Self-test results", results))
    console.print(f"\n[bold green]OK[/] {settings.chroma.url} (vectormem v{__version__})")


@app.command()
def ensure(
    ctx: typer.Context,
    kind: ResourceKind = typer.Argument(..., help="tenant, database or collection"),
    name: str | None = typer.Argument(None, help="Resource name (defaults to the configured one)"),
) -> None:
    """Resolve a resource, creating it if it does not exist."""
    with _client(ctx) as client:
        try:
            resource = client.ensure(kind, name)
        except (VectorStoreError, ValueError) as exc:
            _fail(exc)

    console.print(f"[bold green]{kind.capitalize()}:[/] {resource}")


@app.command()
def drop(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Collection name"),
) -> None:
    """Remove a collection."""
    with _client(ctx) as client:
        try:
            client.remove_collection(name)
        except VectorStoreError as exc:
            _fail(exc)

    console.print(f"[bold green]Removed:[/] {name}")


@app.command()
def add(
    ctx: typer.Context,
    collection: str = typer.Argument(..., help="Collection name"),
    entry_id: str = typer.Option(..., "--id", help="Entry ID"),
    document: str = typer.Option("", "--document", "-d", help="Document text"),
    embedding: str = typer.Option(..., "--embedding", "-e", help="Comma-separated vector"),
    metadata: str | None = typer.Option(None, "--metadata", "-m", help="JSON object"),
) -> None:
    """Add one entry to a collection (created if missing)."""
    vector = _parse_vector(embedding)
    meta = None
    if metadata:
        try:
            meta = json.loads(metadata)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"--metadata is not valid JSON: {exc}") from exc

    with _client(ctx) as client:
        try:
            coll = client.ensure_collection(collection)
            coll.add([Entry(id=entry_id, document=document, embedding=vector, metadata=meta)])
        except VectorStoreError as exc:
            _fail(exc)

    console.print(f"[bold green]Added:[/] {entry_id} → {collection}")


@app.command()
def query(
    ctx: typer.Context,
    collection: str = typer.Argument(..., help="Collection name"),
    embedding: str = typer.Option(..., "--embedding", "-e", help="Comma-separated vector"),
    n_results: int | None = typer.Option(None, "--n-results", "-k", help="Number of results"),
    text: str | None = typer.Option(None, "--contains", help="Document must contain this text"),
) -> None:
    """Query a collection with a raw vector."""
    vector = _parse_vector(embedding)

    with _client(ctx) as client:
        try:
            coll = client.ensure_collection(collection)
            results = coll.query_embedding(
                vector,
                n_results=n_results,
                where_document=contains(text) if text else None,
            )
        except VectorStoreError as exc:
            _fail(exc)

    console.print(_results_table(f"Results from {collection}", results))


if __name__ == "__main__":
    app()
