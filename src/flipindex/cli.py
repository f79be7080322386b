from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

import click
import pandas as pd
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from flipindex.core.config import RunConfig, load_settings
from flipindex.core.errors import IndexerError
from flipindex.core.models import ChunkRecord, CollectionInfo, CollectionStats, TxType
from flipindex.orchestration import run_index
from flipindex.storage import DuckDBEntityStore, export_parquet
from flipindex.storage.queries import (
    count_txs,
    fetch_collections,
    fetch_cross_chain_status,
    fetch_holders,
    fetch_txs,
)

console = Console()

DB_PATH = click.Path(exists=True, dir_okay=False, path_type=Path)


def _df_table(df: pd.DataFrame, title: str) -> Table:
    table = Table(title=title, show_lines=False)
    for col in df.columns:
        table.add_column(str(col), overflow="fold")
    for row in df.itertuples(index=False):
        table.add_row(*(str(v) for v in row))
    return table


def _open(db: Path) -> DuckDBEntityStore:
    try:
        return DuckDBEntityStore(db)
    except IndexerError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
)
def cli(log_level: str) -> None:
    """flipindex: FLIP collection indexer and activity views."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@cli.command("index")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=True)
@click.option("--network", required=True, help="Network name from the settings file")
@click.option("--to-block", type=int, default=None, help="Last block to index (default: head - confirmations)")
def index_cmd(config_path: Path, network: str, to_block: int | None) -> None:
    """Index factory and trade events of one network with a live progress bar."""
    try:
        settings = load_settings(config_path)
        config = RunConfig.from_settings(settings, network, end_block=to_block if to_block is not None else "latest")
    except IndexerError as e:
        raise click.ClickException(str(e)) from e

    progress = Progress(
        SpinnerColumn(),
        TextColumn(f"[bold]indexing {network}[/]"),
        BarColumn(),
        TextColumn("{task.completed:,}/{task.total:,} blocks"),
        TimeElapsedColumn(),
        TextColumn("→"),
        TimeRemainingColumn(),
        TextColumn(" • {task.description}"),
        console=console,
        expand=True,
    )
    task = progress.add_task(description="resolving range", total=None)

    def on_start(start: int, end: int) -> None:
        progress.update(task, total=end - start + 1, description=f"{start:,}-{end:,}")

    def on_chunk(rec: ChunkRecord) -> None:
        if rec.status == "done":
            progress.advance(task, rec.to_block - rec.from_block + 1)

    t0 = time.time()
    try:
        with progress:
            output = asyncio.run(
                run_index(config, database_path=settings.database_path, on_start=on_start, on_chunk=on_chunk)
            )
    except (IndexerError, RuntimeError, OSError) as e:
        raise click.ClickException(str(e)) from e

    if output.up_to_date:
        console.print(f"[bold]{network}[/] is up to date")
        return
    s = output.stats
    console.print(f"[bold]done[/]: blocks {output.from_block:,}-{output.to_block:,} • {time.time() - t0:.2f}s")
    console.print(
        f"[bold]summary[/]: logs={s.total_logs} events={s.decoded} "
        f"[green]applied[/]={s.dispatch.applied} replayed={s.dispatch.replayed} "
        f"[red]dropped[/]={s.dispatch.dropped} [yellow]skipped[/]={s.dispatch.skipped} "
        f"malformed={s.malformed} unknown={s.unknown} retries={s.dispatch.retries} "
        f"(chunks={s.chunks_done}, failed fetches={s.chunks_failed})"
    )


@cli.command("holders")
@click.option("--db", type=DB_PATH, required=True)
@click.option("--collection", required=True, help="Collection address")
@click.option("--first", type=int, default=20, show_default=True)
@click.option("--skip", type=int, default=0, show_default=True)
def holders_cmd(db: Path, collection: str, first: int, skip: int) -> None:
    """Current holders of a collection, largest balance first."""
    with _open(db) as store:
        df = fetch_holders(store, collection, first=first, skip=skip)
    console.print(_df_table(df, f"holders of {collection.lower()}"))


@cli.command("activity")
@click.option("--db", type=DB_PATH, required=True)
@click.option("--sender", default=None)
@click.option("--collection", default=None)
@click.option(
    "--tx-type",
    "tx_types",
    multiple=True,
    type=click.Choice([t.name for t in TxType], case_sensitive=False),
    help="Repeat to OR",
)
@click.option("--token-id", type=int, default=None)
@click.option("--first", type=int, default=20, show_default=True)
@click.option("--skip", type=int, default=0, show_default=True)
def activity_cmd(
    db: Path,
    sender: str | None,
    collection: str | None,
    tx_types: tuple[str, ...],
    token_id: int | None,
    first: int,
    skip: int,
) -> None:
    """Activity feed, newest first."""
    types = [TxType[t.upper()] for t in tx_types] or None
    filters = dict(sender=sender, collection=collection, tx_types=types, token_id=token_id)
    with _open(db) as store:
        df = fetch_txs(store, first=first, skip=skip, **filters)
        total = count_txs(store, **filters)
    console.print(_df_table(df, f"activity ({len(df)} of {total})"))


@cli.command("collection")
@click.option("--db", type=DB_PATH, required=True)
@click.argument("address", required=False)
@click.option("--first", type=int, default=20, show_default=True, help="Page size when listing")
def collection_cmd(db: Path, address: str | None, first: int) -> None:
    """Show one collection's info and stats, or list collections by volume."""
    with _open(db) as store:
        if address is None:
            console.print(_df_table(fetch_collections(store, first=first), "collections"))
            return
        info = store.load(CollectionInfo, address.lower())
        stats = store.load(CollectionStats, address.lower())
    if info is None:
        raise click.ClickException(f"unknown collection {address}")

    table = Table(title=f"{info.name} ({info.symbol})", show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value", overflow="fold")
    for obj in (info, stats):
        if obj is None:
            continue
        for key, value in vars(obj).items():
            table.add_row(key, str(value))
    console.print(table)


@cli.command("cross-chain")
@click.option("--db", type=DB_PATH, required=True)
@click.option("--contract", required=True, help="Collection address")
@click.option("--address", required=True, help="Sender or receiver")
def cross_chain_cmd(db: Path, contract: str, address: str) -> None:
    """Latest cross-chain transfer status of tokens sent or received by an address."""
    with _open(db) as store:
        df = fetch_cross_chain_status(store, contract, address)
    console.print(_df_table(df, f"cross-chain transfers of {address.lower()}"))


@cli.command("export")
@click.option("--db", type=DB_PATH, required=True)
@click.option("--out", "out_dir", type=click.Path(file_okay=False, path_type=Path), required=True)
@click.option("--codec", default="zstd", show_default=True)
def export_cmd(db: Path, out_dir: Path, codec: str) -> None:
    """Write every entity table as a Parquet snapshot."""
    with _open(db) as store:
        written = export_parquet(store, out_dir, codec=codec)
    for table, path in written.items():
        console.print(f"[green]✓[/] {table} → {path}")


if __name__ == "__main__":
    cli()
