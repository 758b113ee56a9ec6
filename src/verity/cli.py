"""Typer-based CLI for Verity."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import VerityConfig
from .content_store import PinataContentStore
from .errors import ConfigError, LedgerNotConfiguredError, LedgerUnavailableError, VerityError
from .ledger.client import LedgerClient
from .models.anchor import AnchorStatus
from .models.results import PlateLookupResult
from .pipeline import EvidencePipeline
from .record_index import RecordIndex

app = typer.Typer(
    name="verity",
    help="Verity - tamper-evident video evidence anchoring",
    add_completion=False,
)

console = Console()

STATUS_STYLES = {
    AnchorStatus.CONFIRMED: "green",
    AnchorStatus.FAILED: "red",
    AnchorStatus.SKIPPED: "yellow",
    AnchorStatus.MOCK: "dim",
}


@app.callback()
def main_callback(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(data_dir: str | None) -> VerityConfig:
    try:
        return VerityConfig.from_env(data_dir=data_dir)
    except ConfigError as e:
        console.print(f"[red]Error ({e.kind}): {e.message}[/red]")
        raise typer.Exit(code=1)


@app.command()
def upload(
    file: Path = typer.Argument(..., help="Video file to anchor"),
    plate: str = typer.Option(..., "--plate", "-p", help="Vehicle plate"),
    data_dir: str = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory holding records.json (default: VERITY_DATA_DIR or ./db)",
    ),
):
    """Hash, pin to IPFS, anchor on every configured ledger and index a file."""
    config = _load_config(data_dir)
    pipeline = EvidencePipeline.from_config(config)

    try:
        result = pipeline.upload(file, plate)
    except VerityError as e:
        console.print(f"[red]Error ({e.kind}): {e.message}[/red]")
        raise typer.Exit(code=1)

    console.print("[green]Evidence anchored[/green]")
    console.print(f"  Record ID: {result.record_id}")
    console.print(f"  Hash:      {result.content_hash}")
    console.print(f"  CID:       {result.content_id}")
    console.print(f"  Local ID:  {result.local_id}")

    table = Table(title="Ledgers")
    table.add_column("Ledger", style="cyan")
    table.add_column("Status")
    table.add_column("Reference", style="dim")
    for name, outcome in result.ledger_refs.items():
        style = STATUS_STYLES[outcome.status]
        table.add_row(name, f"[{style}]{outcome.status.value}[/{style}]", outcome.to_ref())
    console.print(table)

    if result.demo_mode:
        console.print("[yellow]No ledger configured; returned mock transactions[/yellow]")


@app.command()
def verify(
    key: str = typer.Argument(..., help="Record id (PLATE-TIMESTAMP) or plate"),
    data_dir: str = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory holding records.json (default: VERITY_DATA_DIR or ./db)",
    ),
):
    """Re-download evidence and compare its hash with the anchored one."""
    config = _load_config(data_dir)
    pipeline = EvidencePipeline.from_config(config)

    try:
        result = pipeline.verify(key)
    except VerityError as e:
        console.print(f"[red]Error ({e.kind}): {e.message}[/red]")
        raise typer.Exit(code=1)

    if isinstance(result, PlateLookupResult):
        _print_records(result.records, title=f"Records for {result.plate}")
        return

    console.print(f"Record ID:     {result.record_id}")
    console.print(f"Source:        {result.source}{f' ({result.ledger})' if result.ledger else ''}")
    console.print(f"Gateway:       {result.gateway}")
    console.print(f"Anchored hash: {result.anchored_hash}")
    console.print(f"Computed hash: {result.computed_hash}")
    for name, link in result.explorer_links.items():
        console.print(f"Explorer ({name}): {link}")

    if result.matches:
        console.print("[green]Verified - content is byte-identical to what was anchored[/green]")
    else:
        console.print("[red]ALTERED - hashes do not match[/red]")
        raise typer.Exit(code=2)


@app.command()
def records(
    plate: str = typer.Option(None, "--plate", "-p", help="Only records for this plate"),
    data_dir: str = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory holding records.json (default: VERITY_DATA_DIR or ./db)",
    ),
):
    """List locally indexed evidence records."""
    config = _load_config(data_dir)
    index = RecordIndex(config.records_file)
    found = index.find_by_plate(plate) if plate else index.all()

    if not found:
        console.print("[dim]No records[/dim]")
        return

    _print_records(found, title=f"{len(found)} record(s)")


@app.command("check-config")
def check_config(
    offline: bool = typer.Option(False, "--offline", help="Skip network checks"),
):
    """Validate configuration and probe every configured ledger."""
    config = _load_config(None)

    problems = config.warnings()
    if problems:
        for problem in problems:
            console.print(f"[yellow]{problem}[/yellow]")
    else:
        console.print("[green]All settings present[/green]")

    failures = 0
    for network in config.ledger.networks:
        console.print(f"\n[bold]{network.display_name}[/bold] ({network.name})")
        try:
            client = LedgerClient(
                network,
                config.ledger.private_key,
                rpc_timeout=config.ledger.rpc_timeout_seconds,
            )
        except LedgerNotConfiguredError as e:
            console.print(f"  [yellow]Skipped: {e.message}[/yellow]")
            continue

        console.print(f"  Contract: {client.contract_address}")
        console.print(f"  Wallet:   {client.signer}")
        if offline:
            continue

        try:
            diag = client.diagnose()
        except LedgerUnavailableError as e:
            console.print(f"  [red]Unreachable: {e.message}[/red]")
            failures += 1
            continue

        console.print(f"  Chain ID: {diag.chain_id}")
        if not diag.contract_deployed:
            console.print("  [red]No contract code at this address; redeploy the contract[/red]")
            failures += 1
            continue
        console.print(f"  Records:  {diag.total_records}")
        console.print(f"  Balance:  {diag.balance_wei / 10**18:.6f} ETH")
        if diag.balance_wei == 0:
            console.print("  [yellow]No balance; get testnet ETH to send transactions[/yellow]")

    if failures:
        raise typer.Exit(code=1)


pins_app = typer.Typer(help="Pinata pin management")
app.add_typer(pins_app, name="pins")


@pins_app.command("list")
def pins_list():
    """List files pinned on Pinata."""
    store = PinataContentStore(_load_config(None).content_store)
    try:
        rows = store.list_pinned()
    except VerityError as e:
        console.print(f"[red]Error ({e.kind}): {e.message}[/red]")
        raise typer.Exit(code=1)

    table = Table(title=f"{len(rows)} pinned file(s)")
    table.add_column("CID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Size", justify="right")
    for row in rows:
        name = (row.get("metadata") or {}).get("name") or "-"
        table.add_row(row.get("ipfs_pin_hash", "-"), name, str(row.get("size", "-")))
    console.print(table)


@pins_app.command("remove")
def pins_remove(cid: str = typer.Argument(..., help="CID to unpin")):
    """Unpin a CID from Pinata."""
    store = PinataContentStore(_load_config(None).content_store)
    try:
        removed = store.unpin(cid)
    except VerityError as e:
        console.print(f"[red]Error ({e.kind}): {e.message}[/red]")
        raise typer.Exit(code=1)

    if removed:
        console.print(f"[green]Unpinned {cid}[/green]")
    else:
        console.print(f"[yellow]{cid} was not pinned[/yellow]")


@app.command()
def version():
    """Show Verity version."""
    from . import __version__
    console.print(f"Verity v{__version__}")


def _print_records(found, title: str) -> None:
    table = Table(title=title)
    table.add_column("Record ID", style="cyan", no_wrap=True)
    table.add_column("Plate", style="yellow")
    table.add_column("Hash", style="dim")
    table.add_column("CID", style="dim")
    table.add_column("Created (UTC)")
    for record in found:
        created = record.created_at.strftime("%Y-%m-%d %H:%M:%S") if record.created_at else "-"
        table.add_row(record.record_id, record.plate, record.content_hash[:16] + "...", record.content_id, created)
    console.print(table)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
