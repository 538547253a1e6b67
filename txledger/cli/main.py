"""
CLI for creating, inspecting and auditing content-addressed transactions.
"""

import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from txledger.chaincode.contract import TransactionContract
from txledger.core.codec import serialize, derive_key, transaction_key
from txledger.core.errors import LedgerError, StoreUnavailableError
from txledger.core.types import Transaction
from txledger.storage import SQLiteStorage
from txledger.verify.verifier import LedgerVerifier

app = typer.Typer(
    name="txledger",
    help="Create, inspect and audit content-addressed ledger transactions",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

DEFAULT_NAMESPACE = "txledger"


def get_db_path(db_flag: Optional[Path] = None) -> Path:
    """Resolve DB path in this order:
    1. --db flag
    2. TXLEDGER_DB_PATH environment variable
    3. Default: ~/.txledger/world-state.db
    """
    if db_flag:
        path = db_flag.resolve()
    else:
        env_path = os.environ.get("TXLEDGER_DB_PATH")
        if env_path:
            path = Path(env_path).resolve()
        else:
            path = Path.home() / ".txledger" / "world-state.db"

    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_namespace(namespace_flag: Optional[str] = None) -> str:
    return namespace_flag or os.environ.get("TXLEDGER_NAMESPACE") or DEFAULT_NAMESPACE


def open_contract(ctx: typer.Context, db: Optional[Path], namespace: Optional[str], must_exist: bool = True) -> TransactionContract:
    obj = ctx.obj or {}
    db_path = get_db_path(db or obj.get("db"))
    ns = get_namespace(namespace or obj.get("namespace"))

    if must_exist and not db_path.exists():
        console.print(f"[red]Database file not found: {db_path}[/]")
        console.print("[yellow]To get started:[/]")
        console.print("  • Seed the ledger: txledger init")
        console.print("  • Set env var: export TXLEDGER_DB_PATH=/path/to/world-state.db")
        console.print("  • Or use --db: txledger list --db /custom/path.db")
        raise typer.Exit(1)

    try:
        storage = SQLiteStorage(db_path, namespace=ns)
    except StoreUnavailableError as e:
        console.print(f"[red]Failed to open database: {escape(str(e))}[/]")
        console.print("[yellow]The file may be corrupted or not a valid SQLite DB.[/]")
        raise typer.Exit(1)

    return TransactionContract(storage=storage, namespace=ns)


@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(
        None,
        "--db",
        help="Path to SQLite database (overrides TXLEDGER_DB_PATH env var)",
    ),
    namespace: Optional[str] = typer.Option(
        None,
        "--namespace",
        help="World-state namespace (overrides TXLEDGER_NAMESPACE env var)",
    ),
):
    """Manage content-addressed ledger transactions."""
    ctx.obj = {"db": db, "namespace": namespace}


@app.command()
def init(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    namespace: Optional[str] = typer.Option(None, "--namespace", hidden=True),
):
    """Seed the world state with the base set of transactions."""
    with open_contract(ctx, db, namespace, must_exist=False) as contract:
        try:
            keys = contract.init_ledger()
        except LedgerError as e:
            console.print(f"[red]{escape(str(e))}[/]")
            raise typer.Exit(1)

    for key in keys:
        console.print(f"[green]✓ Seeded {key}[/]")


@app.command()
def create(
    ctx: typer.Context,
    binding: str = typer.Argument(..., help="Binding of personal info hash and certificate hash"),
    timestamp: int = typer.Argument(..., help="Signed 64-bit timestamp"),
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    namespace: Optional[str] = typer.Option(None, "--namespace", hidden=True),
):
    """Create a transaction and print its derived key."""
    try:
        Transaction(binding=binding, timestamp=timestamp)
    except (TypeError, ValueError) as e:
        console.print(f"[red]Invalid transaction: {escape(str(e))}[/]")
        raise typer.Exit(1)

    with open_contract(ctx, db, namespace, must_exist=False) as contract:
        try:
            key = contract.create_tx(binding, timestamp)
        except LedgerError as e:
            console.print(f"[red]{escape(str(e))}[/]")
            raise typer.Exit(1)

    console.print(f"[green]✓ Created transaction[/] {key}")


@app.command()
def read(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Transaction key (hex SHA-256)"),
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    namespace: Optional[str] = typer.Option(None, "--namespace", hidden=True),
):
    """Show a single transaction."""
    with open_contract(ctx, db, namespace) as contract:
        try:
            tx = contract.read_tx(key)
        except LedgerError as e:
            console.print(f"[red]{escape(str(e))}[/]")
            raise typer.Exit(1)

    console.print(f"[bold cyan]{escape(key)}[/]")
    console.print(f"  Binding:   {tx.binding}", markup=False)
    console.print(f"  Timestamp: {tx.timestamp}")


@app.command()
def exists(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Transaction key (hex SHA-256)"),
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    namespace: Optional[str] = typer.Option(None, "--namespace", hidden=True),
):
    """Exit 0 when the transaction exists, 1 otherwise."""
    with open_contract(ctx, db, namespace) as contract:
        try:
            found = contract.tx_exists(key)
        except LedgerError as e:
            console.print(f"[red]{escape(str(e))}[/]")
            raise typer.Exit(1)

    if found:
        console.print("[green]true[/]")
    else:
        console.print("[yellow]false[/]")
        raise typer.Exit(1)


@app.command()
def delete(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Transaction key (hex SHA-256)"),
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    namespace: Optional[str] = typer.Option(None, "--namespace", hidden=True),
):
    """Delete an existing transaction."""
    with open_contract(ctx, db, namespace) as contract:
        try:
            contract.delete_tx(key)
        except LedgerError as e:
            console.print(f"[red]{escape(str(e))}[/]")
            raise typer.Exit(1)

    console.print(f"[green]✓ Deleted {escape(key)}[/]")


@app.command("list")
def list_txs(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    namespace: Optional[str] = typer.Option(None, "--namespace", hidden=True),
):
    """List every transaction in the namespace, in key order."""
    with open_contract(ctx, db, namespace) as contract:
        try:
            txs = list(contract.get_all_txs())
        except LedgerError as e:
            console.print(f"[red]Listing aborted: {escape(str(e))}[/]")
            console.print("  Run 'txledger verify' to find every damaged entry.")
            raise typer.Exit(1)

    if not txs:
        console.print("[yellow]No transactions found.[/]")
        return

    console.print(f"[bold]Transactions ({len(txs)})[/]")
    for tx in txs:
        console.print(
            f"[bold cyan]{transaction_key(tx)}[/] | {tx.timestamp:>20} | {escape(tx.binding)}",
            soft_wrap=True,
        )


@app.command()
def namespaces(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
):
    """List namespaces present in the database with their entry counts."""
    obj = ctx.obj or {}
    db_path = get_db_path(db or obj.get("db"))

    if not db_path.exists():
        console.print(f"[red]Database file not found: {db_path}[/]")
        raise typer.Exit(1)

    try:
        storage = SQLiteStorage(db_path)
    except StoreUnavailableError as e:
        console.print(f"[red]Failed to open database: {escape(str(e))}[/]")
        raise typer.Exit(1)

    with storage:
        try:
            counts = [(name, storage.count(name)) for name in storage.list_namespaces()]
        except StoreUnavailableError as e:
            console.print(f"[red]{escape(str(e))}[/]")
            raise typer.Exit(1)

    if not counts:
        console.print("[yellow]No namespaces found in database.[/]")
        return

    table = Table(title="Namespaces")
    table.add_column("Namespace")
    table.add_column("Entries")
    for name, count in counts:
        table.add_row(escape(name), str(count))

    console.print(table)


@app.command()
def key(
    binding: str = typer.Argument(..., help="Binding of personal info hash and certificate hash"),
    timestamp: int = typer.Argument(..., help="Signed 64-bit timestamp"),
    show_bytes: bool = typer.Option(False, "--show-bytes", help="Also print the canonical JSON that gets hashed"),
):
    """Derive a transaction key offline, without touching any database."""
    try:
        tx = Transaction(binding=binding, timestamp=timestamp)
    except (TypeError, ValueError) as e:
        console.print(f"[red]Invalid transaction: {escape(str(e))}[/]")
        raise typer.Exit(1)

    tx_bytes = serialize(tx)
    if show_bytes:
        console.print(tx_bytes.decode("utf-8"), markup=False, highlight=False, soft_wrap=True)
    console.print(derive_key(tx_bytes), highlight=False, soft_wrap=True)


@app.command()
def verify(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    namespace: Optional[str] = typer.Option(None, "--namespace", hidden=True),
):
    """Check that every entry decodes and is stored under the hash of its content."""
    with open_contract(ctx, db, namespace) as contract:
        result = LedgerVerifier().verify(contract.state)
        ns = contract.namespace

    if result.is_valid:
        console.print(f"[green]✓ Namespace '{ns}' is valid[/]")
        console.print(f"  {result.message}")
    else:
        console.print(f"[red]✗ Verification failed for namespace '{ns}'[/]")
        for failure in result.failures:
            console.print(f"  • [{failure.key}] {failure.category}: {failure.message}", markup=False)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
