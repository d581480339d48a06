from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from installctl.errors import InstallctlError
from installctl.modules import labels
from installctl.modules.store import get_store

app = typer.Typer(help="Maintain the local cluster store (reconciler side).")
console = Console()

BackendOption = typer.Option(None, "--backend", help="Store backend (default: $STORE_BACKEND)")
PathOption = typer.Option(None, "--path", help="Store file (default: $STORE_PATH)")


@app.command("list")
def list_records(
    backend: Optional[str] = BackendOption,
    path: Optional[str] = PathOption,
):
    """Show stored records with their gate and generation."""
    records = get_store(backend, path).get_all()
    if not records:
        typer.echo("No clusters in the store.")
        return
    table = Table(title="Stored clusters")
    for column in ("Name", "Desired", "Current", "Pending", "Generation"):
        table.add_column(column)
    for name in sorted(records):
        record = records[name]
        table.add_row(
            name,
            record.desired_state,
            record.current_state,
            "yes" if record.can_continue else "no",
            str(record.generation),
        )
    console.print(table)


@app.command("purge")
def purge_record(
    name: str = typer.Argument(..., help="Cluster name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    backend: Optional[str] = BackendOption,
    path: Optional[str] = PathOption,
):
    """Remove a record for good once its infrastructure is torn down."""
    store = get_store(backend, path)
    record = store.get(name)
    if record is None:
        typer.echo(f"❌ Cluster '{name}' not found.", err=True)
        raise typer.Exit(code=1)
    if record.desired_state != "destroyed" and not yes:
        confirm = typer.confirm(
            f"Cluster '{name}' is not marked for deletion. Purge it anyway?", default=False
        )
        if not confirm:
            typer.echo("❌ Purge cancelled.")
            raise typer.Exit()
    store.delete(name)
    typer.echo(f"🧹 Purged cluster '{name}' from the store.")


@app.command("label")
def label_nodes(
    name: str = typer.Argument(..., help="Cluster name"),
    inventory: Path = typer.Option(..., help="Ansible inventory of the cluster"),
    kubeconfig: Path = typer.Option(..., help="Kubeconfig of the cluster"),
    private_data_dir: Path = typer.Option(Path("/tmp/installctl-runner"), help="ansible-runner private data dir"),
    backend: Optional[str] = BackendOption,
    path: Optional[str] = PathOption,
):
    """Apply the node labels from a cluster's plan."""
    record = get_store(backend, path).get(name)
    if record is None:
        typer.echo(f"❌ Cluster '{name}' not found.", err=True)
        raise typer.Exit(code=1)
    try:
        result = labels.label_nodes(record.plan, str(inventory), str(kubeconfig), str(private_data_dir))
    except InstallctlError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Labeling {result['status']}.")
