import json
from pathlib import Path
from typing import Any, Dict, Optional

import requests
import typer
import yaml
from jsonschema import validate, ValidationError
from rich.console import Console
from rich.table import Table

from installctl.config import Config

app = typer.Typer(help="Manage clusters through the installctl API.")
console = Console()

CLUSTER_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "desiredState": {"type": "string"},
        "clusterIP": {"type": "string"},
        "etcdCount": {"type": "integer"},
        "masterCount": {"type": "integer"},
        "workerCount": {"type": "integer"},
        "ingressCount": {"type": "integer"},
        "provisioner": {
            "type": "object",
            "properties": {
                "provider": {"type": "string"},
                "options": {"type": "object"}
            },
            "required": ["provider"]
        }
    },
    "required": ["name", "etcdCount", "masterCount", "workerCount", "provisioner"]
}

ServerOption = typer.Option(None, "--server", "-s", help="installctl API URL (default: $INSTALLCTL_SERVER)")
ApiKeyOption = typer.Option(None, "--api-key", help="API key (default: $INSTALLCTL_API_KEY)")


def _url(server: Optional[str], path: str) -> str:
    return (server or Config.SERVER_URL).rstrip("/") + path


def _headers(api_key: Optional[str]) -> Dict[str, str]:
    key = api_key or Config.API_KEY
    return {"X-API-Key": key} if key else {}


def _request(method: str, server: Optional[str], path: str, api_key: Optional[str], **kwargs) -> requests.Response:
    try:
        return requests.request(
            method,
            _url(server, path),
            headers=_headers(api_key),
            timeout=Config.API_TIMEOUT,
            **kwargs
        )
    except requests.RequestException as e:
        typer.echo(f"❌ Could not reach installctl server: {e}", err=True)
        raise typer.Exit(code=1)


def _fail(response: requests.Response, name: Optional[str] = None) -> None:
    """Print a readable error for a failed response and exit."""
    if response.status_code == 400:
        try:
            messages = response.json()
        except ValueError:
            messages = [response.text.strip()]
        typer.echo("❌ Request rejected:", err=True)
        for message in messages:
            typer.echo(f"  - {message}", err=True)
    elif response.status_code == 404:
        typer.echo(f"❌ Cluster '{name}' not found.", err=True)
    elif response.status_code == 409:
        typer.echo(f"❌ Cluster '{name}' already exists.", err=True)
    elif response.status_code == 403:
        typer.echo("❌ Unauthorized. Check --api-key or INSTALLCTL_API_KEY.", err=True)
    else:
        typer.echo(f"❌ Server error ({response.status_code}).", err=True)
    raise typer.Exit(code=1)


def load_cluster_file(path: Path) -> Dict[str, Any]:
    """Read and schema-check a cluster definition."""
    if not path.exists():
        typer.echo(f"❌ Cluster definition not found: {path}", err=True)
        raise typer.Exit(code=1)
    with open(path) as f:
        cluster_config = yaml.safe_load(f) or {}
    try:
        validate(instance=cluster_config, schema=CLUSTER_SCHEMA)
    except ValidationError as ve:
        typer.echo(f"❌ YAML validation error: {ve.message}", err=True)
        raise typer.Exit(code=1)
    cluster_config.setdefault("desiredState", "installed")
    return cluster_config


@app.command("create")
def create_cluster(
    file: Path = typer.Option(..., "--file", "-f", help="Cluster definition YAML"),
    server: Optional[str] = ServerOption,
    api_key: Optional[str] = ApiKeyOption,
):
    """Submit a new cluster definition."""
    cluster_config = load_cluster_file(file)
    name = cluster_config["name"]
    response = _request("POST", server, "/clusters", api_key, json=cluster_config)
    if response.status_code != 202:
        _fail(response, name)
    typer.echo(f"✅ Cluster '{name}' accepted.")


@app.command("update")
def update_cluster(
    name: str = typer.Argument(..., help="Cluster name"),
    file: Path = typer.Option(..., "--file", "-f", help="Cluster definition YAML"),
    server: Optional[str] = ServerOption,
    api_key: Optional[str] = ApiKeyOption,
):
    """Submit an updated definition for an existing cluster."""
    cluster_config = load_cluster_file(file)
    response = _request("PUT", server, f"/clusters/{name}", api_key, json=cluster_config)
    if response.status_code != 202:
        _fail(response, name)
    typer.echo(f"✅ Cluster '{name}' update accepted.")
    typer.echo(yaml.safe_dump(response.json(), sort_keys=False))


@app.command("get")
def get_cluster(
    name: str = typer.Argument(..., help="Cluster name"),
    server: Optional[str] = ServerOption,
    api_key: Optional[str] = ApiKeyOption,
):
    """Show a cluster."""
    response = _request("GET", server, f"/clusters/{name}", api_key)
    if response.status_code != 200:
        _fail(response, name)
    typer.echo(yaml.safe_dump(response.json(), sort_keys=False))


@app.command("list")
def list_clusters(
    server: Optional[str] = ServerOption,
    api_key: Optional[str] = ApiKeyOption,
    output: str = typer.Option("table", "--output", "-o", help="table or json"),
):
    """List all clusters."""
    response = _request("GET", server, "/clusters", api_key)
    if response.status_code != 200:
        _fail(response)
    clusters = response.json()
    if output == "json":
        typer.echo(json.dumps(clusters, indent=2))
        return
    if not clusters:
        typer.echo("No clusters found.")
        return
    table = Table(title="Clusters")
    for column in ("Name", "Desired", "Current", "Etcd", "Master", "Worker", "Ingress", "Provider"):
        table.add_column(column)
    for c in clusters:
        table.add_row(
            c["name"],
            c["desiredState"],
            c["currentState"],
            str(c["etcdCount"]),
            str(c["masterCount"]),
            str(c["workerCount"]),
            str(c["ingressCount"]),
            c["provisioner"]["provider"],
        )
    console.print(table)


@app.command("delete")
def delete_cluster(
    name: str = typer.Argument(..., help="Cluster name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    server: Optional[str] = ServerOption,
    api_key: Optional[str] = ApiKeyOption,
):
    """Request teardown of a cluster."""
    if not yes:
        confirm = typer.confirm(f"Are you sure you want to delete cluster '{name}'?", default=False)
        if not confirm:
            typer.echo("❌ Deletion cancelled.")
            raise typer.Exit()
    response = _request("DELETE", server, f"/clusters/{name}", api_key)
    if response.status_code != 202:
        _fail(response, name)
    typer.echo(f"🗑️  Cluster '{name}' marked for deletion.")


def _download(name: str, path: str, output: Path, server: Optional[str], api_key: Optional[str]) -> None:
    response = _request("GET", server, f"/clusters/{name}/{path}", api_key)
    if response.status_code != 200:
        _fail(response, name)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(response.content)
    typer.echo(f"✅ Saved {path} for '{name}' to {output}")


@app.command("kubeconfig")
def get_kubeconfig(
    name: str = typer.Argument(..., help="Cluster name"),
    output: Path = typer.Option(Path("config"), "--output", "-o", help="Where to write the kubeconfig"),
    server: Optional[str] = ServerOption,
    api_key: Optional[str] = ApiKeyOption,
):
    """Download a cluster's kubeconfig."""
    _download(name, "kubeconfig", output, server, api_key)


@app.command("logs")
def get_logs(
    name: str = typer.Argument(..., help="Cluster name"),
    server: Optional[str] = ServerOption,
    api_key: Optional[str] = ApiKeyOption,
):
    """Print a cluster's install log."""
    response = _request("GET", server, f"/clusters/{name}/logs", api_key)
    if response.status_code != 200:
        _fail(response, name)
    typer.echo(response.text)


@app.command("assets")
def get_assets(
    name: str = typer.Argument(..., help="Cluster name"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Archive path (default: <name>-assets.tar.gz)"),
    server: Optional[str] = ServerOption,
    api_key: Optional[str] = ApiKeyOption,
):
    """Download a cluster's generated assets as a tar.gz archive."""
    _download(name, "assets", output or Path(f"{name}-assets.tar.gz"), server, api_key)
