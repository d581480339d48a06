import logging
from typing import Optional

import typer
import uvicorn

from installctl.config import Config


def serve(
    host: str = typer.Option(Config.API_HOST, help="Address to bind"),
    port: int = typer.Option(Config.API_PORT, help="Port to listen on"),
    backend: Optional[str] = typer.Option(None, "--backend", help="Store backend: file or memory"),
    path: Optional[str] = typer.Option(None, "--path", help="Store file for the file backend"),
    assets_dir: Optional[str] = typer.Option(None, "--assets-dir", help="Directory holding generated cluster assets"),
):
    """Run the installctl API server."""
    from installctl.api.main import create_app
    from installctl.modules.store import get_store

    Config.validate()
    app_ = create_app(store=get_store(backend, path), assets_dir=assets_dir)
    logging.info(f"🚀 Serving installctl API on {host}:{port}")
    uvicorn.run(app_, host=host, port=port, log_level=Config.LOG_LEVEL.lower())
