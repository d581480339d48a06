import logging

import typer

from installctl.commands import cluster, server, store

app = typer.Typer()


def setup_logging(debug: bool = False):
    """Configure root logging for CLI runs."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    if not debug:
        logging.getLogger('urllib3').setLevel(logging.WARNING)


app.add_typer(cluster.app, name="cluster")
app.add_typer(store.app, name="store")
app.command("serve")(server.serve)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """installctl - cluster installer control plane."""
    setup_logging(debug)


if __name__ == "__main__":
    app()
