"""vizassist CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from vizassist.cli.chat import ask_cmd, history_cmd
from vizassist.cli.detect import detect_cmd
from vizassist.cli.ingest import ingest_cmd, seed_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("vizassist")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"vizassist {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="vizassist",
    help=(
        "vizassist: dashboard-aware chat assistant.\n\n"
        "  vizassist ask      Ask a question, optionally with a dashboard context.\n"
        "  vizassist detect   Detect the dashboard context of a saved page."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """vizassist: dashboard-aware chat assistant."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )


app.command("ask")(ask_cmd)
app.command("history")(history_cmd)
app.command("ingest")(ingest_cmd)
app.command("seed")(seed_cmd)
app.command("detect")(detect_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed vizassist version."""
    typer.echo(f"vizassist {_installed_version()}")


if __name__ == "__main__":
    app()
