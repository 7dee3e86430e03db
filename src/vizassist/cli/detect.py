"""vizassist detect: run context detection against a saved page snapshot.

The snapshot is a JSON object with keys url, title, text, referrer,
in_frame and storage (a string→string map). No extension API or parent frame
is available offline, so only the passive and heuristic tiers can answer.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from vizassist.cli.errors import err_config, err_file_not_found, err_invalid_json
from vizassist.config import ConfigError, load_config
from vizassist.context.detector import ContextDetector
from vizassist.context.host import PageSnapshot
from vizassist.context.models import DashboardContext

console = Console()


def detect_cmd(
    page: Annotated[
        Path,
        typer.Option("--page", "-p", help="JSON page snapshot to analyse."),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the detected context as JSON."),
    ] = False,
) -> None:
    """Detect the dashboard context of a saved page snapshot."""
    if not page.exists():
        console.print(err_file_not_found(str(page), "Page snapshot"))
        raise typer.Exit(1)
    try:
        snapshot = PageSnapshot.load(page)
    except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as exc:
        console.print(err_invalid_json(str(page), str(exc)))
        raise typer.Exit(1)

    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    context = asyncio.run(ContextDetector(snapshot, config=cfg.detector).detect())

    if as_json:
        typer.echo(json.dumps(context.to_dict(), indent=2))
        return
    _show_context(context)


def _show_context(context: DashboardContext) -> None:
    table = Table(title="Dashboard context", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Source", context.source or "-")
    table.add_row("Embedded", "yes" if context.is_embedded else "no")
    table.add_row("Title", context.title or "-")
    table.add_row("Current sheet", context.active_sheet or "-")
    for f in context.filters:
        table.add_row(f"Filter {f.field}", ", ".join(sorted(f.applied_values)) or "All values")
    for p in context.parameters:
        table.add_row(f"Parameter {p.name}", p.current_value)
    for w in context.worksheets:
        detail = "[red]query failed[/]" if w.error else f"{len(w.fields)} field(s), {w.row_count or 0} row(s)"
        table.add_row(f"Worksheet {w.name}", detail)
    if context.insights is not None:
        ins = context.insights
        table.add_row("Dashboard type", ins.dashboard_type)
        table.add_row("Categories", ", ".join(ins.categories) or "-")
        table.add_row("Metrics", ", ".join(ins.metrics) or "-")
        table.add_row("Tableau detected", "yes" if ins.tableau_detected else "no")
    console.print(table)
