"""vizassist ask / history: chat with the assistant from the terminal.

Usage:
  vizassist ask "Which region has the highest margin?" --context dashboard.json
  vizassist ask "And the lowest?" --conversation 3
  vizassist history 3
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from vizassist.cli.errors import (
    err_config,
    err_conversation_not_found,
    err_file_not_found,
    err_invalid_json,
    err_invalid_request,
    err_no_api_key,
    warn_no_documents,
)
from vizassist.config import ConfigError, VizAssistConfig, load_config
from vizassist.db.connection import Database
from vizassist.db.schema import initialize
from vizassist.db.sqlite_storage import SqliteStorage
from vizassist.rag.chat import ChatService, RequestValidationError
from vizassist.rag.llm_client import provider_of, validate_api_key

console = Console()

_DEFAULT_DB = ".vizassist.db"


def ask_cmd(
    message: Annotated[str, typer.Argument(help="Question about the dashboard.")],
    conversation: Annotated[
        int | None,
        typer.Option("--conversation", "-c", help="Continue an existing conversation."),
    ] = None,
    context: Annotated[
        Path | None,
        typer.Option("--context", help="JSON file with the dashboard context to attach."),
    ] = None,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .vizassist.db (created if missing)."),
    ] = Path(_DEFAULT_DB),
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the raw response object."),
    ] = False,
) -> None:
    """Ask the assistant a question, optionally with a dashboard context."""
    cfg = _load_config_or_exit()

    try:
        validate_api_key(cfg.generation.model)
    except EnvironmentError:
        console.print(err_no_api_key(provider_of(cfg.generation.model)))
        raise typer.Exit(1)

    payload: dict[str, Any] = {"message": message}
    if conversation is not None:
        payload["conversationId"] = conversation
    if context is not None:
        payload["dashboardContext"] = _read_json(context)

    conn = _open_db(db)
    try:
        storage = SqliteStorage(conn)
        if storage.count_documents() == 0 and not as_json:
            console.print(warn_no_documents())
        service = ChatService.from_config(storage, cfg)
        try:
            result = service.handle(payload)
        except RequestValidationError as exc:
            console.print(err_invalid_request(str(exc)))
            raise typer.Exit(1)
    finally:
        conn.close()

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return
    console.print(
        Panel(
            Markdown(result.message.content),
            title=f"[bold]{cfg.assistant.name}[/]",
            subtitle=f"conversation {result.conversation_id}",
            expand=False,
        )
    )


def history_cmd(
    conversation_id: Annotated[int, typer.Argument(help="Conversation id.")],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .vizassist.db."),
    ] = Path(_DEFAULT_DB),
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print messages as JSON."),
    ] = False,
) -> None:
    """Show the messages of a conversation, oldest first."""
    if not db.exists():
        console.print(err_file_not_found(str(db), "Database"))
        raise typer.Exit(1)

    cfg = _load_config_or_exit()
    conn = _open_db(db)
    try:
        storage = SqliteStorage(conn)
        if storage.get_conversation(conversation_id) is None:
            console.print(err_conversation_not_found(conversation_id))
            raise typer.Exit(1)
        messages = ChatService.from_config(storage, cfg).history(conversation_id)
    finally:
        conn.close()

    if as_json:
        typer.echo(json.dumps({"messages": messages}, indent=2))
        return

    table = Table(title=f"Conversation {conversation_id}")
    table.add_column("#", justify="right")
    table.add_column("Role")
    table.add_column("Message")
    table.add_column("Created", style="dim")
    for m in messages:
        table.add_row(str(m["id"]), m["role"], m["content"], m["createdAt"])
    console.print(table)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_config_or_exit() -> VizAssistConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def _read_json(path: Path) -> Any:
    if not path.exists():
        console.print(err_file_not_found(str(path), "Context file"))
        raise typer.Exit(1)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        console.print(err_invalid_json(str(path), str(exc)))
        raise typer.Exit(1)


def _open_db(db_path: Path) -> sqlite3.Connection:
    """Open (or create) the assistant database and ensure the schema exists."""
    conn = Database(db_path).connect()
    initialize(conn)
    return conn
