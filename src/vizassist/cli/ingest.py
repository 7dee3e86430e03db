"""vizassist ingest / seed: load reference notes into the knowledge base.

Each --source file is read as UTF-8 text and indexed under its file name;
content longer than chunking.max_length is split into overlapping chunks.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from vizassist.cli.errors import err_config, err_file_not_found, err_no_api_key
from vizassist.config import ConfigError, VizAssistConfig, load_config
from vizassist.db.connection import Database
from vizassist.db.schema import initialize
from vizassist.db.sqlite_storage import SqliteStorage
from vizassist.rag.embeddings import LiteLLMEmbedder
from vizassist.rag.indexer import DocumentIndexer
from vizassist.rag.llm_client import provider_of, validate_api_key

console = Console()

_DEFAULT_DB = ".vizassist.db"


def ingest_cmd(
    source: Annotated[
        list[Path] | None,
        typer.Option("--source", "-s", help="Text or markdown file to index (repeatable)."),
    ] = None,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .vizassist.db (created if missing)."),
    ] = Path(_DEFAULT_DB),
) -> None:
    """Index one or more text files into the knowledge base."""
    sources = source or []
    if not sources:
        console.print("[red]Error:[/] No --source specified. Use --source FILE.")
        raise typer.Exit(1)
    missing = [s for s in sources if not s.is_file()]
    if missing:
        console.print(err_file_not_found(str(missing[0]), "Source file"))
        raise typer.Exit(1)

    cfg = _load_config_or_exit()
    _require_embedding_key(cfg)

    conn = _open_db(db)
    try:
        indexer = _indexer(SqliteStorage(conn), cfg)
        total = 0
        for path in sources:
            console.print(f"\n[bold]→ {path}[/]")
            docs = indexer.add_document(
                path.stem, path.read_text(encoding="utf-8"), {"source": str(path)}
            )
            total += len(docs)
            if docs:
                console.print(f"  [green]✓[/] {len(docs)} document(s) stored")
            else:
                console.print("  [yellow]✗ nothing stored (embedding failed)[/]")
    finally:
        conn.close()

    console.print(f"\n[bold]Done.[/] {total} document(s) indexed.")


def seed_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .vizassist.db (created if missing)."),
    ] = Path(_DEFAULT_DB),
) -> None:
    """Load the built-in chart-reading notes."""
    cfg = _load_config_or_exit()
    _require_embedding_key(cfg)

    conn = _open_db(db)
    try:
        docs = _indexer(SqliteStorage(conn), cfg).seed_samples()
    finally:
        conn.close()

    if docs:
        console.print(f"[green]✓[/] Seeded {len(docs)} sample document(s).")
    else:
        console.print("[dim]Sample documents already present; nothing to do.[/]")


def _indexer(storage: SqliteStorage, cfg: VizAssistConfig) -> DocumentIndexer:
    embedder = LiteLLMEmbedder(cfg.embedding.model, timeout=cfg.embedding.timeout)
    return DocumentIndexer(
        storage, embedder, max_length=cfg.chunking.max_length, overlap=cfg.chunking.overlap
    )


def _require_embedding_key(cfg: VizAssistConfig) -> None:
    try:
        validate_api_key(cfg.embedding.model)
    except EnvironmentError:
        console.print(err_no_api_key(provider_of(cfg.embedding.model)))
        raise typer.Exit(1)


def _load_config_or_exit() -> VizAssistConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def _open_db(db_path: Path) -> sqlite3.Connection:
    """Open (or create) the assistant database and ensure the schema exists."""
    conn = Database(db_path).connect()
    initialize(conn)
    return conn
