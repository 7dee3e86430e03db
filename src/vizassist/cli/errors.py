"""vizassist rich error messages with actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from vizassist.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from vizassist.rag.llm_client import api_key_env


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {api_key_env(provider)}=sk-..."
    )


def err_config(message: str) -> str:
    """Config file failed validation."""
    return (
        f"[red]Error:[/] Invalid configuration: {message}\n"
        "  Fix vizassist.yaml (or ~/.vizassist/config.yaml) and retry."
    )


def err_file_not_found(path: str, what: str = "File") -> str:
    return f"[red]Error:[/] {what} not found: '{path}'\n  Check the path and retry."


def err_invalid_json(path: str, reason: str) -> str:
    """A JSON input file could not be parsed."""
    return (
        f"[red]Error:[/] '{path}' is not valid JSON: {reason}\n"
        "  The file must contain a single JSON object."
    )


def err_invalid_request(reason: str) -> str:
    """Chat request rejected by validation."""
    return (
        "[red]Error:[/] Chat request rejected.\n"
        f"  {reason}\n"
        "  Pass a non-empty message and an existing --conversation id."
    )


def err_conversation_not_found(conversation_id: int) -> str:
    return (
        f"[red]Error:[/] Conversation {conversation_id} not found.\n"
        "  Start a new one with:  vizassist ask \"<question>\""
    )


def warn_no_documents() -> str:
    """Knowledge base is empty, so answers will not cite any notes."""
    return (
        "[yellow]⚠[/] The knowledge base is empty; answers will use dashboard context only.\n"
        "  Run:  vizassist seed   (or vizassist ingest --source FILE)"
    )
