"""Tests for system prompt construction."""

from __future__ import annotations

from vizassist.context.models import (
    DashboardContext,
    DashboardInsights,
    FilterInfo,
    ParameterInfo,
    WorksheetInfo,
    freeze_row,
)
from vizassist.db.models import Document, Message
from vizassist.rag.prompts import build_system_prompt, recent_history


def _embedded_context() -> DashboardContext:
    rows = tuple(freeze_row({"Region": r, "Sales": str(i * 100)}) for i, r in enumerate("NESWX"))
    return DashboardContext(
        is_embedded=True,
        title="Regional Sales",
        active_sheet="Sales by Region",
        filters=(
            FilterInfo("Region", frozenset({"North", "East"}), worksheet="Sales by Region"),
            FilterInfo("Year", frozenset()),
        ),
        parameters=(ParameterInfo("Top N", "10"),),
        worksheets=(
            WorksheetInfo("Sales by Region", ("Region", "Sales"), rows, row_count=42),
            WorksheetInfo("Broken", error=True),
        ),
    )


def test_prompt_without_context_or_documents():
    prompt = build_system_prompt(None, [], "RWA Assistant")

    assert prompt.startswith("You are RWA Assistant")
    assert "CURRENT DASHBOARD CONTEXT" not in prompt
    assert "RELEVANT DOCUMENTATION" not in prompt
    assert prompt.endswith("provide helpful, accurate explanations about the dashboard.")


def test_prompt_renders_structured_context():
    prompt = build_system_prompt(_embedded_context())

    assert "CURRENT DASHBOARD CONTEXT:" in prompt
    assert "Dashboard Title: Regional Sales" in prompt
    assert "Current Sheet: Sales by Region" in prompt
    assert "- Region: East, North (on Sales by Region)" in prompt
    assert "- Year: All values" in prompt
    assert "- Top N: 10" in prompt
    assert "- Sales by Region - 42 rows" in prompt
    assert "  Columns: Region, Sales" in prompt
    assert "- Broken (data unavailable)" in prompt


def test_prompt_limits_sample_rows_to_three():
    prompt = build_system_prompt(_embedded_context())

    assert "    Row 1: Region: N, Sales: 0" in prompt
    assert "    Row 3: Region: S, Sales: 200" in prompt
    assert "Row 4:" not in prompt


def test_prompt_renders_heuristic_insights():
    context = DashboardContext(
        title="NHS Claims",
        insights=DashboardInsights("NHS Healthcare Financial Data", ("Patient Data",), ("Costs", "Counts")),
    )
    prompt = build_system_prompt(context)

    assert "Dashboard Type: NHS Healthcare Financial Data" in prompt
    assert "Data Categories: Patient Data" in prompt
    assert "Key Metrics: Costs, Counts" in prompt


def test_prompt_numbers_documents_in_order():
    docs = [
        Document(id=1, title="Bars", content="Bar charts compare categories."),
        "Line charts show trends.",
    ]
    prompt = build_system_prompt(None, docs)

    section = prompt.split("RELEVANT DOCUMENTATION:\n", 1)[1]
    assert section.index("Document 1:\nBar charts compare categories.") < section.index(
        "Document 2:\nLine charts show trends."
    )


def test_recent_history_keeps_last_messages():
    messages = [Message(id=i, conversation_id=1, role="user", content=f"m{i}") for i in range(15)]
    history = recent_history(messages, limit=10)

    assert len(history) == 10
    assert history[0] == {"role": "user", "content": "m5"}
    assert recent_history(messages, limit=0) == []
