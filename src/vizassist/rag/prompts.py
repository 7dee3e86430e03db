"""System prompt construction for dashboard chat.

The prompt has four parts, in order:
  1. Assistant instructions (persona, analysis approach, tone).
  2. CURRENT DASHBOARD CONTEXT, when a context snapshot is available.
  3. RELEVANT DOCUMENTATION, one block per retrieved document.
  4. A closing instruction.
"""

from __future__ import annotations

from collections.abc import Sequence

from vizassist.context.models import DashboardContext
from vizassist.db.models import Document, Message

SAMPLE_ROWS_IN_PROMPT = 3

_INSTRUCTIONS = """\
You are {name}, an intelligent financial data analyst embedded in a Tableau dashboard.

You analyze whatever dashboard data is currently being viewed and provide contextual insights based on the specific metrics, categories, and time periods shown.

When users ask questions, you should:
1. ANALYZE the current dashboard context and data structure
2. PROVIDE insights specific to the metrics and categories visible
3. REFERENCE the actual data elements, time periods, and values shown
4. GIVE actionable business recommendations based on the current view

Adapt your responses to match the type of dashboard being viewed:
- Financial performance dashboards: Focus on revenue, costs, margins, trends
- Healthcare/NHS data: Focus on patient counts, services, claims, efficiency
- Sales dashboards: Focus on performance, regions, products, growth
- Any other domain: Provide relevant analysis for that specific business area

Always reference the specific metrics, categories, and time periods visible in the current dashboard rather than assuming any particular data structure.
Use a professional, informative tone. Respond in a structured way with bullet points when appropriate.
If you don't know something, say so rather than making up information."""

_CONTEXT_CLOSING = "Based on this dashboard context, provide relevant insights and explanations about the data shown."
_CLOSING = "Based on all the above information, provide helpful, accurate explanations about the dashboard."


def build_system_prompt(
    context: DashboardContext | None,
    documents: Sequence[Document | str] = (),
    assistant_name: str = "RWA Assistant",
) -> str:
    """Assemble the system message for one chat turn.

    Args:
        context: Dashboard snapshot attached to the user's message, if any.
        documents: Retrieved documents (or raw snippets), best match first.
        assistant_name: Persona name used in the instructions.

    Returns:
        The complete system prompt.
    """
    parts = [_INSTRUCTIONS.format(name=assistant_name)]

    if context is not None:
        parts.append("CURRENT DASHBOARD CONTEXT:\n" + _format_context(context))

    if documents:
        blocks = []
        for i, doc in enumerate(documents, start=1):
            text = doc.content if isinstance(doc, Document) else str(doc)
            blocks.append(f"Document {i}:\n{text}")
        parts.append("RELEVANT DOCUMENTATION:\n" + "\n\n".join(blocks))

    parts.append(_CLOSING)
    return "\n\n".join(parts)


def recent_history(messages: Sequence[Message], limit: int = 10) -> list[dict[str, str]]:
    """Return the last *limit* messages as provider chat messages."""
    if limit <= 0:
        return []
    return [{"role": m.role, "content": m.content} for m in list(messages)[-limit:]]


# ------------------------------------------------------------------
# Context formatting
# ------------------------------------------------------------------


def _format_context(context: DashboardContext) -> str:
    lines: list[str] = []
    if context.title:
        lines.append(f"Dashboard Title: {context.title}")
    if context.active_sheet:
        lines.append(f"Current Sheet: {context.active_sheet}")

    if context.filters:
        lines.append("")
        lines.append("Applied Filters:")
        for f in context.filters:
            values = ", ".join(sorted(f.applied_values)) or "All values"
            line = f"- {f.field}: {values}"
            if f.worksheet:
                line += f" (on {f.worksheet})"
            lines.append(line)

    if context.parameters:
        lines.append("")
        lines.append("Parameter Settings:")
        for p in context.parameters:
            lines.append(f"- {p.name}: {p.current_value}")

    if context.worksheets:
        lines.append("")
        lines.append("Available Worksheets and Data:")
        for w in context.worksheets:
            header = f"- {w.name}"
            if w.error:
                header += " (data unavailable)"
            elif w.row_count:
                header += f" - {w.row_count} rows"
            lines.append(header)
            if w.fields:
                lines.append(f"  Columns: {', '.join(w.fields)}")
            if w.sample_rows:
                lines.append("  Sample data preview:")
                for n, row in enumerate(w.sample_rows[:SAMPLE_ROWS_IN_PROMPT], start=1):
                    values = ", ".join(f"{k}: {v}" for k, v in row.items())
                    lines.append(f"    Row {n}: {values}")

    if context.insights is not None:
        ins = context.insights
        lines.append("")
        lines.append(f"Dashboard Type: {ins.dashboard_type}")
        if ins.categories:
            lines.append(f"Data Categories: {', '.join(ins.categories)}")
        if ins.metrics:
            lines.append(f"Key Metrics: {', '.join(ins.metrics)}")

    lines.append("")
    lines.append(_CONTEXT_CLOSING)
    return "\n".join(lines)
