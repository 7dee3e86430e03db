"""Interfaces to the page that hosts the assistant.

The widget runs inside a browser page; these types describe what the detector
may ask of that page. A host adapter (or a test) supplies:

- a :class:`PageSnapshot`: URL, title, visible text, referrer, frame nesting,
  local storage;
- optionally an :class:`ExtensionAPI`, the structured dashboard-extension API;
- optionally a :class:`MessageChannel`, postMessage-style traffic with the
  parent frame.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol


@dataclass(frozen=True)
class PageSnapshot:
    """What the detector can observe about the hosting page."""

    url: str = ""
    title: str = ""
    text: str = ""
    referrer: str = ""
    in_frame: bool = False
    storage: Mapping[str, str] = field(default_factory=dict)
    has_tableau_marker: bool = False  # e.g. an element carrying data-tableau
    has_tableau_global: bool = False  # a global ``tableau`` object is defined

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PageSnapshot:
        storage = data.get("storage") or {}
        return cls(
            url=str(data.get("url", "")),
            title=str(data.get("title", "")),
            text=str(data.get("text", "")),
            referrer=str(data.get("referrer", "")),
            in_frame=bool(data.get("in_frame", data.get("inFrame", False))),
            storage={str(k): str(v) for k, v in dict(storage).items()},
            has_tableau_marker=bool(data.get("has_tableau_marker", False)),
            has_tableau_global=bool(data.get("has_tableau_global", False)),
        )

    @classmethod
    def load(cls, path: Path) -> PageSnapshot:
        """Read a snapshot from a JSON file."""
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))


# ------------------------------------------------------------------
# Structured extension API
# ------------------------------------------------------------------


class ChangeKind(str, enum.Enum):
    FILTER_CHANGED = "filter-changed"
    MARK_SELECTION_CHANGED = "mark-selection-changed"
    PARAMETER_CHANGED = "parameter-changed"


@dataclass(frozen=True)
class DataValue:
    """A summary-data cell; ``formatted_value`` is preferred for display."""

    value: Any
    formatted_value: str | None = None

    def display(self) -> str:
        if self.formatted_value:
            return self.formatted_value
        return "" if self.value is None else str(self.value)


@dataclass(frozen=True)
class SummaryData:
    columns: Sequence[str]
    rows: Sequence[Sequence[Any]]  # cells are DataValue or plain values
    total_row_count: int | None = None


@dataclass(frozen=True)
class FilterData:
    field_name: str
    applied_values: Sequence[Any] = ()  # DataValue or plain values
    filter_type: str = "categorical"


@dataclass(frozen=True)
class ParameterData:
    name: str
    current_value: Any = None  # DataValue or plain value
    allowable_values: Sequence[Any] | None = None
    data_type: str = "string"


class Worksheet(Protocol):
    name: str

    async def get_summary_data(self) -> SummaryData: ...

    async def get_filters(self) -> Sequence[FilterData]: ...


class ExtensionAPI(Protocol):
    """The dashboard-extension surface the detector and notifier consume."""

    @property
    def dashboard_name(self) -> str: ...

    async def initialize(self) -> None:
        """Complete the extension handshake; raises if the host refuses."""

    def worksheets(self) -> Sequence[Worksheet]: ...

    async def get_parameters(self) -> Sequence[ParameterData]: ...

    def add_event_listener(self, kind: ChangeKind, handler: Callable[[], None]) -> None: ...


# ------------------------------------------------------------------
# Cross-window messaging
# ------------------------------------------------------------------


@dataclass(frozen=True)
class MessageEvent:
    data: Any
    origin: str = ""


class MessageChannel(Protocol):
    """postMessage-style link to the parent frame."""

    def post(self, message: Mapping[str, Any], target_origin: str) -> None:
        """Send *message*; raises PermissionError when the parent is unreachable."""

    def add_listener(self, handler: Callable[[MessageEvent], None]) -> None: ...

    def remove_listener(self, handler: Callable[[MessageEvent], None]) -> None: ...


def cell_text(cell: Any) -> str:
    """Render a summary-data cell or filter value as display text."""
    if isinstance(cell, DataValue):
        return cell.display()
    if isinstance(cell, Mapping):
        formatted = cell.get("formattedValue")
        if formatted:
            return str(formatted)
        value = cell.get("value")
        return "" if value is None else str(value)
    return "" if cell is None else str(cell)
