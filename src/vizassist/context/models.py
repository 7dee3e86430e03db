"""Dashboard context snapshot types.

A ``DashboardContext`` is produced fresh by every detection cycle and never
mutated; a newer snapshot replaces it. Collections are tuples, frozensets and
read-only mappings so a snapshot cannot be edited in place.

Wire format is camelCase (``isEmbedded``, ``appliedValues``, ``sampleRows``...).
``from_dict`` also accepts the key names older widget builds sent
(``fieldName``, ``worksheetName``, ``values``, ``elements``, ``currentSheet``).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class FilterInfo:
    field: str
    applied_values: frozenset[str] = frozenset()
    worksheet: str | None = None


@dataclass(frozen=True)
class ParameterInfo:
    name: str
    current_value: str
    allowable_values: frozenset[str] | None = None


@dataclass(frozen=True)
class WorksheetInfo:
    """One worksheet's shape and sample data.

    ``error`` marks a worksheet whose data query failed; its fields and
    sample rows are then empty.
    """

    name: str
    fields: tuple[str, ...] = ()
    sample_rows: tuple[Mapping[str, str], ...] = ()
    row_count: int | None = None
    error: bool = False


@dataclass(frozen=True)
class DashboardInsights:
    """Coarse classification inferred from page text (no structured data)."""

    dashboard_type: str
    categories: tuple[str, ...] = ()
    metrics: tuple[str, ...] = ()
    tableau_detected: bool = False


@dataclass(frozen=True)
class DashboardContext:
    """Best-effort snapshot of what the user is looking at.

    Raises:
        ValueError: If ``is_embedded`` is False while filters, parameters or
            worksheets are present.
    """

    is_embedded: bool = False
    title: str | None = None
    active_sheet: str | None = None
    filters: tuple[FilterInfo, ...] = ()
    parameters: tuple[ParameterInfo, ...] = ()
    worksheets: tuple[WorksheetInfo, ...] = ()
    insights: DashboardInsights | None = None
    source: str | None = None

    def __post_init__(self) -> None:
        if not self.is_embedded and self.has_structured_data:
            raise ValueError(
                "a context that is not embedded cannot carry filters, parameters or worksheets"
            )

    @property
    def has_structured_data(self) -> bool:
        return bool(self.filters or self.parameters or self.worksheets)

    def with_updates(self, **changes: Any) -> DashboardContext:
        """Return a new snapshot with *changes* applied."""
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase wire shape; absent optionals are omitted."""
        data: dict[str, Any] = {"isEmbedded": self.is_embedded}
        if self.title is not None:
            data["title"] = self.title
        if self.active_sheet is not None:
            data["activeSheet"] = self.active_sheet
        data["filters"] = [_filter_to_dict(f) for f in self.filters]
        data["parameters"] = [_parameter_to_dict(p) for p in self.parameters]
        data["worksheets"] = [_worksheet_to_dict(w) for w in self.worksheets]
        if self.insights is not None:
            data["insights"] = {
                "dashboardType": self.insights.dashboard_type,
                "categories": list(self.insights.categories),
                "metrics": list(self.insights.metrics),
                "tableauDetected": self.insights.tableau_detected,
            }
        if self.source is not None:
            data["source"] = self.source
        return data

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        *,
        is_embedded: bool | None = None,
        source: str | None = None,
        sample_rows: int | None = None,
    ) -> DashboardContext:
        """Parse a wire-shaped mapping leniently.

        Unknown keys are ignored and malformed entries are skipped. When
        *is_embedded* is None the ``isEmbedded`` key is used; a payload
        carrying structured data is always treated as embedded.

        Raises:
            TypeError: If *data* is not a mapping.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"dashboard context must be an object, got {type(data).__name__}")

        filters = tuple(_parse_filters(data.get("filters")))
        parameters = tuple(_parse_parameters(data.get("parameters")))
        raw_sheets = data.get("worksheets")
        if raw_sheets is None:
            raw_sheets = data.get("elements")
        worksheets = tuple(_parse_worksheets(raw_sheets, sample_rows))

        embedded = bool(data.get("isEmbedded", False)) if is_embedded is None else is_embedded
        if filters or parameters or worksheets:
            embedded = True

        active = data.get("activeSheet", data.get("currentSheet"))
        title = data.get("title")
        return cls(
            is_embedded=embedded,
            title=str(title) if title else None,
            active_sheet=str(active) if active else None,
            filters=filters,
            parameters=parameters,
            worksheets=worksheets,
            insights=_parse_insights(data.get("insights")),
            source=source if source is not None else data.get("source"),
        )


# ------------------------------------------------------------------
# Serialisation helpers
# ------------------------------------------------------------------


def _filter_to_dict(f: FilterInfo) -> dict[str, Any]:
    data: dict[str, Any] = {"field": f.field, "appliedValues": sorted(f.applied_values)}
    if f.worksheet is not None:
        data["worksheet"] = f.worksheet
    return data


def _parameter_to_dict(p: ParameterInfo) -> dict[str, Any]:
    data: dict[str, Any] = {"name": p.name, "currentValue": p.current_value}
    if p.allowable_values is not None:
        data["allowableValues"] = sorted(p.allowable_values)
    return data


def _worksheet_to_dict(w: WorksheetInfo) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": w.name,
        "fields": list(w.fields),
        "sampleRows": [dict(r) for r in w.sample_rows],
    }
    if w.row_count is not None:
        data["rowCount"] = w.row_count
    if w.error:
        data["error"] = True
    return data


def _strings(values: Any) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, (str, bytes)):
        return frozenset([str(values)])
    if not isinstance(values, Iterable):
        return frozenset([str(values)])
    return frozenset(str(v) for v in values if v is not None)


def _as_list(raw: Any) -> list[Any]:
    return list(raw) if isinstance(raw, (list, tuple)) else []


def _parse_filters(raw: Any) -> Iterable[FilterInfo]:
    for item in _as_list(raw):
        if not isinstance(item, Mapping):
            continue
        name = item.get("field", item.get("fieldName"))
        if not name:
            continue
        values = item.get("appliedValues", item.get("values"))
        worksheet = item.get("worksheet", item.get("worksheetName"))
        yield FilterInfo(
            field=str(name),
            applied_values=_strings(values),
            worksheet=str(worksheet) if worksheet else None,
        )


def _parse_parameters(raw: Any) -> Iterable[ParameterInfo]:
    for item in _as_list(raw):
        if not isinstance(item, Mapping) or not item.get("name"):
            continue
        allowable = item.get("allowableValues")
        current = item.get("currentValue")
        yield ParameterInfo(
            name=str(item["name"]),
            current_value="" if current is None else str(current),
            allowable_values=_strings(allowable) if allowable is not None else None,
        )


def _parse_worksheets(raw: Any, sample_rows: int | None) -> Iterable[WorksheetInfo]:
    for item in _as_list(raw):
        if not isinstance(item, Mapping):
            continue
        name = item.get("name", item.get("title"))
        if not name:
            continue
        fields = _parse_fields(item.get("fields", item.get("columns")))
        rows = _parse_rows(item.get("sampleRows", item.get("sampleData")))
        if sample_rows is not None:
            rows = rows[:sample_rows]
        if not fields and rows:
            fields = tuple(rows[0].keys())
        row_count = item.get("rowCount", item.get("totalRows"))
        yield WorksheetInfo(
            name=str(name),
            fields=fields,
            sample_rows=rows,
            row_count=int(row_count) if isinstance(row_count, (int, float)) else None,
            error=bool(item.get("error", False)),
        )


def _parse_fields(raw: Any) -> tuple[str, ...]:
    fields: list[str] = []
    for col in _as_list(raw):
        if isinstance(col, Mapping):
            col = col.get("fieldName", col.get("name"))
        if col:
            fields.append(str(col))
    return tuple(fields)


def _parse_rows(raw: Any) -> tuple[Mapping[str, str], ...]:
    return tuple(
        freeze_row(row) for row in _as_list(raw) if isinstance(row, Mapping)
    )


def freeze_row(row: Mapping[str, Any]) -> Mapping[str, str]:
    """Return a read-only str→str copy of a sample row."""
    return MappingProxyType({str(k): "" if v is None else str(v) for k, v in row.items()})


def _parse_insights(raw: Any) -> DashboardInsights | None:
    if not isinstance(raw, Mapping) or not raw.get("dashboardType"):
        return None
    return DashboardInsights(
        dashboard_type=str(raw["dashboardType"]),
        categories=tuple(str(c) for c in _as_list(raw.get("categories"))),
        metrics=tuple(str(m) for m in _as_list(raw.get("metrics"))),
        tableau_detected=bool(raw.get("tableauDetected", False)),
    )


__all__ = [
    "DashboardContext",
    "DashboardInsights",
    "FilterInfo",
    "ParameterInfo",
    "WorksheetInfo",
    "freeze_row",
]
