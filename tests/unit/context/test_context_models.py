"""Tests for dashboard context snapshot types."""

from __future__ import annotations

import pytest

from vizassist.context.models import (
    DashboardContext,
    DashboardInsights,
    FilterInfo,
    WorksheetInfo,
    freeze_row,
)


def test_default_context_is_empty_and_not_embedded():
    context = DashboardContext()
    assert not context.is_embedded
    assert not context.has_structured_data
    assert context.to_dict() == {"isEmbedded": False, "filters": [], "parameters": [], "worksheets": []}


def test_structured_data_requires_embedded():
    with pytest.raises(ValueError, match="not embedded"):
        DashboardContext(is_embedded=False, worksheets=(WorksheetInfo("Sheet 1"),))


def test_snapshot_is_immutable():
    context = DashboardContext(is_embedded=True, title="Sales")
    with pytest.raises(AttributeError):
        context.title = "Other"  # type: ignore[misc]
    row = freeze_row({"Region": "North", "Sales": 10})
    with pytest.raises(TypeError):
        row["Region"] = "South"  # type: ignore[index]
    assert row["Sales"] == "10"


def test_with_updates_returns_new_snapshot():
    context = DashboardContext(title="Sales")
    updated = context.with_updates(title="Margins")
    assert context.title == "Sales"
    assert updated.title == "Margins"


def test_to_dict_uses_camel_case():
    context = DashboardContext(
        is_embedded=True,
        title="Sales",
        active_sheet="Sheet 1",
        filters=(FilterInfo("Region", frozenset({"West", "East"}), "Sheet 1"),),
        worksheets=(WorksheetInfo("Sheet 1", ("Region",), (freeze_row({"Region": "East"}),), 12),),
        insights=DashboardInsights("General Financial Dashboard"),
        source="extension",
    )
    data = context.to_dict()

    assert data["activeSheet"] == "Sheet 1"
    assert data["filters"] == [{"field": "Region", "appliedValues": ["East", "West"], "worksheet": "Sheet 1"}]
    assert data["worksheets"][0] == {
        "name": "Sheet 1",
        "fields": ["Region"],
        "sampleRows": [{"Region": "East"}],
        "rowCount": 12,
    }
    assert data["insights"]["dashboardType"] == "General Financial Dashboard"
    assert data["source"] == "extension"


def test_from_dict_accepts_legacy_key_names():
    data = {
        "title": "Claims",
        "currentSheet": "Overview",
        "filters": [{"fieldName": "Year", "values": ["2024"], "worksheetName": "Overview"}],
        "elements": [
            {
                "title": "Overview",
                "columns": [{"fieldName": "Year"}, {"fieldName": "Claims"}],
                "sampleData": [{"Year": 2024, "Claims": 7}],
                "totalRows": 3,
            }
        ],
    }
    context = DashboardContext.from_dict(data)

    assert context.is_embedded
    assert context.active_sheet == "Overview"
    assert context.filters[0] == FilterInfo("Year", frozenset({"2024"}), "Overview")
    sheet = context.worksheets[0]
    assert sheet.fields == ("Year", "Claims")
    assert dict(sheet.sample_rows[0]) == {"Year": "2024", "Claims": "7"}
    assert sheet.row_count == 3


def test_from_dict_skips_malformed_entries_and_truncates_rows():
    data = {
        "filters": ["oops", {"appliedValues": ["x"]}, {"field": "Region", "appliedValues": None}],
        "worksheets": [{"name": "S", "sampleRows": [{"a": i} for i in range(30)]}, 5],
    }
    context = DashboardContext.from_dict(data, sample_rows=15)

    assert [f.field for f in context.filters] == ["Region"]
    assert context.filters[0].applied_values == frozenset()
    assert len(context.worksheets) == 1
    assert len(context.worksheets[0].sample_rows) == 15
    assert context.worksheets[0].fields == ("a",)


def test_from_dict_round_trips_to_dict():
    original = DashboardContext(
        is_embedded=True,
        title="Sales",
        filters=(FilterInfo("Region", frozenset({"East"})),),
        source="url-parameter",
    )
    assert DashboardContext.from_dict(original.to_dict()) == original


def test_from_dict_rejects_non_mapping():
    with pytest.raises(TypeError):
        DashboardContext.from_dict(["not", "a", "dict"])  # type: ignore[arg-type]
