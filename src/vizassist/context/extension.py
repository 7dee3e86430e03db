"""Tier 1: read dashboard state through the structured extension API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from vizassist.context.host import DataValue, ExtensionAPI, SummaryData, Worksheet, cell_text
from vizassist.context.models import (
    DashboardContext,
    FilterInfo,
    ParameterInfo,
    WorksheetInfo,
    freeze_row,
)
from vizassist.context.probes import ProbeResult, with_timeout

logger = logging.getLogger(__name__)

SOURCE = "extension"


def value_text(value: Any) -> str:
    """Render a filter or parameter value, preferring the raw value."""
    if isinstance(value, DataValue):
        if value.value is not None:
            return str(value.value)
        return value.formatted_value or ""
    if isinstance(value, Mapping):
        raw = value.get("value")
        if raw is not None:
            return str(raw)
        return str(value.get("formattedValue") or "")
    return "" if value is None else str(value)


class ExtensionProbe:
    """Probe that queries worksheets, filters and parameters.

    Args:
        api: The host's extension API.
        init_timeout: Seconds allowed for ``initialize()``.
        query_timeout: Seconds allowed for each per-item query.
        sample_rows: Rows of summary data kept per worksheet.
    """

    def __init__(
        self,
        api: ExtensionAPI,
        *,
        init_timeout: float = 5.0,
        query_timeout: float = 5.0,
        sample_rows: int = 15,
    ) -> None:
        self._api = api
        self._init_timeout = init_timeout
        self._query_timeout = query_timeout
        self._sample_rows = sample_rows

    async def __call__(self) -> ProbeResult[DashboardContext]:
        try:
            await with_timeout(self._api.initialize(), self._init_timeout)
        except asyncio.TimeoutError:
            return ProbeResult.timed_out(SOURCE, self._init_timeout)
        except Exception as exc:
            return ProbeResult.unavailable(SOURCE, f"initialize failed: {exc}")

        sheets = list(self._api.worksheets())
        if not sheets:
            return ProbeResult.unavailable(SOURCE, "dashboard exposes no worksheets")

        worksheets: list[WorksheetInfo] = []
        filters: list[FilterInfo] = []
        for sheet in sheets:
            worksheets.append(await self._read_worksheet(sheet))
            filters.extend(await self._read_filters(sheet))
        parameters = await self._read_parameters()

        dashboard = self._api.dashboard_name or None
        return ProbeResult.success(
            SOURCE,
            DashboardContext(
                is_embedded=True,
                title=dashboard,
                active_sheet=sheets[0].name or dashboard,
                filters=tuple(filters),
                parameters=tuple(parameters),
                worksheets=tuple(worksheets),
                source=SOURCE,
            ),
        )

    async def _read_worksheet(self, sheet: Worksheet) -> WorksheetInfo:
        try:
            data: SummaryData = await with_timeout(sheet.get_summary_data(), self._query_timeout)
        except Exception as exc:
            logger.warning("Summary data for worksheet %r unavailable: %s", sheet.name, str(exc) or type(exc).__name__)
            return WorksheetInfo(name=sheet.name, error=True)

        columns = tuple(str(c) for c in data.columns)
        rows = []
        for raw in list(data.rows)[: self._sample_rows]:
            rows.append(freeze_row({col: cell_text(cell) for col, cell in zip(columns, raw)}))
        total = data.total_row_count if data.total_row_count is not None else len(data.rows)
        return WorksheetInfo(name=sheet.name, fields=columns, sample_rows=tuple(rows), row_count=total)

    async def _read_filters(self, sheet: Worksheet) -> list[FilterInfo]:
        try:
            raw: Sequence[Any] = await with_timeout(sheet.get_filters(), self._query_timeout)
        except Exception as exc:
            logger.warning("Filters for worksheet %r unavailable: %s", sheet.name, str(exc) or type(exc).__name__)
            return []
        return [
            FilterInfo(
                field=f.field_name,
                applied_values=frozenset(value_text(v) for v in f.applied_values),
                worksheet=sheet.name,
            )
            for f in raw
        ]

    async def _read_parameters(self) -> list[ParameterInfo]:
        try:
            raw = await with_timeout(self._api.get_parameters(), self._query_timeout)
        except Exception as exc:
            logger.warning("Dashboard parameters unavailable: %s", str(exc) or type(exc).__name__)
            return []
        params = []
        for p in raw:
            allowable = None
            if p.allowable_values is not None:
                allowable = frozenset(value_text(v) for v in p.allowable_values)
            params.append(
                ParameterInfo(name=p.name, current_value=value_text(p.current_value), allowable_values=allowable)
            )
        return params
