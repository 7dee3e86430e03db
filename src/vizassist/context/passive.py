"""Passive channel probes: cached context blobs in the URL or local storage.

Cheap and synchronous underneath, so they run before any costlier tier. A
blob may be a full context object or a bare list of data rows.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlsplit

from vizassist.context.host import PageSnapshot
from vizassist.context.models import DashboardContext
from vizassist.context.probes import ProbeResult

SOURCE_URL = "url-parameter"
SOURCE_STORAGE = "local-storage"

_ROWS_WORKSHEET = "Dashboard Data"


def parse_blob(
    raw: str,
    *,
    source: str,
    in_frame: bool,
    sample_rows: int,
) -> DashboardContext:
    """Decode a cached JSON blob into a context snapshot.

    Raises:
        ValueError: If *raw* is not JSON, or is neither an object nor a list
            of row objects.
    """
    payload: Any = json.loads(raw)
    if isinstance(payload, list):
        rows = [r for r in payload if isinstance(r, Mapping)]
        if not rows:
            raise ValueError("cached row list is empty")
        payload = {
            "worksheets": [
                {
                    "name": _ROWS_WORKSHEET,
                    "fields": list(rows[0].keys()),
                    "sampleRows": rows,
                    "rowCount": len(rows),
                }
            ]
        }
    if not isinstance(payload, Mapping):
        raise ValueError(f"cached context must be an object or row list, got {type(payload).__name__}")

    context = DashboardContext.from_dict(payload, source=source, sample_rows=sample_rows)
    if in_frame and not context.is_embedded:
        context = context.with_updates(is_embedded=True)
    if not context.has_structured_data and not context.title:
        raise ValueError("cached context carries no dashboard data")
    return context


class UrlParameterProbe:
    """Look for a context blob in a query parameter of the page URL."""

    def __init__(self, page: PageSnapshot, param: str = "tableauData", sample_rows: int = 15) -> None:
        self._page = page
        self._param = param
        self._sample_rows = sample_rows

    async def __call__(self) -> ProbeResult[DashboardContext]:
        # parse_qs already percent-decodes the value
        values = parse_qs(urlsplit(self._page.url).query).get(self._param)
        if not values:
            return ProbeResult.unavailable(SOURCE_URL, f"no '{self._param}' parameter")
        try:
            context = parse_blob(
                values[0],
                source=SOURCE_URL,
                in_frame=self._page.in_frame,
                sample_rows=self._sample_rows,
            )
        except ValueError as exc:
            return ProbeResult.unavailable(SOURCE_URL, f"malformed '{self._param}': {exc}")
        return ProbeResult.success(SOURCE_URL, context)


class StorageProbe:
    """Look for a context blob persisted under a local-storage key."""

    def __init__(
        self, page: PageSnapshot, key: str = "tableauDashboardData", sample_rows: int = 15
    ) -> None:
        self._page = page
        self._key = key
        self._sample_rows = sample_rows

    async def __call__(self) -> ProbeResult[DashboardContext]:
        raw = self._page.storage.get(self._key)
        if not raw:
            return ProbeResult.unavailable(SOURCE_STORAGE, f"no '{self._key}' entry")
        try:
            context = parse_blob(
                raw,
                source=SOURCE_STORAGE,
                in_frame=self._page.in_frame,
                sample_rows=self._sample_rows,
            )
        except ValueError as exc:
            return ProbeResult.unavailable(SOURCE_STORAGE, f"malformed '{self._key}': {exc}")
        return ProbeResult.success(SOURCE_STORAGE, context)
