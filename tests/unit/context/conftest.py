"""Fake host objects for context detection tests."""

from __future__ import annotations

import asyncio

import pytest

from vizassist.context.host import (
    ChangeKind,
    DataValue,
    FilterData,
    MessageEvent,
    ParameterData,
    SummaryData,
)


class FakeWorksheet:
    def __init__(self, name, columns=(), rows=(), total=None, filters=(), fail_data=False, fail_filters=False):
        self.name = name
        self._data = SummaryData(columns, rows, total)
        self._filters = list(filters)
        self._fail_data = fail_data
        self._fail_filters = fail_filters

    async def get_summary_data(self):
        if self._fail_data:
            raise RuntimeError("summary query failed")
        return self._data

    async def get_filters(self):
        if self._fail_filters:
            raise RuntimeError("filter query failed")
        return self._filters


class FakeExtension:
    """In-process stand-in for the dashboard-extension API."""

    def __init__(
        self,
        sheets=(),
        parameters=(),
        dashboard_name="Sales Overview",
        init_delay=0.0,
        init_error=None,
        fail_parameters=False,
    ):
        self._sheets = list(sheets)
        self._parameters = list(parameters)
        self._dashboard_name = dashboard_name
        self._init_delay = init_delay
        self._init_error = init_error
        self._fail_parameters = fail_parameters
        self.listeners: dict[ChangeKind, list] = {}
        self.initialized = False

    @property
    def dashboard_name(self):
        return self._dashboard_name

    async def initialize(self):
        if self._init_delay:
            await asyncio.sleep(self._init_delay)
        if self._init_error is not None:
            raise self._init_error
        self.initialized = True

    def worksheets(self):
        return self._sheets

    async def get_parameters(self):
        if self._fail_parameters:
            raise RuntimeError("parameter query failed")
        return self._parameters

    def add_event_listener(self, kind, handler):
        self.listeners.setdefault(kind, []).append(handler)

    def emit(self, kind):
        for handler in self.listeners.get(kind, []):
            handler()


class FakeChannel:
    """Message channel whose parent answers according to ``replies``.

    ``replies`` maps a request type to ``(reply_message, origin)``; requests
    without an entry get no answer.
    """

    def __init__(self, replies=None, refuse=False):
        self.replies = dict(replies or {})
        self.refuse = refuse
        self.posted: list[tuple[dict, str]] = []
        self.listeners: list = []

    def post(self, message, target_origin):
        if self.refuse:
            raise PermissionError("cross-origin parent")
        self.posted.append((dict(message), target_origin))
        reply = self.replies.get(message["type"])
        if reply is not None:
            data, origin = reply
            loop = asyncio.get_running_loop()
            for handler in list(self.listeners):
                loop.call_soon(handler, MessageEvent(data, origin))

    def add_listener(self, handler):
        self.listeners.append(handler)

    def remove_listener(self, handler):
        self.listeners.remove(handler)


@pytest.fixture
def sales_extension() -> FakeExtension:
    sheet = FakeWorksheet(
        "Sales by Region",
        columns=("Region", "Sales"),
        rows=[(DataValue("North", "North"), DataValue(1234.5, "$1,234.50")) for _ in range(20)],
        total=250,
        filters=[FilterData("Region", (DataValue("North", "North (NE)"), DataValue("East")))],
    )
    trend = FakeWorksheet("Monthly Trend", columns=("Month", "Sales"), rows=[("Jan", 10), ("Feb", 12)])
    params = [ParameterData("Top N", DataValue(10, "10"), allowable_values=(5, 10, 20))]
    return FakeExtension([sheet, trend], params)


@pytest.fixture
def make_sheet():
    return FakeWorksheet


@pytest.fixture
def make_extension():
    return FakeExtension


@pytest.fixture
def make_channel():
    return FakeChannel
