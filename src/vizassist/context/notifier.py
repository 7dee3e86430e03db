"""Debounced dashboard-change notification."""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Union

from vizassist.context.host import ChangeKind, ExtensionAPI

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], Union[None, Awaitable[None]]]


class NotifierState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"


class ChangeNotifier:
    """Collapse bursts of dashboard events into one callback.

    Every event cancels the pending timer and arms a new one, so the
    callback fires once, *delay* seconds after the last event of a burst.
    Must be used from a running asyncio loop.
    """

    def __init__(self, callback: ChangeCallback | None = None, delay: float = 0.5) -> None:
        if delay <= 0:
            raise ValueError("delay must be > 0")
        self._callback = callback
        self._delay = delay
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def state(self) -> NotifierState:
        return NotifierState.PENDING if self._timer is not None else NotifierState.IDLE

    def set_callback(self, callback: ChangeCallback | None) -> None:
        self._callback = callback

    def attach(self, extension: ExtensionAPI) -> None:
        """Subscribe to every change kind the extension API emits."""
        for kind in ChangeKind:
            extension.add_event_listener(kind, self.notify)

    def notify(self) -> None:
        """Record one change event and (re)arm the debounce timer."""
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._delay, self._fire)

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        callback = self._callback
        if callback is None:
            return
        try:
            outcome = callback()
        except Exception:
            logger.exception("Dashboard change callback failed")
            return
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Dashboard change callback failed: %s", task.exception())
