"""Widget session: keep a fresh dashboard snapshot for the chat widget."""

from __future__ import annotations

import logging
from collections.abc import Callable

from vizassist.config import VizAssistConfig
from vizassist.context.detector import ContextDetector
from vizassist.context.heuristics import DashboardClassifier
from vizassist.context.host import ExtensionAPI, MessageChannel, PageSnapshot
from vizassist.context.models import DashboardContext
from vizassist.context.notifier import ChangeNotifier

logger = logging.getLogger(__name__)

ContextListener = Callable[[DashboardContext], None]


class WidgetSession:
    """Detect once at start, then re-detect after each debounced change."""

    def __init__(self, detector: ContextDetector, notifier_delay: float = 0.5) -> None:
        self.detector = detector
        self.notifier = ChangeNotifier(self._on_change, delay=notifier_delay)
        self._listeners: list[ContextListener] = []
        self._started = False

    @classmethod
    def from_config(
        cls,
        page: PageSnapshot | Callable[[], PageSnapshot],
        config: VizAssistConfig,
        *,
        extension: ExtensionAPI | None = None,
        channel: MessageChannel | None = None,
        classifier: DashboardClassifier | None = None,
    ) -> WidgetSession:
        """Build a detector from the detector: section and debounce from notifier:."""
        detector = ContextDetector(
            page,
            extension=extension,
            channel=channel,
            classifier=classifier,
            config=config.detector,
        )
        return cls(detector, notifier_delay=config.notifier.debounce)

    @property
    def context(self) -> DashboardContext | None:
        return self.detector.latest

    def add_listener(self, listener: ContextListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ContextListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start(self) -> DashboardContext:
        context = await self.refresh()
        if not self._started and self.detector.extension is not None:
            self.notifier.attach(self.detector.extension)
        self._started = True
        return context

    async def refresh(self) -> DashboardContext:
        """Re-run detection and tell every listener about the new snapshot."""
        context = await self.detector.detect()
        for listener in list(self._listeners):
            try:
                listener(context)
            except Exception:
                logger.exception("Context listener failed")
        return context

    async def _on_change(self) -> None:
        logger.debug("Dashboard changed; refreshing context")
        await self.refresh()

    def close(self) -> None:
        self.notifier.close()
