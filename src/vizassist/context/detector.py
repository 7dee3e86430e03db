"""Dashboard context detection cascade.

Order per cycle:

1. passive blobs (URL parameter, then local storage)
2. the structured extension API, when one is supplied
3. the parent frame over postMessage, when framed with a channel
4. keyword classification of the page, when nothing structured succeeded

A tier that is unavailable or times out falls through to the next one.
Structured snapshots also carry the page classification, unless the
source already supplied its own insights.

Every boundary call has a timeout, so :meth:`ContextDetector.detect` always
returns a snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from vizassist.config import DetectorCfg
from vizassist.context.extension import ExtensionProbe
from vizassist.context.heuristics import DashboardClassifier, KeywordClassifier
from vizassist.context.host import ExtensionAPI, MessageChannel, PageSnapshot
from vizassist.context.messaging import OriginPolicy, ParentFrameProbe, check_parent_ready
from vizassist.context.models import DashboardContext
from vizassist.context.passive import StorageProbe, UrlParameterProbe
from vizassist.context.probes import Probe, first_success

logger = logging.getLogger(__name__)

SOURCE_HEURISTIC = "heuristic"


class ContextDetector:
    """Produce a :class:`DashboardContext` for the hosting page.

    Args:
        page: A page snapshot, or a callable returning the current one.
        extension: Structured extension API, when the host provides it.
        channel: Message channel to the parent frame, when available.
        classifier: Last-resort classifier (defaults to keywords).
        config: Timeouts, keys and origin allow-list.
    """

    def __init__(
        self,
        page: PageSnapshot | Callable[[], PageSnapshot],
        *,
        extension: ExtensionAPI | None = None,
        channel: MessageChannel | None = None,
        classifier: DashboardClassifier | None = None,
        config: DetectorCfg | None = None,
    ) -> None:
        self._page_source = page
        self.extension = extension
        self._channel = channel
        self._classifier = classifier or KeywordClassifier()
        self._cfg = config or DetectorCfg()
        self._policy = OriginPolicy(self._cfg.trusted_origins) if channel is not None else None
        self._latest: DashboardContext | None = None

    @property
    def latest(self) -> DashboardContext | None:
        """Snapshot from the most recent :meth:`detect` call."""
        return self._latest

    def _page(self) -> PageSnapshot:
        if isinstance(self._page_source, PageSnapshot):
            return self._page_source
        return self._page_source()

    def _structured_probes(self, page: PageSnapshot) -> list[Probe[DashboardContext]]:
        cfg = self._cfg
        probes: list[Probe[DashboardContext]] = [
            UrlParameterProbe(page, cfg.url_param, cfg.sample_rows),
            StorageProbe(page, cfg.storage_key, cfg.sample_rows),
        ]
        if self.extension is not None:
            probes.append(
                ExtensionProbe(
                    self.extension,
                    init_timeout=cfg.extension_timeout,
                    query_timeout=cfg.query_timeout,
                    sample_rows=cfg.sample_rows,
                )
            )
        if page.in_frame and self._channel is not None:
            probes.append(
                ParentFrameProbe(
                    self._channel,
                    policy=self._policy,
                    timeout=cfg.message_timeout,
                    source_tag=cfg.source_tag,
                    sample_rows=cfg.sample_rows,
                )
            )
        return probes

    async def detect(self) -> DashboardContext:
        page = self._page()
        result = await first_success(self._structured_probes(page))

        if result.ok and result.data is not None:
            context = result.data
            if not context.title and page.title:
                context = context.with_updates(title=page.title)
            if page.in_frame and not context.is_embedded:
                context = context.with_updates(is_embedded=True)
            if context.insights is None:
                context = context.with_updates(insights=self._classifier.classify(page))
        else:
            logger.debug("No structured context (%s); classifying page text", result.reason)
            context = DashboardContext(
                is_embedded=page.in_frame,
                title=page.title or None,
                insights=self._classifier.classify(page),
                source=SOURCE_HEURISTIC,
            )

        logger.info(
            "Detected dashboard context from %s (embedded=%s, worksheets=%d)",
            context.source,
            context.is_embedded,
            len(context.worksheets),
        )
        self._latest = context
        return context

    async def check_parent(self) -> bool:
        """Handshake with the parent frame; False when there is no channel."""
        if self._channel is None or not self._page().in_frame:
            return False
        return await check_parent_ready(
            self._channel,
            policy=self._policy,
            timeout=self._cfg.handshake_timeout,
            source_tag=self._cfg.source_tag,
        )
