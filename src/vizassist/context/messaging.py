"""Tier 2: ask the parent frame for dashboard data over postMessage."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from vizassist.context.host import MessageChannel, MessageEvent
from vizassist.context.models import DashboardContext
from vizassist.context.probes import ProbeResult, with_timeout

logger = logging.getLogger(__name__)

SOURCE = "parent-frame"

REQUEST_DATA = "request_dashboard_data"
DATA_REPLY = "tableau_dashboard_data"
REQUEST_STATUS = "request_tableau_status"
STATUS_REPLY = "tableau_ready"

WILDCARD = "*"


class OriginPolicy:
    """Allow-list deciding which origins we talk to.

    A list containing ``"*"`` accepts any inbound origin and posts with a
    wildcard target.
    """

    def __init__(self, trusted_origins: Sequence[str] = (WILDCARD,)) -> None:
        if not trusted_origins:
            raise ValueError("trusted_origins must not be empty")
        self._origins = tuple(trusted_origins)
        if self.is_wildcard:
            logger.warning(
                "Cross-window messaging accepts any origin; set detector.trusted_origins to restrict it"
            )

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD in self._origins

    def accepts(self, origin: str) -> bool:
        return self.is_wildcard or origin in self._origins

    @property
    def target_origin(self) -> str:
        concrete = [o for o in self._origins if o != WILDCARD]
        if len(concrete) == 1 and not self.is_wildcard:
            return concrete[0]
        return WILDCARD


def _message(kind: str, source_tag: str) -> dict[str, Any]:
    return {"type": kind, "source": source_tag, "timestamp": int(time.time() * 1000)}


async def exchange(
    channel: MessageChannel,
    request: Mapping[str, Any],
    reply_type: str,
    *,
    policy: OriginPolicy,
    timeout: float,
) -> Any:
    """Post *request* and wait for the first trusted reply of *reply_type*.

    Returns the reply's ``data`` payload (or the whole message when it has
    none). The listener is always removed before returning.

    Raises:
        PermissionError: If the channel refuses to post.
        asyncio.TimeoutError: If no reply arrives within *timeout* seconds.
    """
    loop = asyncio.get_running_loop()
    reply: asyncio.Future[Any] = loop.create_future()

    def on_message(event: MessageEvent) -> None:
        if reply.done() or not isinstance(event.data, Mapping):
            return
        if event.data.get("type") != reply_type:
            return
        if not policy.accepts(event.origin):
            logger.debug("Ignoring %s from untrusted origin %r", reply_type, event.origin)
            return
        reply.set_result(event.data.get("data", event.data))

    channel.add_listener(on_message)
    try:
        channel.post(request, policy.target_origin)
        return await with_timeout(reply, timeout)
    finally:
        channel.remove_listener(on_message)


class ParentFrameProbe:
    """Request a structured context from the parent frame."""

    def __init__(
        self,
        channel: MessageChannel,
        *,
        policy: OriginPolicy | None = None,
        timeout: float = 1.5,
        source_tag: str = "rwa_assistant",
        sample_rows: int = 15,
    ) -> None:
        self._channel = channel
        self._policy = policy or OriginPolicy()
        self._timeout = timeout
        self._source_tag = source_tag
        self._sample_rows = sample_rows

    async def __call__(self) -> ProbeResult[DashboardContext]:
        try:
            payload = await exchange(
                self._channel,
                _message(REQUEST_DATA, self._source_tag),
                DATA_REPLY,
                policy=self._policy,
                timeout=self._timeout,
            )
        except PermissionError as exc:
            return ProbeResult.unavailable(SOURCE, f"cannot reach parent frame: {exc}")
        except asyncio.TimeoutError:
            return ProbeResult.timed_out(SOURCE, self._timeout)

        if not isinstance(payload, Mapping):
            return ProbeResult.unavailable(SOURCE, "parent replied without a context object")
        context = DashboardContext.from_dict(
            payload, is_embedded=True, source=SOURCE, sample_rows=self._sample_rows
        )
        return ProbeResult.success(SOURCE, context)


async def check_parent_ready(
    channel: MessageChannel,
    *,
    policy: OriginPolicy | None = None,
    timeout: float = 2.0,
    source_tag: str = "rwa_assistant",
) -> bool:
    """Return True if the parent frame answers the status handshake in time."""
    try:
        await exchange(
            channel,
            _message(REQUEST_STATUS, source_tag),
            STATUS_REPLY,
            policy=policy or OriginPolicy(),
            timeout=timeout,
        )
    except PermissionError:
        return False
    except asyncio.TimeoutError:
        return False
    return True
