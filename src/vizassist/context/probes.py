"""Tagged probe results and the "first success, else next" combinator.

Every detection strategy is an async probe returning a :class:`ProbeResult`.
Unavailable capabilities and timeouts are ordinary results, not exceptions,
so the cascade can fall through without try/except at each step.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProbeStatus(str, enum.Enum):
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ProbeResult(Generic[T]):
    """Outcome of one probe: ``data`` is set only on success."""

    status: ProbeStatus
    source: str
    data: T | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ProbeStatus.SUCCESS

    @classmethod
    def success(cls, source: str, data: T) -> ProbeResult[T]:
        return cls(ProbeStatus.SUCCESS, source, data)

    @classmethod
    def unavailable(cls, source: str, reason: str = "") -> ProbeResult[T]:
        return cls(ProbeStatus.UNAVAILABLE, source, reason=reason)

    @classmethod
    def timed_out(cls, source: str, seconds: float) -> ProbeResult[T]:
        return cls(ProbeStatus.TIMED_OUT, source, reason=f"no answer within {seconds:g}s")


Probe = Callable[[], Awaitable[ProbeResult[T]]]


async def with_timeout(awaitable: Awaitable[T], seconds: float) -> T:
    """Await *awaitable* for at most *seconds*; raises asyncio.TimeoutError."""
    return await asyncio.wait_for(awaitable, timeout=seconds)


async def run_probe(probe: Probe[T], name: str = "") -> ProbeResult[T]:
    """Run *probe*, converting any escaping exception into UNAVAILABLE."""
    label = name or getattr(probe, "__name__", repr(probe))
    try:
        result = await probe()
    except asyncio.TimeoutError:
        result = ProbeResult(ProbeStatus.TIMED_OUT, label, reason="probe timed out")
    except Exception as exc:
        logger.warning("Context probe %s failed: %s", label, exc)
        result = ProbeResult.unavailable(label, str(exc))
    logger.debug("Probe %s → %s %s", result.source, result.status.value, result.reason)
    return result


async def first_success(probes: Sequence[Probe[T]]) -> ProbeResult[T]:
    """Run *probes* in order and return the first successful result.

    Later probes are not started once one succeeds. When none succeeds the
    last result is returned (UNAVAILABLE with an empty source if *probes*
    is empty).
    """
    last: ProbeResult[T] = ProbeResult.unavailable("", "no probes configured")
    for probe in probes:
        last = await run_probe(probe)
        if last.ok:
            return last
    return last
