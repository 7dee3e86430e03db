"""Tests for probe results and the first-success combinator."""

from __future__ import annotations

import asyncio

import pytest

from vizassist.context.probes import (
    ProbeResult,
    ProbeStatus,
    first_success,
    run_probe,
    with_timeout,
)


def _probe(result, calls):
    async def probe():
        calls.append(result.source)
        return result

    return probe


def test_first_success_stops_at_first_ok():
    calls: list[str] = []
    probes = [
        _probe(ProbeResult.unavailable("a", "nope"), calls),
        _probe(ProbeResult.success("b", 42), calls),
        _probe(ProbeResult.success("c", 99), calls),
    ]
    result = asyncio.run(first_success(probes))

    assert result.ok and result.data == 42 and result.source == "b"
    assert calls == ["a", "b"]


def test_first_success_returns_last_failure():
    calls: list[str] = []
    probes = [
        _probe(ProbeResult.unavailable("a"), calls),
        _probe(ProbeResult.timed_out("b", 1.5), calls),
    ]
    result = asyncio.run(first_success(probes))

    assert result.status is ProbeStatus.TIMED_OUT
    assert "1.5s" in result.reason
    assert result.data is None


def test_first_success_with_no_probes():
    result = asyncio.run(first_success([]))
    assert result.status is ProbeStatus.UNAVAILABLE


def test_raising_probe_becomes_unavailable():
    async def broken():
        raise RuntimeError("host exploded")

    result = asyncio.run(run_probe(broken, "broken"))
    assert result.status is ProbeStatus.UNAVAILABLE
    assert result.source == "broken"
    assert "host exploded" in result.reason


def test_escaping_timeout_becomes_timed_out():
    async def slow():
        return await with_timeout(asyncio.sleep(1), 0.01)

    result = asyncio.run(run_probe(slow, "slow"))
    assert result.status is ProbeStatus.TIMED_OUT


def test_with_timeout_raises():
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(with_timeout(asyncio.sleep(1), 0.01))
