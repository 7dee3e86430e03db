"""Tests for parent-frame messaging and the origin allow-list."""

from __future__ import annotations

import asyncio

import pytest

from vizassist.context.messaging import (
    DATA_REPLY,
    REQUEST_DATA,
    REQUEST_STATUS,
    STATUS_REPLY,
    OriginPolicy,
    ParentFrameProbe,
    check_parent_ready,
)
from vizassist.context.probes import ProbeStatus

_PAYLOAD = {"title": "Claims", "worksheets": [{"name": "Claims by Month", "fields": ["Month"]}]}


# ------------------------------------------------------------------
# OriginPolicy
# ------------------------------------------------------------------


def test_wildcard_policy_accepts_anything_and_warns(caplog):
    with caplog.at_level("WARNING"):
        policy = OriginPolicy()
    assert policy.accepts("https://evil.example")
    assert policy.target_origin == "*"
    assert "any origin" in caplog.text


def test_allow_list_policy():
    policy = OriginPolicy(["https://tableau.example.com"])
    assert policy.accepts("https://tableau.example.com")
    assert not policy.accepts("https://evil.example")
    assert policy.target_origin == "https://tableau.example.com"


def test_multiple_origins_post_with_wildcard_target():
    policy = OriginPolicy(["https://a.example", "https://b.example"])
    assert policy.target_origin == "*"
    assert not policy.accepts("https://c.example")


def test_empty_allow_list_rejected():
    with pytest.raises(ValueError):
        OriginPolicy([])


# ------------------------------------------------------------------
# ParentFrameProbe
# ------------------------------------------------------------------


def test_parent_reply_is_parsed(make_channel):
    channel = make_channel({REQUEST_DATA: ({"type": DATA_REPLY, "data": _PAYLOAD}, "https://tableau.example.com")})
    result = asyncio.run(ParentFrameProbe(channel, source_tag="rwa_assistant")())

    assert result.ok
    assert result.data.is_embedded
    assert result.data.worksheets[0].name == "Claims by Month"
    assert result.data.source == "parent-frame"

    message, target = channel.posted[0]
    assert message["type"] == REQUEST_DATA
    assert message["source"] == "rwa_assistant"
    assert isinstance(message["timestamp"], int)
    assert target == "*"
    assert channel.listeners == []


def test_no_reply_times_out(make_channel):
    channel = make_channel()
    result = asyncio.run(ParentFrameProbe(channel, timeout=0.05)())

    assert result.status is ProbeStatus.TIMED_OUT
    assert channel.listeners == []


def test_post_refused_is_unavailable(make_channel):
    result = asyncio.run(ParentFrameProbe(make_channel(refuse=True))())
    assert result.status is ProbeStatus.UNAVAILABLE


def test_untrusted_origin_reply_is_ignored(make_channel):
    channel = make_channel({REQUEST_DATA: ({"type": DATA_REPLY, "data": _PAYLOAD}, "https://evil.example")})
    policy = OriginPolicy(["https://tableau.example.com"])
    result = asyncio.run(ParentFrameProbe(channel, policy=policy, timeout=0.05)())

    assert result.status is ProbeStatus.TIMED_OUT
    assert channel.posted[0][1] == "https://tableau.example.com"


def test_non_object_payload_is_unavailable(make_channel):
    channel = make_channel({REQUEST_DATA: ({"type": DATA_REPLY, "data": "oops"}, "https://x")})
    result = asyncio.run(ParentFrameProbe(channel)())
    assert result.status is ProbeStatus.UNAVAILABLE


# ------------------------------------------------------------------
# Handshake
# ------------------------------------------------------------------


def test_handshake_ready(make_channel):
    channel = make_channel({REQUEST_STATUS: ({"type": STATUS_REPLY}, "https://x")})
    assert asyncio.run(check_parent_ready(channel)) is True
    assert channel.posted[0][0]["type"] == REQUEST_STATUS


def test_handshake_silent_or_refused(make_channel):
    assert asyncio.run(check_parent_ready(make_channel(), timeout=0.05)) is False
    assert asyncio.run(check_parent_ready(make_channel(refuse=True))) is False
