from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from database.models import Endpoint, Observation, ProbeStatus
from monitoring.alerts import Notifier, format_alert_message


ENDPOINT = Endpoint(id=7, address="https://example.com")


def _obs(status: ProbeStatus, latency_ms=None, detail: str = "Status code: 200") -> Observation:
    return Observation(
        id=1,
        endpoint_id=ENDPOINT.id,
        status=status,
        latency_ms=latency_ms,
        detail=detail,
        observed_at=datetime(2024, 1, 1, 12, 30, 0),
    )


PREVIOUS = _obs(ProbeStatus.UP, latency_ms=120)
CURRENT = _obs(ProbeStatus.DOWN, detail="Request timed out after 15 seconds.")


def test_message_contains_transition_address_and_detail() -> None:
    text = format_alert_message(ENDPOINT, PREVIOUS, CURRENT)

    assert text.splitlines() == [
        "🚨 Uptime Alert",
        "",
        "Status Change: UP → DOWN",
        "Site: https://example.com",
        "Response Time: N/A",
        "Details: Request timed out after 15 seconds.",
        "Checked at: 2024-01-01 12:30:00 UTC",
    ]


def test_message_includes_latency_when_present() -> None:
    text = format_alert_message(ENDPOINT, CURRENT, PREVIOUS)

    assert "Status Change: DOWN → UP" in text
    assert "Response Time: 120ms" in text


@pytest.mark.asyncio
async def test_cooldown_suppresses_then_releases(transport, clock) -> None:
    notifier = Notifier(transport, cooldown=3600, clock=clock)

    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is True
    clock.advance(minutes=59)
    assert await notifier.notify("chat-1", ENDPOINT, CURRENT, PREVIOUS) is False
    clock.advance(minutes=1)
    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is True

    assert len(transport.sent_to("chat-1")) == 2
    assert notifier.get_stats()["suppressed"] == 1


@pytest.mark.asyncio
async def test_failed_delivery_does_not_consume_cooldown(transport, clock) -> None:
    notifier = Notifier(transport, cooldown=3600, clock=clock)
    transport.fail_for.add("chat-1")

    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is False
    assert notifier.last_sent(ENDPOINT.id, "chat-1") is None

    transport.fail_for.clear()
    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is True
    assert notifier.last_sent(ENDPOINT.id, "chat-1") == clock.now


@pytest.mark.asyncio
async def test_raising_transport_returns_false(transport, clock) -> None:
    notifier = Notifier(transport, cooldown=3600, clock=clock)
    transport.raise_for.add("chat-1")

    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is False
    assert notifier.last_sent(ENDPOINT.id, "chat-1") is None
    assert notifier.get_stats()["failed"] == 1


@pytest.mark.asyncio
async def test_destinations_have_independent_cooldowns(transport, clock) -> None:
    notifier = Notifier(transport, cooldown=3600, clock=clock)
    transport.fail_for.add("chat-bad")

    assert await notifier.notify("chat-bad", ENDPOINT, PREVIOUS, CURRENT) is False
    assert await notifier.notify("chat-good", ENDPOINT, PREVIOUS, CURRENT) is True
    assert await notifier.notify("chat-other", ENDPOINT, PREVIOUS, CURRENT) is True

    other_endpoint = Endpoint(id=8, address="https://other.example.com")
    assert await notifier.notify("chat-good", other_endpoint, PREVIOUS, CURRENT) is True


@pytest.mark.asyncio
async def test_without_transport_nothing_is_delivered(clock) -> None:
    notifier = Notifier(None, clock=clock)

    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is False


@pytest.mark.asyncio
async def test_disabled_notifier_sends_nothing(transport, clock) -> None:
    notifier = Notifier(transport, clock=clock, enabled=False)

    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is False
    assert transport.sent == []


@pytest.mark.asyncio
async def test_prune_cooldowns_drops_old_entries(transport, clock) -> None:
    notifier = Notifier(transport, cooldown=3600, clock=clock)
    await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT)
    clock.advance(minutes=30)
    await notifier.notify("chat-2", ENDPOINT, PREVIOUS, CURRENT)

    clock.advance(minutes=100)
    assert notifier.prune_cooldowns(older_than=timedelta(hours=2)) == 1
    assert notifier.last_sent(ENDPOINT.id, "chat-1") is None
    assert notifier.last_sent(ENDPOINT.id, "chat-2") is not None


@pytest.mark.asyncio
async def test_concurrent_alerts_for_one_pair_deliver_once(transport, clock) -> None:
    transport.delay = 0.05
    notifier = Notifier(transport, cooldown=3600, clock=clock)

    results = await asyncio.gather(
        *(notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) for _ in range(5))
    )

    assert results.count(True) == 1
    assert len(transport.sent_to("chat-1")) == 1
    assert notifier.get_stats()["suppressed"] == 4


@pytest.mark.asyncio
async def test_failed_send_releases_the_pair(transport, clock) -> None:
    transport.raise_for.add("chat-1")
    notifier = Notifier(transport, cooldown=3600, clock=clock)

    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is False

    transport.raise_for.clear()
    assert await notifier.notify("chat-1", ENDPOINT, PREVIOUS, CURRENT) is True
