from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from database.models import ProbeOutcome, ProbeStatus
from exceptions import EndpointNotFoundError
from monitoring.alerts import Notifier
from monitoring.monitor import MonitoringEngine
from tests.conftest import ScriptedProber


TIMED_OUT = ProbeOutcome.down("Request timed out after 15 seconds.")


def _engine(registry, store, prober, transport, clock, **kwargs) -> MonitoringEngine:
    notifier = Notifier(transport, cooldown=3600, clock=clock)
    return MonitoringEngine(
        registry=registry,
        store=store,
        prober=prober,
        notifier=notifier,
        preferences=registry,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_first_probe_never_notifies(registry, store, transport, clock) -> None:
    endpoint = await registry.add_endpoint("https://example.com")
    await registry.add_destination(endpoint.id, "chat-1")
    prober = ScriptedProber({endpoint.address: [TIMED_OUT]})
    engine = _engine(registry, store, prober, transport, clock)

    assert engine.get_latest_observation(endpoint.id) is None
    await engine.run_tick()

    assert engine.get_latest_observation(endpoint.id).status is ProbeStatus.DOWN
    assert transport.sent == []


@pytest.mark.asyncio
async def test_up_down_down_fires_exactly_one_alert(registry, store, transport, clock) -> None:
    endpoint = await registry.add_endpoint("https://example.com")
    await registry.add_destination(endpoint.id, "chat-1")
    prober = ScriptedProber({
        endpoint.address: [
            ProbeOutcome.up(120, "Status code: 200"),
            TIMED_OUT,
            TIMED_OUT,
        ]
    })
    engine = _engine(registry, store, prober, transport, clock)

    await engine.run_tick()
    first = engine.get_latest_observation(endpoint.id)
    assert (first.status, first.latency_ms) == (ProbeStatus.UP, 120)

    clock.advance(seconds=30)
    await engine.run_tick()
    second = engine.get_latest_observation(endpoint.id)
    assert second.status is ProbeStatus.DOWN
    assert second.latency_ms is None
    assert second.detail == "Request timed out after 15 seconds."
    assert len(transport.sent) == 1
    assert "Status Change: UP → DOWN" in transport.sent[0][1]

    clock.advance(seconds=30)
    await engine.run_tick()
    assert len(transport.sent) == 1

    history = await engine.get_history(endpoint.id)
    assert [obs.status for obs in history] == [ProbeStatus.DOWN, ProbeStatus.DOWN, ProbeStatus.UP]


@pytest.mark.asyncio
async def test_paused_endpoints_are_not_probed(registry, store, transport, clock) -> None:
    active = await registry.add_endpoint("https://active.example.com")
    paused = await registry.add_endpoint("https://paused.example.com")
    await registry.toggle_pause(paused.id)
    prober = ScriptedProber()
    engine = _engine(registry, store, prober, transport, clock)

    summary = await engine.run_tick()

    assert summary == {"active": 1, "paused": 1, "checked": 1, "failed": 0}
    assert prober.calls == [active.address]
    assert engine.get_latest_observation(paused.id) is None


@pytest.mark.asyncio
async def test_empty_registry_is_a_noop_tick(registry, store, transport, clock) -> None:
    prober = ScriptedProber()
    engine = _engine(registry, store, prober, transport, clock)

    summary = await engine.run_tick()

    assert summary == {"active": 0, "paused": 0, "checked": 0, "failed": 0}
    assert prober.calls == []


@pytest.mark.asyncio
async def test_one_bad_endpoint_does_not_block_the_batch(registry, store, transport, clock) -> None:
    bad = await registry.add_endpoint("https://bad.example.com")
    good = await registry.add_endpoint("https://good.example.com")
    prober = ScriptedProber()
    prober.explode_for.add(bad.address)
    engine = _engine(registry, store, prober, transport, clock)

    summary = await engine.run_tick()

    assert summary["checked"] == 1
    assert summary["failed"] == 1
    assert engine.get_latest_observation(bad.id) is None
    assert engine.get_latest_observation(good.id) is not None


@pytest.mark.asyncio
async def test_alerts_go_only_to_the_endpoints_destinations(registry, store, transport, clock) -> None:
    flapping = await registry.add_endpoint("https://flapping.example.com")
    steady = await registry.add_endpoint("https://steady.example.com")
    await registry.add_destination(flapping.id, "chat-flapping")
    await registry.add_destination(flapping.id, "chat-broken")
    await registry.add_destination(steady.id, "chat-steady")
    transport.fail_for.add("chat-broken")
    prober = ScriptedProber({flapping.address: [ProbeOutcome.up(10, "Status code: 200"), TIMED_OUT]})
    engine = _engine(registry, store, prober, transport, clock)

    await engine.run_tick()
    await engine.run_tick()

    assert len(transport.sent_to("chat-flapping")) == 1
    assert transport.sent_to("chat-steady") == []
    assert transport.sent_to("chat-broken") == []


@pytest.mark.asyncio
async def test_manual_check_runs_one_cycle(registry, store, transport, clock) -> None:
    endpoint = await registry.add_endpoint("https://example.com")
    await registry.add_destination(endpoint.id, "chat-1")
    prober = ScriptedProber({endpoint.address: [ProbeOutcome.up(10, "Status code: 200"), TIMED_OUT]})
    engine = _engine(registry, store, prober, transport, clock)

    first = await engine.record_manual_check(endpoint.id)
    second = await engine.record_manual_check(endpoint.id)

    assert first.status is ProbeStatus.UP
    assert second.status is ProbeStatus.DOWN
    assert engine.get_latest_observation(endpoint.id) == second
    assert len(transport.sent_to("chat-1")) == 1


@pytest.mark.asyncio
async def test_manual_check_unknown_endpoint(registry, store, transport, clock) -> None:
    engine = _engine(registry, store, ScriptedProber(), transport, clock)

    with pytest.raises(EndpointNotFoundError):
        await engine.record_manual_check(404)


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped(registry, store, transport, clock) -> None:
    await registry.add_endpoint("https://slow.example.com")
    prober = ScriptedProber()
    prober.gate = asyncio.Event()
    engine = _engine(registry, store, prober, transport, clock)

    first = asyncio.create_task(engine.run_tick())
    await asyncio.wait_for(prober.entered.wait(), timeout=5)

    assert await engine.run_tick() is None
    assert engine.get_stats()["ticks_skipped"] == 1

    prober.gate.set()
    summary = await first
    assert summary["checked"] == 1


@pytest.mark.asyncio
async def test_uptime_reads(registry, store, transport, clock) -> None:
    endpoint = await registry.add_endpoint("https://example.com")
    prober = ScriptedProber({
        endpoint.address: [
            ProbeOutcome.up(10, "Status code: 200"),
            ProbeOutcome.up(10, "Status code: 200"),
            ProbeOutcome.up(10, "Status code: 200"),
            TIMED_OUT,
        ]
    })
    engine = _engine(registry, store, prober, transport, clock)

    assert await engine.get_uptime(endpoint.id, timedelta(hours=24)) is None
    for _ in range(4):
        await engine.run_tick()
        clock.advance(seconds=30)

    assert await engine.get_uptime(endpoint.id, timedelta(hours=24)) == 75.0
    assert await engine.get_uptime_stats(endpoint.id) == {"24h": "75.00%", "7d": "75.00%"}


@pytest.mark.asyncio
async def test_status_overview_reports_unchecked_endpoints(registry, store, transport, clock) -> None:
    checked = await registry.add_endpoint("https://checked.example.com")
    engine = _engine(registry, store, ScriptedProber(), transport, clock)
    await engine.run_tick()
    unchecked = await registry.add_endpoint("https://unchecked.example.com")

    overview = await engine.status_overview()

    assert [row["id"] for row in overview] == [unchecked.id, checked.id]
    assert overview[0]["status"] == "N/A"
    assert overview[0]["detail"] == "Not checked yet."
    assert overview[0]["uptime"] == {"24h": "N/A", "7d": "N/A"}
    assert overview[1]["status"] == "UP"
    assert overview[1]["uptime"]["24h"] == "100.00%"


@pytest.mark.asyncio
async def test_in_flight_probes_respect_the_concurrency_cap(registry, store, transport, clock) -> None:
    for index in range(6):
        await registry.add_endpoint(f"https://site{index}.example.com")
    prober = ScriptedProber()
    prober.delay = 0.02
    engine = _engine(registry, store, prober, transport, clock, max_concurrent=2)

    summary = await engine.run_tick()

    assert summary["checked"] == 6
    assert prober.peak == 2


@pytest.mark.asyncio
async def test_endpoint_deleted_mid_tick_fails_alone(registry, store, transport, clock) -> None:
    doomed = await registry.add_endpoint("https://doomed.example.com")
    kept = await registry.add_endpoint("https://kept.example.com")
    prober = ScriptedProber()
    prober.gate = asyncio.Event()
    engine = _engine(registry, store, prober, transport, clock)

    async def both_probing() -> None:
        while len(prober.calls) < 2:
            await asyncio.sleep(0)

    tick = asyncio.create_task(engine.run_tick())
    await asyncio.wait_for(both_probing(), timeout=5)

    assert await registry.delete_endpoint(doomed.id) is True
    prober.gate.set()
    summary = await tick

    assert summary["checked"] == 1
    assert summary["failed"] == 1
    assert engine.get_latest_observation(doomed.id) is None
    assert engine.get_latest_observation(kept.id) is not None
