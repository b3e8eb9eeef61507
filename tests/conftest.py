from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple

import pytest
import pytest_asyncio

from database.manager import DatabaseManager
from database.models import ProbeOutcome
from database.repositories import EndpointRegistry, ObservationStore


class FakeClock:
    """Manually advanced naive-UTC clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingTransport:
    """Notification transport that records messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str]] = []
        self.fail_for: Set[str] = set()
        self.raise_for: Set[str] = set()
        self.delay = 0.0

    async def send(self, destination: str, text: str) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        if destination in self.raise_for:
            raise RuntimeError(f"transport exploded for {destination}")
        if destination in self.fail_for:
            return False
        self.sent.append((destination, text))
        return True

    def sent_to(self, destination: str) -> List[str]:
        return [text for dest, text in self.sent if dest == destination]


class ScriptedProber:
    """
    Returns queued outcomes per address; UP 100 ms once a queue runs dry.
    Addresses in ``explode_for`` raise, as a broken prober would.
    """

    def __init__(self, script: Optional[Dict[str, List[ProbeOutcome]]] = None) -> None:
        self.script = {address: list(outcomes) for address, outcomes in (script or {}).items()}
        self.calls: List[str] = []
        self.explode_for: Set[str] = set()
        self.gate: Optional[asyncio.Event] = None
        self.entered = asyncio.Event()
        self.delay = 0.0
        self.running = 0
        self.peak = 0

    async def probe(self, address: str, timeout: Optional[float] = None) -> ProbeOutcome:
        self.calls.append(address)
        self.entered.set()
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.running -= 1
        if address in self.explode_for:
            raise RuntimeError("prober bug")
        queue = self.script.get(address)
        if queue:
            return queue.pop(0)
        return ProbeOutcome.up(100, "Status code: 200")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest_asyncio.fixture
async def db(tmp_path):
    manager = DatabaseManager(url=f"sqlite+aiosqlite:///{tmp_path / 'monitor.db'}")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def store(db, clock) -> ObservationStore:
    observation_store = ObservationStore(db, clock=clock)
    await observation_store.load()
    return observation_store


@pytest_asyncio.fixture
async def registry(db, store) -> EndpointRegistry:
    return EndpointRegistry(db, store)
