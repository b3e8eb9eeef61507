from __future__ import annotations

from datetime import datetime

import pytest

from database.models import Observation, ProbeStatus
from monitoring.detector import should_notify


def _obs(status: ProbeStatus, obs_id: int = 1) -> Observation:
    return Observation(
        id=obs_id,
        endpoint_id=1,
        status=status,
        latency_ms=10 if status is ProbeStatus.UP else None,
        detail="",
        observed_at=datetime(2024, 1, 1),
    )


@pytest.mark.parametrize("status", [ProbeStatus.UP, ProbeStatus.DOWN])
def test_first_observation_never_notifies(status: ProbeStatus) -> None:
    assert should_notify(None, _obs(status)) is False


@pytest.mark.parametrize(
    "previous, current, expected",
    [
        (ProbeStatus.UP, ProbeStatus.DOWN, True),
        (ProbeStatus.DOWN, ProbeStatus.UP, True),
        (ProbeStatus.UP, ProbeStatus.UP, False),
        (ProbeStatus.DOWN, ProbeStatus.DOWN, False),
    ],
)
def test_notifies_only_on_status_change(previous, current, expected) -> None:
    assert should_notify(_obs(previous, 1), _obs(current, 2)) is expected
