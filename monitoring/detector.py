"""
Status-change detection.

A transition is a change of status between an endpoint's two most recent
observations. The first observation of an endpoint is a baseline, never a
transition.
"""

from typing import Optional

from database.models import Observation


def should_notify(previous: Optional[Observation], current: Observation) -> bool:
    """True iff *previous* exists and its status differs from *current*'s."""
    if previous is None:
        return False
    return previous.status != current.status
