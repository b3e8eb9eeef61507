"""
Collaborator protocols consumed by the monitoring core.

The engine depends only on these shapes. ``EndpointRegistry`` satisfies
both ``Registry`` and ``NotificationPreferences``; ``TelegramTransport``
satisfies ``NotificationTransport``.
"""

from typing import Protocol, Sequence, runtime_checkable

from database.models import Endpoint


@runtime_checkable
class Registry(Protocol):
    """Read access to the registered endpoint set."""

    async def list_active_endpoints(self) -> Sequence[Endpoint]:
        """Every existing endpoint with its ``paused`` flag.

        Must reflect pauses and deletions made before the call.
        """
        ...


@runtime_checkable
class NotificationPreferences(Protocol):
    """Resolves who hears about an endpoint's transitions."""

    async def destinations_for(self, endpoint: Endpoint) -> Sequence[str]:
        """Destination identifiers for *endpoint*; may be empty."""
        ...


@runtime_checkable
class NotificationTransport(Protocol):
    """Delivers a rendered message to one destination."""

    async def send(self, destination: str, text: str) -> bool:
        """Return True when the message was accepted for delivery.

        Failures may be reported by returning False or by raising.
        """
        ...
