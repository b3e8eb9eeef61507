"""
============================================================================
UPTIME MONITOR - NOTIFIER
============================================================================
Formats status-change alerts and delivers them through a notification
transport, throttled per (endpoint, destination).

Cooldown Logic
--------------
Each (endpoint_id, destination) pair has a last-sent timestamp.  While
``now - last_sent < cooldown`` further alerts for that pair are skipped
silently.  The timestamp is only written after the transport reports a
successful delivery, so a failed send leaves the pair eligible on the
next transition.  While a send for a pair is in flight, other alerts
for that pair are skipped too.  The check and the reservation happen
with no await in between, so the transport call itself runs unlocked.
The map lives in memory and is lost on restart.

Fan-out
-------
The engine calls ``notify()`` once per destination.  Each call has its
own cooldown key and its own error handling, so one destination failing
never affects another.
============================================================================
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Set, Tuple

from database.models import Endpoint, Observation
from monitoring.interfaces import NotificationTransport
from utils.helpers import Clock, TimeHelper
from utils.logger import get_logger


logger = get_logger("Notifier")


DEFAULT_COOLDOWN = 3600.0

CooldownKey = Tuple[int, str]


def format_alert_message(
    endpoint: Endpoint,
    previous: Observation,
    current: Observation,
) -> str:
    """Render the plain-text alert for one transition."""
    lines = [
        "🚨 Uptime Alert",
        "",
        f"Status Change: {previous.status.value} → {current.status.value}",
        f"Site: {endpoint.address}",
    ]

    if current.latency_ms is not None:
        lines.append(f"Response Time: {current.latency_ms}ms")
    else:
        lines.append("Response Time: N/A")

    if current.detail:
        lines.append(f"Details: {current.detail}")

    lines.append(f"Checked at: {TimeHelper.format_datetime(current.observed_at)} UTC")
    return "\n".join(lines)


class Notifier:
    """
    Cooldown-gated alert delivery.

    Parameters
    ----------
    transport : NotificationTransport | None
        Where messages go. With no transport every call returns False.
    cooldown : float
        Minimum seconds between two alerts for the same pair.
    clock : Clock
        Time source; tests pass a fake one.
    """

    def __init__(
        self,
        transport: Optional[NotificationTransport] = None,
        cooldown: float = DEFAULT_COOLDOWN,
        clock: Clock = TimeHelper.get_utc_now,
        enabled: bool = True,
    ):
        self.transport = transport
        self.cooldown = timedelta(seconds=cooldown)
        self.clock = clock
        self.enabled = enabled

        self._last_sent: Dict[CooldownKey, datetime] = {}
        self._in_flight: Set[CooldownKey] = set()

        self._sent = 0
        self._suppressed = 0
        self._failed = 0

        logger.info(
            f"Notifier created — cooldown={TimeHelper.format_seconds(cooldown)}s, "
            f"transport={'yes' if transport else 'none'}, enabled={enabled}"
        )

    # ------------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------------

    async def notify(
        self,
        destination: str,
        endpoint: Endpoint,
        previous: Observation,
        current: Observation,
    ) -> bool:
        """
        Deliver one transition alert to one destination.

        Returns
        -------
        bool
            True only if the transport accepted the message.  Throttled,
            disabled and failed sends all return False.
        """
        if not self.enabled or self.transport is None:
            logger.debug(
                f"[Notifier] Delivery disabled — endpoint={endpoint.id}, "
                f"destination={destination}"
            )
            return False

        key = (endpoint.id, destination)

        if key in self._in_flight or self._in_cooldown(key):
            self._suppressed += 1
            logger.info(
                f"[Notifier] Skipping alert for {endpoint.address} to {destination} — "
                f"within cooldown"
            )
            return False
        self._in_flight.add(key)

        try:
            text = format_alert_message(endpoint, previous, current)
            try:
                delivered = bool(await self.transport.send(destination, text))
            except Exception as e:
                logger.error(
                    f"[Notifier] Transport error sending to {destination} "
                    f"for endpoint {endpoint.id}: {e}"
                )
                delivered = False

            if not delivered:
                self._failed += 1
                logger.warning(
                    f"[Notifier] Alert for {endpoint.address} not delivered to {destination}"
                )
                return False

            self._last_sent[key] = self.clock()
            self._sent += 1
        finally:
            self._in_flight.discard(key)

        logger.info(
            f"[Notifier] ✓ Alert sent to {destination} for {endpoint.address} "
            f"({previous.status.value} → {current.status.value})"
        )
        return True

    def prune_cooldowns(self, older_than: Optional[timedelta] = None) -> int:
        """
        Forget last-sent timestamps older than *older_than* (default: the
        cooldown).  Entries that old no longer throttle anything.

        Returns the number of entries removed.
        """
        older_than = older_than if older_than is not None else self.cooldown
        now = self.clock()
        stale = [
            key for key, sent_at in self._last_sent.items()
            if now - sent_at >= older_than
        ]
        for key in stale:
            del self._last_sent[key]

        if stale:
            logger.debug(f"[Notifier] Pruned {len(stale)} cooldown entries")
        return len(stale)

    def last_sent(self, endpoint_id: int, destination: str) -> Optional[datetime]:
        return self._last_sent.get((endpoint_id, destination))

    # ------------------------------------------------------------------
    # COOLDOWN
    # ------------------------------------------------------------------

    def _in_cooldown(self, key: CooldownKey) -> bool:
        sent_at = self._last_sent.get(key)
        if sent_at is None:
            return False
        return self.clock() - sent_at < self.cooldown

    # ------------------------------------------------------------------
    # DIAGNOSTIC
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """Return current state of the notifier for diagnostics."""
        return {
            "enabled": self.enabled,
            "cooldown_seconds": self.cooldown.total_seconds(),
            "cooldown_entries": len(self._last_sent),
            "sent": self._sent,
            "suppressed": self._suppressed,
            "failed": self._failed,
        }


# ============================================================================
# END OF NOTIFIER MODULE
# ============================================================================
