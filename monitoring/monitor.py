"""
============================================================================
UPTIME MONITOR - MONITORING ENGINE
============================================================================
Drives one probe → persist → detect → notify cycle per endpoint and fans
it out across the registered endpoint set.

Architecture
------------
MonitoringEngine            ← orchestrator, owns the worker pool
├── run_tick()              ← one batch over every unpaused endpoint
├── _run_guarded()          ← semaphore + per-endpoint error isolation
├── check_endpoint()        ← probe, append, compare with previous
│   ├── Prober              ← HTTP(S) liveness check
│   ├── ObservationStore    ← append-only log + latest index
│   └── should_notify()     ← transition detection
└── _dispatch_notifications ← fan-out to the endpoint's destinations

Read API for the outer layers: get_latest_observation, get_history,
get_uptime, get_uptime_stats, status_overview.  Write API:
record_manual_check.

Timing is driven from outside (the Scheduler calls ``run_tick``).

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from database.models import Endpoint, Observation
from database.repositories import ObservationStore
from exceptions import EndpointNotFoundError
from monitoring.alerts import Notifier
from monitoring.detector import should_notify
from monitoring.interfaces import NotificationPreferences, Registry
from monitoring.prober import DEFAULT_TIMEOUT, Prober
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("MonitoringEngine")


DEFAULT_MAX_CONCURRENT = 20
NOT_CHECKED_STATUS = "N/A"
NOT_CHECKED_DETAIL = "Not checked yet."


class MonitoringEngine:
    """
    Runs probe cycles for the endpoints a registry reports.

    Guarantees
    ----------
    • at most ``max_concurrent`` probes in flight at once
    • never two concurrent cycles for the same endpoint, so observations
      of one endpoint are appended in order
    • a failing endpoint is logged and skipped; the rest of the tick runs
    • overlapping ticks are skipped, not queued
    """

    def __init__(
        self,
        registry: Registry,
        store: ObservationStore,
        prober: Prober,
        notifier: Notifier,
        preferences: Optional[NotificationPreferences] = None,
        probe_timeout: float = DEFAULT_TIMEOUT,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    ):
        self.registry = registry
        self.store = store
        self.prober = prober
        self.notifier = notifier
        self.preferences = preferences
        self.probe_timeout = probe_timeout

        # --- concurrency control ---
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._endpoint_locks: Dict[int, asyncio.Lock] = {}
        self._tick_lock = asyncio.Lock()
        self._in_flight = 0

        # --- diagnostics ---
        self._ticks_run = 0
        self._ticks_skipped = 0
        self._last_tick_at: Optional[datetime] = None
        self._last_tick_duration: Optional[float] = None
        self._last_tick_failures = 0

        logger.info(
            f"MonitoringEngine created — max_concurrent={max_concurrent}, "
            f"probe_timeout={TimeHelper.format_seconds(probe_timeout)}s"
        )

    @property
    def is_ticking(self) -> bool:
        return self._tick_lock.locked()

    # ------------------------------------------------------------------
    # TICK
    # ------------------------------------------------------------------

    async def run_tick(self) -> Optional[Dict[str, int]]:
        """
        Probe every unpaused endpoint once.

        Returns
        -------
        dict | None
            Counts for the tick (``active``, ``paused``, ``checked``,
            ``failed``), or None if the tick was skipped because the
            previous one is still running or the registry was unreadable.
        """
        if self._tick_lock.locked():
            self._ticks_skipped += 1
            logger.warning("[Engine] Previous tick still running — skipping this one")
            return None

        async with self._tick_lock:
            started = time.perf_counter()
            try:
                endpoints = list(await self.registry.list_active_endpoints())
            except Exception as e:
                logger.error(f"[Engine] Could not read endpoints from registry: {e}")
                return None

            active = [endpoint for endpoint in endpoints if not endpoint.paused]
            summary = {
                "active": len(active),
                "paused": len(endpoints) - len(active),
                "checked": 0,
                "failed": 0,
            }

            if not active:
                logger.info("[Engine] No active endpoints to check")
            else:
                logger.debug(f"[Engine] Tick checking {len(active)} endpoints")
                results = await asyncio.gather(
                    *(self._run_guarded(endpoint) for endpoint in active),
                    return_exceptions=True,
                )
                for endpoint, result in zip(active, results):
                    if result is True:
                        summary["checked"] += 1
                    else:
                        summary["failed"] += 1
                        if isinstance(result, BaseException):
                            logger.error(
                                f"[Engine] Check for endpoint {endpoint.id} raised: {result!r}"
                            )

            self._forget_stale_locks({endpoint.id for endpoint in endpoints})

            self._ticks_run += 1
            self._last_tick_at = TimeHelper.get_utc_now()
            self._last_tick_duration = time.perf_counter() - started
            self._last_tick_failures = summary["failed"]

            logger.info(
                f"[Engine] Tick done in {self._last_tick_duration:.2f}s — "
                f"checked={summary['checked']}, failed={summary['failed']}, "
                f"paused={summary['paused']}"
            )
            return summary

    async def _run_guarded(self, endpoint: Endpoint) -> bool:
        """
        Acquire the concurrency semaphore and run one cycle.  Any error is
        logged here so it cannot abort the rest of the batch.
        """
        async with self._semaphore:
            self._in_flight += 1
            try:
                await self.check_endpoint(endpoint)
                return True
            except Exception as e:
                logger.error(
                    f"[Engine] Exception checking endpoint {endpoint.id} "
                    f"({endpoint.address}): {e}"
                )
                return False
            finally:
                self._in_flight -= 1

    # ------------------------------------------------------------------
    # SINGLE CYCLE
    # ------------------------------------------------------------------

    async def check_endpoint(self, endpoint: Endpoint) -> Observation:
        """
        Probe *endpoint*, append the outcome and notify on a transition.

        Raises
        ------
        PersistenceError
            If the observation could not be stored.  No notification is
            attempted in that case.
        """
        async with self._lock_for(endpoint.id):
            previous = self.store.latest_for(endpoint.id)
            outcome = await self.prober.probe(endpoint.address, timeout=self.probe_timeout)
            current = await self.store.append(endpoint.id, outcome)

            if should_notify(previous, current):
                logger.warning(
                    f"[Engine] Status change for endpoint {endpoint.id} ({endpoint.address}): "
                    f"{previous.status.value} → {current.status.value}"
                )
                await self._dispatch_notifications(endpoint, previous, current)

            return current

    async def _dispatch_notifications(
        self,
        endpoint: Endpoint,
        previous: Observation,
        current: Observation,
    ) -> int:
        """Notify each destination of *endpoint* independently; returns deliveries."""
        if self.preferences is None:
            logger.debug(f"[Engine] No notification preferences — endpoint {endpoint.id} alert not sent")
            return 0

        try:
            destinations = list(await self.preferences.destinations_for(endpoint))
        except Exception as e:
            logger.error(f"[Engine] Could not resolve destinations for endpoint {endpoint.id}: {e}")
            return 0

        if not destinations:
            logger.debug(f"[Engine] Endpoint {endpoint.id} has no notification destinations")
            return 0

        results = await asyncio.gather(
            *(
                self.notifier.notify(destination, endpoint, previous, current)
                for destination in destinations
            ),
            return_exceptions=True,
        )

        delivered = 0
        for destination, result in zip(destinations, results):
            if isinstance(result, BaseException):
                logger.error(f"[Engine] Notifying {destination} raised: {result!r}")
            elif result:
                delivered += 1
        return delivered

    def _lock_for(self, endpoint_id: int) -> asyncio.Lock:
        lock = self._endpoint_locks.get(endpoint_id)
        if lock is None:
            lock = self._endpoint_locks[endpoint_id] = asyncio.Lock()
        return lock

    def _forget_stale_locks(self, known_ids) -> None:
        for endpoint_id in list(self._endpoint_locks):
            if endpoint_id not in known_ids and not self._endpoint_locks[endpoint_id].locked():
                del self._endpoint_locks[endpoint_id]

    # ------------------------------------------------------------------
    # WRITE API
    # ------------------------------------------------------------------

    async def record_manual_check(self, endpoint_id: int) -> Observation:
        """
        Run one ad-hoc cycle for a single endpoint outside the schedule.

        Raises
        ------
        EndpointNotFoundError
            If the registry does not report *endpoint_id*.
        """
        endpoint = await self._find_endpoint(endpoint_id)
        logger.info(f"[Engine] Manual check requested for endpoint {endpoint_id}")
        return await self.check_endpoint(endpoint)

    async def _find_endpoint(self, endpoint_id: int) -> Endpoint:
        for endpoint in await self.registry.list_active_endpoints():
            if endpoint.id == endpoint_id:
                return endpoint
        raise EndpointNotFoundError(
            f"Endpoint {endpoint_id} is not registered",
            endpoint_id=endpoint_id,
        )

    # ------------------------------------------------------------------
    # READ API
    # ------------------------------------------------------------------

    def get_latest_observation(self, endpoint_id: int) -> Optional[Observation]:
        return self.store.latest_for(endpoint_id)

    async def get_history(self, endpoint_id: int, limit: int = 50) -> List[Observation]:
        return await self.store.history(endpoint_id, limit)

    async def get_uptime(self, endpoint_id: int, window: timedelta) -> Optional[float]:
        """Uptime percentage over *window*, or None when nothing was observed."""
        return await self.store.uptime(endpoint_id, window)

    async def get_uptime_stats(self, endpoint_id: int) -> Dict[str, str]:
        return await self.store.uptime_stats(endpoint_id)

    async def status_overview(self) -> List[Dict[str, Any]]:
        """
        Every registered endpoint with its latest observation and uptime
        figures, newest endpoint first.
        """
        endpoints = sorted(
            await self.registry.list_active_endpoints(),
            key=lambda endpoint: (endpoint.created_at or datetime.min, endpoint.id),
            reverse=True,
        )

        overview = []
        for endpoint in endpoints:
            latest = self.store.latest_for(endpoint.id)
            overview.append({
                "id": endpoint.id,
                "address": endpoint.address,
                "paused": endpoint.paused,
                "status": latest.status.value if latest else NOT_CHECKED_STATUS,
                "latency_ms": latest.latency_ms if latest else None,
                "detail": latest.detail if latest else NOT_CHECKED_DETAIL,
                "observed_at": latest.observed_at.isoformat() if latest else None,
                "uptime": await self.store.uptime_stats(endpoint.id),
            })
        return overview

    # ------------------------------------------------------------------
    # DIAGNOSTIC
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        return {
            "ticks_run": self._ticks_run,
            "ticks_skipped": self._ticks_skipped,
            "is_ticking": self.is_ticking,
            "in_flight": self._in_flight,
            "last_tick_at": self._last_tick_at.isoformat() if self._last_tick_at else None,
            "last_tick_duration": (
                round(self._last_tick_duration, 3)
                if self._last_tick_duration is not None else None
            ),
            "last_tick_failures": self._last_tick_failures,
            "tracked_endpoints": len(self.store.latest_for_all()),
        }


# ============================================================================
# END OF MONITORING ENGINE MODULE
# ============================================================================
