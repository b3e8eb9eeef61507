"""
============================================================================
UPTIME MONITOR - REPOSITORIES
============================================================================
ObservationStore   ← append-only probe log, latest-per-endpoint index,
                     windowed uptime aggregation
EndpointRegistry   ← endpoint and destination bookkeeping; the only
                     code path that deletes observations
============================================================================
"""

import asyncio
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.manager import DatabaseManager
from database.models import (
    Endpoint,
    EndpointDestination,
    MonitoredEndpoint,
    Observation,
    ObservationLog,
    ProbeOutcome,
    ProbeStatus
)
from exceptions import (
    DatabaseDuplicateError,
    EndpointNotFoundError,
    PersistenceError
)
from utils.helpers import Clock, TimeHelper
from utils.logger import get_logger
from utils.validators import URLValidator


UPTIME_WINDOWS: Dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
}

NOT_AVAILABLE = "N/A"


# ============================================================================
# BASE REPOSITORY
# ============================================================================

class BaseRepository:
    """
    Base repository class for database operations.
    """

    def __init__(self, db_manager: DatabaseManager):
        """
        Initialize repository.

        Args:
            db_manager: DatabaseManager instance
        """
        self.db = db_manager
        self.logger = get_logger(self.__class__.__name__)


# ============================================================================
# OBSERVATION STORE
# ============================================================================

class ObservationStore(BaseRepository):
    """
    Append-only observation log.

    Writes are serialized through ``lock`` so identifiers and per-endpoint
    timestamps only ever grow. The latest observation per endpoint is
    kept in memory and rebuilt from the table by ``load()``.
    """

    def __init__(self, db_manager: DatabaseManager, clock: Clock = TimeHelper.get_utc_now):
        super().__init__(db_manager)
        self.clock = clock
        self.lock = asyncio.Lock()
        self._latest: Dict[int, Observation] = {}

    async def load(self) -> int:
        """
        Rebuild the latest-observation index from the table.

        Returns:
            Number of endpoints with at least one observation
        """
        latest_ids = (
            select(func.max(ObservationLog.id))
            .group_by(ObservationLog.endpoint_id)
            .scalar_subquery()
        )
        async with self.db.session() as session:
            result = await session.execute(
                select(ObservationLog).where(ObservationLog.id.in_(latest_ids))
            )
            rows = result.scalars().all()

        self._latest = {row.endpoint_id: Observation.from_row(row) for row in rows}
        self.logger.info(f"Latest-observation index rebuilt for {len(self._latest)} endpoints")
        return len(self._latest)

    async def append(self, endpoint_id: int, outcome: ProbeOutcome) -> Observation:
        """
        Persist one probe outcome and return the stored observation.

        Raises:
            PersistenceError: If the row could not be written (including
                when the endpoint no longer exists)
        """
        async with self.lock:
            observed_at = self.clock()
            previous = self._latest.get(endpoint_id)
            if previous is not None and observed_at < previous.observed_at:
                # Wall clock stepped backwards; keep per-endpoint order
                observed_at = previous.observed_at

            row = ObservationLog(
                endpoint_id=endpoint_id,
                status=outcome.status,
                latency_ms=outcome.latency_ms,
                detail=outcome.detail,
                observed_at=observed_at,
            )
            try:
                async with self.db.session() as session:
                    session.add(row)
                    await session.flush()
            except SQLAlchemyError as e:
                raise PersistenceError(
                    f"Failed to append observation for endpoint {endpoint_id}",
                    endpoint_id=endpoint_id,
                    cause=e,
                ) from e

            observation = Observation.from_row(row)
            self._latest[endpoint_id] = observation
            return observation

    def latest_for(self, endpoint_id: int) -> Optional[Observation]:
        return self._latest.get(endpoint_id)

    def latest_for_all(self) -> Dict[int, Observation]:
        return dict(self._latest)

    async def history(self, endpoint_id: int, limit: int = 50) -> List[Observation]:
        """Observations for one endpoint, most recent first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ObservationLog)
                .where(ObservationLog.endpoint_id == endpoint_id)
                .order_by(ObservationLog.observed_at.desc(), ObservationLog.id.desc())
                .limit(limit)
            )
            return [Observation.from_row(row) for row in result.scalars().all()]

    async def count_for(self, endpoint_id: int) -> int:
        async with self.db.session() as session:
            result = await session.execute(
                select(func.count(ObservationLog.id))
                .where(ObservationLog.endpoint_id == endpoint_id)
            )
            return result.scalar() or 0

    async def uptime(self, endpoint_id: int, window: timedelta) -> Optional[float]:
        """
        Percentage of UP observations within ``window`` of now.

        Returns:
            Percentage rounded to two decimals, or None when the window
            holds no observations
        """
        cutoff = self.clock() - window
        async with self.db.session() as session:
            result = await session.execute(
                select(
                    func.count(ObservationLog.id),
                    func.sum(case((ObservationLog.status == ProbeStatus.UP, 1), else_=0)),
                ).where(
                    ObservationLog.endpoint_id == endpoint_id,
                    ObservationLog.observed_at >= cutoff,
                )
            )
            total, up = result.one()

        if not total:
            return None
        return round((up or 0) / total * 100, 2)

    async def uptime_stats(self, endpoint_id: int) -> Dict[str, str]:
        """Uptime over the last 24 hours and 7 days, formatted for display."""
        stats = {}
        for label, window in UPTIME_WINDOWS.items():
            value = await self.uptime(endpoint_id, window)
            stats[label] = NOT_AVAILABLE if value is None else f"{value:.2f}%"
        return stats

    async def purge(self, session: AsyncSession, endpoint_id: int) -> int:
        """
        Delete every observation of an endpoint inside the caller's
        transaction. Callers must hold ``lock``.
        """
        result = await session.execute(
            delete(ObservationLog).where(ObservationLog.endpoint_id == endpoint_id)
        )
        return result.rowcount or 0

    def forget(self, endpoint_id: int) -> None:
        self._latest.pop(endpoint_id, None)


# ============================================================================
# ENDPOINT REGISTRY
# ============================================================================

class EndpointRegistry(BaseRepository):
    """
    Endpoint registry backed by the monitored_endpoints table.

    Addresses are validated here, so the monitoring core only ever sees
    well-formed http(s) URLs.
    """

    def __init__(self, db_manager: DatabaseManager, store: ObservationStore):
        super().__init__(db_manager)
        self.store = store

    async def add_endpoint(self, address: str) -> Endpoint:
        """
        Register a new endpoint.

        Raises:
            InvalidURLError: If the address is not a valid http(s) URL
            DatabaseDuplicateError: If the address is already registered
        """
        address = URLValidator.validate(address)

        try:
            async with self.db.session() as session:
                existing = await session.execute(
                    select(MonitoredEndpoint.id).where(MonitoredEndpoint.address == address)
                )
                if existing.scalar_one_or_none() is not None:
                    raise DatabaseDuplicateError(
                        f"Endpoint already registered: {address}",
                        entity_type="endpoint",
                        field="address",
                        value=address,
                    )

                row = MonitoredEndpoint(address=address, paused=False)
                session.add(row)
                await session.flush()
        except IntegrityError as e:
            raise DatabaseDuplicateError(
                f"Endpoint already registered: {address}",
                entity_type="endpoint",
                field="address",
                value=address,
                cause=e,
            ) from e

        self.logger.info(f"Registered endpoint {row.id}: {address}")
        return Endpoint.from_row(row)

    async def get_endpoint(self, endpoint_id: int) -> Optional[Endpoint]:
        async with self.db.session() as session:
            row = await session.get(MonitoredEndpoint, endpoint_id)
            return Endpoint.from_row(row) if row else None

    async def list_endpoints(self) -> List[Endpoint]:
        """All endpoints, newest first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(MonitoredEndpoint).order_by(
                    MonitoredEndpoint.created_at.desc(),
                    MonitoredEndpoint.id.desc(),
                )
            )
            return [Endpoint.from_row(row) for row in result.scalars().all()]

    async def list_active_endpoints(self) -> List[Endpoint]:
        """
        Every endpoint that currently exists, paused ones included.

        Reads the table on each call, so pauses and deletions are visible
        on the next tick. Filtering on ``paused`` is left to the caller.
        """
        async with self.db.session() as session:
            result = await session.execute(
                select(MonitoredEndpoint).order_by(MonitoredEndpoint.id)
            )
            return [Endpoint.from_row(row) for row in result.scalars().all()]

    async def toggle_pause(self, endpoint_id: int) -> bool:
        """
        Flip the paused flag.

        Returns:
            The new paused state
        """
        async with self.db.session() as session:
            row = await session.get(MonitoredEndpoint, endpoint_id)
            if row is None:
                raise EndpointNotFoundError(endpoint_id=endpoint_id)
            row.paused = not row.paused
            paused = row.paused

        self.logger.info(f"Endpoint {endpoint_id} {'paused' if paused else 'resumed'}")
        return paused

    async def delete_endpoint(self, endpoint_id: int) -> bool:
        """
        Delete an endpoint with its destinations and observations.

        Runs as one transaction under the store's write lock, so no append
        can land between the purge and the endpoint removal.

        Returns:
            True if the endpoint existed
        """
        async with self.store.lock:
            async with self.db.transaction() as session:
                await session.execute(
                    delete(EndpointDestination).where(EndpointDestination.endpoint_id == endpoint_id)
                )
                purged = await self.store.purge(session, endpoint_id)
                result = await session.execute(
                    delete(MonitoredEndpoint).where(MonitoredEndpoint.id == endpoint_id)
                )
                deleted = bool(result.rowcount)
            self.store.forget(endpoint_id)

        if deleted:
            self.logger.info(f"Deleted endpoint {endpoint_id} and {purged} observations")
        return deleted

    async def add_destination(self, endpoint_id: int, destination: str) -> bool:
        """
        Attach a notification destination to an endpoint.

        Returns:
            False if the destination was already attached
        """
        destination = str(destination).strip()
        async with self.db.session() as session:
            if await session.get(MonitoredEndpoint, endpoint_id) is None:
                raise EndpointNotFoundError(endpoint_id=endpoint_id)

            existing = await session.execute(
                select(EndpointDestination.id).where(
                    EndpointDestination.endpoint_id == endpoint_id,
                    EndpointDestination.destination == destination,
                )
            )
            if existing.scalar_one_or_none() is not None:
                return False

            session.add(EndpointDestination(endpoint_id=endpoint_id, destination=destination))
        return True

    async def remove_destination(self, endpoint_id: int, destination: str) -> bool:
        async with self.db.session() as session:
            result = await session.execute(
                delete(EndpointDestination).where(
                    EndpointDestination.endpoint_id == endpoint_id,
                    EndpointDestination.destination == str(destination).strip(),
                )
            )
            return bool(result.rowcount)

    async def destinations_for(self, endpoint: Endpoint) -> List[str]:
        async with self.db.session() as session:
            result = await session.execute(
                select(EndpointDestination.destination)
                .where(EndpointDestination.endpoint_id == endpoint.id)
                .order_by(EndpointDestination.id)
            )
            return list(result.scalars().all())


# ============================================================================
# END OF REPOSITORIES MODULE
# ============================================================================
