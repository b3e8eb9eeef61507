"""
Database Package for Uptime Monitor

Provides database connectivity, models, and the repositories for
endpoints and the observation log, using SQLAlchemy with async support.
"""

from database.manager import DatabaseManager

from database.models import (
    Base,
    ProbeStatus,
    ProbeOutcome,
    Observation,
    Endpoint,
    MonitoredEndpoint,
    EndpointDestination,
    ObservationLog
)

from database.repositories import (
    BaseRepository,
    ObservationStore,
    EndpointRegistry
)

__all__ = [
    # Connection
    "DatabaseManager",

    # Models
    "Base",
    "ProbeStatus",
    "ProbeOutcome",
    "Observation",
    "Endpoint",
    "MonitoredEndpoint",
    "EndpointDestination",
    "ObservationLog",

    # Repositories
    "BaseRepository",
    "ObservationStore",
    "EndpointRegistry"
]
