"""
============================================================================
UPTIME MONITOR - DATABASE MODELS
============================================================================
SQLAlchemy ORM tables plus the immutable value objects the monitoring core
passes around.

Tables
------
monitored_endpoints     ← the registry's endpoints (address, paused flag)
endpoint_destinations   ← notification destinations per endpoint
observations            ← append-only probe log, FK to monitored_endpoints

Value objects
-------------
ProbeOutcome            ← what the Prober returns, before persistence
Observation             ← one persisted, immutable probe result
Endpoint                ← read-only view of a registered endpoint
============================================================================
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Enum, ForeignKey, Index,
    Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

from utils.helpers import TimeHelper


Base = declarative_base()


# ============================================================================
# ENUMERATIONS
# ============================================================================

class ProbeStatus(str, enum.Enum):
    """Result of one liveness check."""
    UP = "UP"
    DOWN = "DOWN"


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class ProbeOutcome:
    """
    The Prober's return value.

    ``latency_ms`` is set if and only if ``status`` is UP.
    """
    status: ProbeStatus
    latency_ms: Optional[int]
    detail: str

    def __post_init__(self):
        if (self.status == ProbeStatus.UP) != (self.latency_ms is not None):
            raise ValueError("latency_ms must be set exactly when status is UP")
        if self.latency_ms is not None and self.latency_ms < 0:
            raise ValueError("latency_ms must be non-negative")

    @classmethod
    def up(cls, latency_ms: int, detail: str) -> "ProbeOutcome":
        return cls(ProbeStatus.UP, latency_ms, detail)

    @classmethod
    def down(cls, detail: str) -> "ProbeOutcome":
        return cls(ProbeStatus.DOWN, None, detail)

    @property
    def is_up(self) -> bool:
        return self.status == ProbeStatus.UP


@dataclass(frozen=True)
class Observation:
    """One timestamped probe result for an endpoint."""
    id: int
    endpoint_id: int
    status: ProbeStatus
    latency_ms: Optional[int]
    detail: str
    observed_at: datetime

    @classmethod
    def from_row(cls, row: "ObservationLog") -> "Observation":
        return cls(
            id=row.id,
            endpoint_id=row.endpoint_id,
            status=ProbeStatus(row.status),
            latency_ms=row.latency_ms,
            detail=row.detail,
            observed_at=row.observed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "endpoint_id": self.endpoint_id,
            "status": self.status.value,
            "latency_ms": self.latency_ms,
            "detail": self.detail,
            "observed_at": self.observed_at.isoformat(),
        }


@dataclass(frozen=True)
class Endpoint:
    """A monitored network address, as the registry reports it."""
    id: int
    address: str
    paused: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: "MonitoredEndpoint") -> "Endpoint":
        return cls(
            id=row.id,
            address=row.address,
            paused=row.paused,
            created_at=row.created_at,
        )


# ============================================================================
# TABLES
# ============================================================================

class MonitoredEndpoint(Base):
    """
    A registered endpoint.

    Owned by the registry; the monitoring core only reads it.
    """
    __tablename__ = "monitored_endpoints"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(Text, nullable=False, unique=True)
    paused = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=TimeHelper.get_utc_now)

    destinations = relationship(
        "EndpointDestination",
        back_populates="endpoint",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<MonitoredEndpoint(id={self.id}, address={self.address!r}, paused={self.paused})>"


class EndpointDestination(Base):
    """A notification destination (e.g. a Telegram chat id) attached to an endpoint."""
    __tablename__ = "endpoint_destinations"
    __table_args__ = (
        UniqueConstraint("endpoint_id", "destination", name="uq_endpoint_destination"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint_id = Column(
        Integer,
        ForeignKey("monitored_endpoints.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    destination = Column(String(255), nullable=False)

    endpoint = relationship("MonitoredEndpoint", back_populates="destinations")


class ObservationLog(Base):
    """
    Append-only probe log.

    Rows are never updated; they are deleted only together with their
    endpoint.
    """
    __tablename__ = "observations"
    __table_args__ = (
        Index("ix_observations_endpoint_observed", "endpoint_id", "observed_at"),
        CheckConstraint(
            "(status = 'UP' AND latency_ms IS NOT NULL AND latency_ms >= 0) "
            "OR (status = 'DOWN' AND latency_ms IS NULL)",
            name="ck_observations_latency_iff_up",
        ),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint_id = Column(
        Integer,
        ForeignKey("monitored_endpoints.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(
        Enum(ProbeStatus, name="probe_status", native_enum=False, length=8),
        nullable=False,
    )
    latency_ms = Column(Integer, nullable=True)
    detail = Column(Text, nullable=False, default="")
    observed_at = Column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ObservationLog(id={self.id}, endpoint_id={self.endpoint_id}, "
            f"status={self.status}, observed_at={self.observed_at})>"
        )
