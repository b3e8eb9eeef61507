"""
============================================================================
UPTIME MONITOR - MONITORING PACKAGE
============================================================================
The runtime monitoring core:
    • Prober             — one HTTP(S) liveness check with a timeout
    • should_notify      — status-change detection
    • Notifier           — cooldown-gated alert delivery
    • TelegramTransport  — aiogram-backed notification transport
    • MonitoringEngine   — probe → persist → detect → notify, fanned out
    • Scheduler          — periodic background job runner
    • HealthServer       — aiohttp liveness / status server

File layout
-----------
monitoring/
├── __init__.py          ← this file
├── interfaces.py        ← Registry / NotificationPreferences / NotificationTransport
├── prober.py            ← Prober
├── detector.py          ← should_notify
├── alerts.py            ← Notifier + message formatting
├── transport.py         ← TelegramTransport
├── monitor.py           ← MonitoringEngine
├── scheduler.py         ← Scheduler + built-in periodic jobs
└── health.py            ← HealthServer
============================================================================
"""

from monitoring.interfaces import NotificationPreferences, NotificationTransport, Registry
from monitoring.prober import Prober
from monitoring.detector import should_notify
from monitoring.alerts import Notifier, format_alert_message
from monitoring.monitor import MonitoringEngine
from monitoring.scheduler import Scheduler, ScheduledJob
from monitoring.health import HealthServer

__all__ = [
    # Interfaces
    "Registry",
    "NotificationPreferences",
    "NotificationTransport",

    # Core
    "Prober",
    "should_notify",
    "Notifier",
    "format_alert_message",
    "MonitoringEngine",

    # Scheduler
    "Scheduler",
    "ScheduledJob",

    # Health
    "HealthServer",
]
