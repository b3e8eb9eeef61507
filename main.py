"""
============================================================================
UPTIME MONITOR - MAIN APPLICATION
============================================================================
Integrates every layer of the monitor:

    Layer 1 — Core & Database
        • Settings (Pydantic)
        • SQLAlchemy async engine + models
        • ObservationStore + EndpointRegistry
        • Logging, Validators, Helpers

    Layer 2 — Monitoring
        • Prober             — HTTP(S) liveness checks via httpx
        • Notifier           — cooldown-gated alerts
        • TelegramTransport  — aiogram delivery
        • MonitoringEngine   — probe → persist → detect → notify
        • Scheduler          — probe tick + housekeeping jobs

    Layer 3 — Infra
        • HealthServer       — aiohttp liveness / status server

Startup Order
-------------
1.  Load settings & configure logging
2.  Initialize DatabaseManager (create tables if needed)
3.  Build ObservationStore (rebuild latest index) + EndpointRegistry
4.  Build TelegramTransport (if a token is configured) + Notifier
5.  Build Prober + MonitoringEngine
6.  Build Scheduler
7.  Start HealthServer (aiohttp, non-blocking)
8.  Start Scheduler (first tick after MONITOR_STARTUP_DELAY)
9.  Wait for SIGINT / SIGTERM

Shutdown Order (reverse)
-------------------------
    stop scheduler → stop health server → close prober client →
    close Telegram session → close DB → exit

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

# ---------------------------------------------------------------------------
# Path setup: ensure the project root is importable regardless of CWD
# ---------------------------------------------------------------------------
sys.path.insert(0, str(Path(__file__).parent))

# ---------------------------------------------------------------------------
# Project imports
# ---------------------------------------------------------------------------
from config.settings import Settings, get_settings
from database.manager import DatabaseManager
from database.repositories import EndpointRegistry, ObservationStore
from monitoring.alerts import Notifier
from monitoring.health import HealthServer
from monitoring.monitor import MonitoringEngine
from monitoring.prober import Prober
from monitoring.scheduler import Scheduler
from monitoring.transport import TelegramTransport
from utils.logger import get_logger, setup_logging


logger = get_logger("Main")


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class UptimeMonitorApplication:
    """
    Top-level application orchestrator.

    Owns every subsystem and is the single place that knows the startup /
    shutdown order.  All subsystems communicate through the instances
    stored here.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        # --- subsystems (populated during startup) ---
        self.db_manager: Optional[DatabaseManager] = None
        self.store: Optional[ObservationStore] = None
        self.registry: Optional[EndpointRegistry] = None
        self.transport: Optional[TelegramTransport] = None
        self.notifier: Optional[Notifier] = None
        self.prober: Optional[Prober] = None
        self.engine: Optional[MonitoringEngine] = None
        self.scheduler: Optional[Scheduler] = None
        self.health_server: Optional[HealthServer] = None

        # --- lifecycle ---
        self._is_running = False
        self._stop_event = asyncio.Event()

    # ------------------------------------------------------------------
    # BANNER
    # ------------------------------------------------------------------

    def _print_banner(self) -> None:
        monitoring = self.settings.monitoring
        logger.info("=" * 74)
        logger.info(f"  🚀  {self.settings.app_name.upper()}  v{self.settings.app_version}")
        logger.info(
            f"  Environment: {self.settings.environment.value}  •  "
            f"Database: {self.settings.database.type.value}  •  "
            f"Tick: {monitoring.tick_interval}s  •  Timeout: {monitoring.probe_timeout}s"
        )
        logger.info("=" * 74)

    # ==================================================================
    # PHASE 1: DATABASE
    # ==================================================================

    async def _init_database(self) -> bool:
        """Initialize the database manager, the store and the registry."""
        logger.info("── Phase 1: Database ─────────────────────────────")
        try:
            self.db_manager = DatabaseManager(self.settings.database)
            await self.db_manager.initialize()

            if not await self.db_manager.check_connection():
                logger.error("  ✗ Database connection check failed")
                return False

            self.store = ObservationStore(self.db_manager)
            await self.store.load()
            self.registry = EndpointRegistry(self.db_manager, self.store)

            db_info = await self.db_manager.get_database_info()
            logger.info(
                f"  ✓ Connected — endpoints={db_info.get('endpoints', 0)}, "
                f"observations={db_info.get('observations', 0)}"
            )
            return True

        except Exception as e:
            logger.exception(f"  ✗ Database init failed: {e}")
            return False

    # ==================================================================
    # PHASE 2: NOTIFICATIONS
    # ==================================================================

    async def _init_notifications(self) -> bool:
        """Build the Telegram transport (when configured) and the Notifier."""
        logger.info("── Phase 2: Notifications ────────────────────────")
        try:
            if self.settings.telegram.is_configured:
                self.transport = TelegramTransport(self.settings.telegram)
                logger.info("  ✓ Telegram transport ready")
            else:
                logger.warning("  ⚠ TELEGRAM_BOT_TOKEN not set — alerts will only be logged")

            self.notifier = Notifier(
                transport=self.transport,
                cooldown=self.settings.notifications.cooldown,
                enabled=self.settings.notifications.enabled,
            )
            return True

        except Exception as e:
            logger.exception(f"  ✗ Notification init failed: {e}")
            return False

    # ==================================================================
    # PHASE 3: MONITORING
    # ==================================================================

    async def _init_monitoring(self) -> bool:
        """Wire up Prober, MonitoringEngine and Scheduler."""
        logger.info("── Phase 3: Monitoring ───────────────────────────")
        monitoring = self.settings.monitoring
        try:
            self.prober = Prober(
                timeout=monitoring.probe_timeout,
                user_agent=monitoring.user_agent,
            )
            self.engine = MonitoringEngine(
                registry=self.registry,
                store=self.store,
                prober=self.prober,
                notifier=self.notifier,
                preferences=self.registry,
                probe_timeout=monitoring.probe_timeout,
                max_concurrent=monitoring.max_concurrent_probes,
            )
            self.scheduler = Scheduler(
                engine=self.engine,
                notifier=self.notifier,
                db_manager=self.db_manager,
                tick_interval=monitoring.tick_interval,
                startup_delay=monitoring.startup_delay,
            )
            logger.info("  ✓ Prober, MonitoringEngine, Scheduler created")
            return True

        except Exception as e:
            logger.exception(f"  ✗ Monitoring init failed: {e}")
            return False

    # ==================================================================
    # PHASE 4: HEALTH SERVER
    # ==================================================================

    async def _init_health_server(self) -> bool:
        logger.info("── Phase 4: Health Server ────────────────────────")
        if not self.settings.web.enabled:
            logger.info("  HealthServer disabled (WEB_ENABLED=false)")
            return True

        try:
            self.health_server = HealthServer(
                self.settings.web,
                engine=self.engine,
                scheduler=self.scheduler,
                db_manager=self.db_manager,
                app_info={
                    "app_name": self.settings.app_name,
                    "app_version": self.settings.app_version,
                },
            )
            await self.health_server.start()
            return True

        except Exception as e:
            logger.exception(f"  ✗ HealthServer init failed: {e}")
            self.health_server = None
            return False

    # ==================================================================
    # FULL STARTUP SEQUENCE
    # ==================================================================

    async def startup(self) -> bool:
        """
        Execute the complete startup sequence.
        Returns False (and logs errors) if any critical phase fails.
        """
        self._print_banner()

        if not await self._init_database():
            return False

        if not await self._init_notifications():
            return False

        if not await self._init_monitoring():
            return False

        # Non-critical: the monitor works without its status server
        if not await self._init_health_server():
            logger.warning("  ⚠ HealthServer unavailable — continuing without it")

        logger.info("── Starting background services ───────────────────")
        await self.scheduler.start()

        self._is_running = True
        logger.info("=" * 74)
        logger.info("  ✓ ALL SYSTEMS OPERATIONAL")
        logger.info("=" * 74)
        return True

    # ==================================================================
    # SHUTDOWN SEQUENCE
    # ==================================================================

    async def shutdown(self) -> None:
        """
        Graceful shutdown in reverse order.
        Each step is wrapped in try/except so a failure in one subsystem
        doesn't prevent the others from cleaning up.
        """
        if not self._is_running and self.db_manager is None:
            return

        logger.info("=" * 74)
        logger.info("  SHUTTING DOWN …")
        logger.info("=" * 74)

        self._is_running = False

        steps = [
            ("Scheduler", self.scheduler.stop if self.scheduler else None),
            ("HealthServer", self.health_server.stop if self.health_server else None),
            ("Prober", self.prober.close if self.prober else None),
            ("TelegramTransport", self.transport.close if self.transport else None),
            ("Database", self.db_manager.close if self.db_manager else None),
        ]
        for name, step in steps:
            if step is None:
                continue
            try:
                await step()
                logger.info(f"  ✓ {name} stopped")
            except Exception as e:
                logger.error(f"  ✗ {name} stop error: {e}")

        self.db_manager = None

        logger.info("=" * 74)
        logger.info("  ✓ SHUTDOWN COMPLETE")
        logger.info("=" * 74)

    # ==================================================================
    # RUN
    # ==================================================================

    def request_stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        """Block until a stop is requested."""
        await self._stop_event.wait()


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(app: UptimeMonitorApplication) -> None:
    """
    Install SIGTERM / SIGINT handlers so that the monitor shuts down
    gracefully even when killed by the OS.
    """
    loop = asyncio.get_running_loop()

    def _handle_signal(sig: signal.Signals) -> None:
        logger.info(f"  ⚡ {sig.name} received — initiating graceful shutdown…")
        app.request_stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig)
        except (NotImplementedError, OSError):
            # Not supported on Windows; KeyboardInterrupt still works there
            pass


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

async def main() -> None:
    """
    Async main — creates the app, starts it, and runs until shutdown.
    """
    settings = get_settings()
    setup_logging(settings.logging)

    app = UptimeMonitorApplication(settings)
    _install_signal_handlers(app)

    try:
        if not await app.startup():
            logger.error("  ✗ Startup failed — exiting")
            sys.exit(1)
        await app.run()
    finally:
        await app.shutdown()


# ============================================================================
# SCRIPT ENTRY POINT
# ============================================================================

def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
