"""
============================================================================
UPTIME MONITOR - HEALTH SERVER
============================================================================
A lightweight aiohttp HTTP server for monitoring the monitor itself.

    GET /          → 200 "OK"  (basic liveness)
    GET /health    → 200 JSON  { status, uptime, database, jobs, engine }
                     503 when the database check fails
    GET /status    → 200 JSON  every endpoint with its latest observation
                     and 24h / 7d uptime

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import time
from typing import Any, Dict, Optional

from aiohttp import web

from config.settings import WebSettings
from database.manager import DatabaseManager
from monitoring.monitor import MonitoringEngine
from monitoring.scheduler import Scheduler
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("HealthServer")


class HealthServer:
    """
    aiohttp server exposing liveness and status routes.

    Attributes
    ----------
    app : aiohttp.web.Application
    _runner : aiohttp.web.AppRunner
    _site : aiohttp.web.TCPSite
    _start_time : float          — epoch seconds when the server started
    _request_count : int         — total requests served
    """

    def __init__(
        self,
        settings: WebSettings,
        engine: Optional[MonitoringEngine] = None,
        scheduler: Optional[Scheduler] = None,
        db_manager: Optional[DatabaseManager] = None,
        app_info: Optional[Dict[str, str]] = None,
    ):
        self.settings = settings
        self.engine = engine
        self.scheduler = scheduler
        self.db_manager = db_manager
        self.app_info = app_info or {}

        self.app = web.Application()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._start_time: float = time.time()
        self._request_count: int = 0

        # Register routes
        self.app.router.add_get("/", self._handle_root)
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/status", self._handle_status)

    async def start(self) -> None:
        """Bind and start serving."""
        self._start_time = time.time()
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.settings.host, self.settings.port)
        await self._site.start()
        logger.info(f"✓ HealthServer listening on {self.settings.host}:{self.settings.port}")

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
        logger.info("✓ HealthServer stopped")

    # ------------------------------------------------------------------
    # ROUTE HANDLERS
    # ------------------------------------------------------------------

    async def _handle_root(self, request: web.Request) -> web.Response:
        """GET / — simple liveness probe."""
        self._request_count += 1
        return web.Response(text="OK", status=200)

    async def _handle_health(self, request: web.Request) -> web.Response:
        """GET /health — detailed health JSON."""
        self._request_count += 1
        uptime_seconds = int(time.time() - self._start_time)

        database_ok: Optional[bool] = None
        if self.db_manager:
            database_ok = await self.db_manager.check_connection()

        health: Dict[str, Any] = {
            "status": "unhealthy" if database_ok is False else "healthy",
            "uptime_seconds": uptime_seconds,
            "uptime_human": TimeHelper.seconds_to_human_readable(uptime_seconds),
            "requests_served": self._request_count,
            "timestamp": TimeHelper.get_utc_now().isoformat(),
            "database": {None: "n/a", True: "ok", False: "error"}[database_ok],
            **self.app_info,
        }
        if self.scheduler:
            health["jobs"] = self.scheduler.get_job_stats()
        if self.engine:
            health["engine"] = self.engine.get_stats()

        return web.json_response(health, status=503 if database_ok is False else 200)

    async def _handle_status(self, request: web.Request) -> web.Response:
        """GET /status — per-endpoint overview."""
        self._request_count += 1
        if not self.engine:
            return web.json_response({"endpoints": []})
        return web.json_response({"endpoints": await self.engine.status_overview()})


# ============================================================================
# END OF HEALTH SERVER MODULE
# ============================================================================
