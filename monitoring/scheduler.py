"""
============================================================================
UPTIME MONITOR - BACKGROUND TASK SCHEDULER
============================================================================
A lightweight, asyncio-native task scheduler.  All jobs run as coroutines
in the same event loop; no external broker is needed.

Registered Jobs
---------------
1.  probe_tick          (every MONITOR_TICK_INTERVAL, default 30 s)
    Runs MonitoringEngine.run_tick().  The first run happens
    MONITOR_STARTUP_DELAY seconds after start so operators get feedback
    without waiting a full interval.

2.  cooldown_gc         (every 1 h)
    Drops notifier cooldown entries older than twice the cooldown so the
    map cannot grow without bound.

3.  health_heartbeat    (every 10 min)
    Logs a liveness line with the database status and tick counters.

A job whose previous run is still in progress when it comes due is
skipped for that slot, never run twice in parallel.  A job that raises
is logged and keeps its schedule.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from database.manager import DatabaseManager
from monitoring.alerts import Notifier
from monitoring.monitor import MonitoringEngine
from utils.logger import get_logger


logger = get_logger("Scheduler")


COOLDOWN_GC_INTERVAL = 3600
HEARTBEAT_INTERVAL = 600


# ============================================================================
# JOB DEFINITION
# ============================================================================

@dataclass
class ScheduledJob:
    """
    Describes a single periodic background job.

    Attributes
    ----------
    name : str
        Human-readable identifier (used in logs).
    interval_seconds : float
        How often the job runs.
    coroutine_factory : Callable
        An async callable (no arguments) that performs the work.
    enabled : bool
        Can be toggled at runtime.
    last_run : Optional[float]
        Epoch timestamp of the last successful execution.
    next_run : float
        Epoch timestamp when the job should next execute.
    run_count : int
        Total number of successful executions since startup.
    error_count : int
        Total number of failed executions since startup.
    skip_count : int
        Slots skipped because the previous run had not finished.
    running : bool
        True while an execution is in progress.
    """
    name: str
    interval_seconds: float
    coroutine_factory: Callable
    enabled: bool = True
    last_run: Optional[float] = None
    next_run: float = field(default_factory=time.time)
    run_count: int = 0
    error_count: int = 0
    skip_count: int = 0
    running: bool = False


# ============================================================================
# SCHEDULER
# ============================================================================

class Scheduler:
    """
    Asyncio-based periodic job scheduler.

    Usage
    -----
        scheduler = Scheduler(engine, notifier, db_manager)
        await scheduler.start()
        # ... later ...
        await scheduler.stop()
    """

    def __init__(
        self,
        engine: MonitoringEngine,
        notifier: Optional[Notifier] = None,
        db_manager: Optional[DatabaseManager] = None,
        tick_interval: float = 30.0,
        startup_delay: float = 2.0,
        poll_interval: float = 1.0,
    ):
        self.engine = engine
        self.notifier = notifier
        self.db_manager = db_manager
        self.tick_interval = tick_interval
        self.startup_delay = startup_delay

        self._jobs: Dict[str, ScheduledJob] = {}
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._job_tasks: Set[asyncio.Task] = set()
        self._poll_interval = poll_interval  # how often the main loop wakes up to check jobs

        self._register_builtin_jobs()

        logger.info(
            f"Scheduler created with {len(self._jobs)} built-in jobs — "
            f"tick_interval={tick_interval}s, startup_delay={startup_delay}s"
        )

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # JOB REGISTRATION
    # ------------------------------------------------------------------

    def register_job(
        self,
        name: str,
        interval_seconds: float,
        coroutine_factory: Callable,
        enabled: bool = True,
        first_delay: float = 0.0,
    ) -> None:
        """
        Register a new periodic job.

        Parameters
        ----------
        name : str
            Unique job name.
        interval_seconds : float
            Period in seconds.
        coroutine_factory : Callable
            An async callable that takes no arguments.
        enabled : bool
            Whether the job starts enabled.
        first_delay : float
            Seconds from registration until the first run.
        """
        if name in self._jobs:
            logger.warning(f"[Scheduler] Job '{name}' already registered, overwriting")

        self._jobs[name] = ScheduledJob(
            name=name,
            interval_seconds=interval_seconds,
            coroutine_factory=coroutine_factory,
            enabled=enabled,
            next_run=time.time() + first_delay,
        )
        logger.debug(f"[Scheduler] Registered job '{name}' (interval={interval_seconds}s)")

    def get_job(self, name: str) -> Optional[ScheduledJob]:
        return self._jobs.get(name)

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the scheduler loop."""
        if self._running:
            logger.warning("Scheduler is already running")
            return

        # Due times count from start, not from construction
        now = time.time()
        for job in self._jobs.values():
            if job.name == "probe_tick":
                job.next_run = now + self.startup_delay
            elif job.last_run is None:
                job.next_run = now + job.interval_seconds

        self._running = True
        self._loop_task = asyncio.create_task(self._main_loop())
        logger.info("✓ Scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler loop and cancel jobs still in progress."""
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        for task in list(self._job_tasks):
            task.cancel()
        if self._job_tasks:
            await asyncio.gather(*self._job_tasks, return_exceptions=True)
        self._job_tasks.clear()
        logger.info("✓ Scheduler stopped")

    # ------------------------------------------------------------------
    # MAIN LOOP
    # ------------------------------------------------------------------

    async def _main_loop(self) -> None:
        """
        Wake up every _poll_interval seconds.  For each enabled job whose
        next_run time has arrived, launch it as a background task.
        """
        logger.info("[Scheduler] Main loop started")
        while self._running:
            now = time.time()
            for job in self._jobs.values():
                if job.enabled and now >= job.next_run:
                    # Advance next_run immediately so we don't re-trigger
                    job.next_run = now + job.interval_seconds
                    if job.running:
                        job.skip_count += 1
                        logger.warning(
                            f"[Scheduler] Job '{job.name}' still running — skipping this slot"
                        )
                        continue
                    self._launch(job)

            try:
                await asyncio.sleep(self._poll_interval)
            except asyncio.CancelledError:
                break

        logger.info("[Scheduler] Main loop exited")

    def _launch(self, job: ScheduledJob) -> None:
        job.running = True
        task = asyncio.create_task(self._execute_job(job))
        self._job_tasks.add(task)
        task.add_done_callback(self._job_tasks.discard)

    # ------------------------------------------------------------------
    # JOB EXECUTION
    # ------------------------------------------------------------------

    async def _execute_job(self, job: ScheduledJob) -> None:
        """
        Run a single job, capture timing and errors.
        """
        job.running = True
        start_time = time.time()
        try:
            logger.debug(f"[Scheduler] Running job '{job.name}'…")
            await job.coroutine_factory()
            elapsed = time.time() - start_time

            job.run_count += 1
            job.last_run = time.time()
            logger.debug(
                f"[Scheduler] Job '{job.name}' completed in {elapsed:.2f}s "
                f"(run #{job.run_count})"
            )

        except Exception as e:
            job.error_count += 1
            elapsed = time.time() - start_time
            logger.error(f"[Scheduler] Job '{job.name}' FAILED after {elapsed:.2f}s: {e}")
        finally:
            job.running = False

    async def run_job_now(self, name: str) -> bool:
        """
        Execute a job immediately and wait for it.

        Returns False if the job is unknown or already running.
        """
        job = self._jobs.get(name)
        if job is None or job.running:
            return False
        await self._execute_job(job)
        return True

    # ------------------------------------------------------------------
    # DIAGNOSTICS
    # ------------------------------------------------------------------

    def get_job_stats(self) -> List[Dict[str, Any]]:
        """Return status of all registered jobs."""
        stats = []
        for job in self._jobs.values():
            stats.append({
                "name": job.name,
                "interval_seconds": job.interval_seconds,
                "enabled": job.enabled,
                "running": job.running,
                "run_count": job.run_count,
                "error_count": job.error_count,
                "skip_count": job.skip_count,
                "last_run": (
                    datetime.fromtimestamp(job.last_run).isoformat()
                    if job.last_run else None
                ),
                "next_run": (
                    datetime.fromtimestamp(job.next_run).isoformat()
                    if job.next_run else None
                ),
            })
        return stats

    # ==================================================================
    # BUILT-IN JOBS
    # ==================================================================

    def _register_builtin_jobs(self) -> None:
        """Register all built-in periodic jobs."""

        # 1. Probe tick
        self.register_job(
            "probe_tick",
            interval_seconds=self.tick_interval,
            coroutine_factory=self._job_probe_tick,
            first_delay=self.startup_delay,
        )

        # 2. Cooldown map GC (every 1 hour)
        self.register_job(
            "cooldown_gc",
            interval_seconds=COOLDOWN_GC_INTERVAL,
            coroutine_factory=self._job_cooldown_gc,
            enabled=self.notifier is not None,
            first_delay=COOLDOWN_GC_INTERVAL,
        )

        # 3. Health heartbeat (every 10 minutes)
        self.register_job(
            "health_heartbeat",
            interval_seconds=HEARTBEAT_INTERVAL,
            coroutine_factory=self._job_health_heartbeat,
            first_delay=HEARTBEAT_INTERVAL,
        )

    # ------------------------------------------------------------------
    # JOB: Probe Tick
    # ------------------------------------------------------------------

    async def _job_probe_tick(self) -> None:
        await self.engine.run_tick()

    # ------------------------------------------------------------------
    # JOB: Cooldown Map GC
    # ------------------------------------------------------------------

    async def _job_cooldown_gc(self) -> None:
        """
        Remove stale entries from the Notifier's cooldown map.
        Entries older than 2× the cooldown window no longer throttle anything.
        """
        if not self.notifier:
            return

        removed = self.notifier.prune_cooldowns(older_than=self.notifier.cooldown * 2)
        if removed:
            logger.debug(f"[CooldownGC] Removed {removed} stale cooldown entries")

    # ------------------------------------------------------------------
    # JOB: Health Heartbeat
    # ------------------------------------------------------------------

    async def _job_health_heartbeat(self) -> None:
        """
        Write a simple heartbeat log entry.  This is purely for operator
        confidence: if you see heartbeats in the log, the monitor is alive.
        """
        db_status = "n/a"
        if self.db_manager:
            db_status = "OK" if await self.db_manager.check_connection() else "FAIL"

        stats = self.engine.get_stats()
        logger.info(
            f"[Heartbeat] ✓ Monitor alive — db={db_status}, "
            f"ticks={stats['ticks_run']}, skipped={stats['ticks_skipped']}, "
            f"endpoints_tracked={stats['tracked_endpoints']}"
        )


# ============================================================================
# END OF SCHEDULER MODULE
# ============================================================================
