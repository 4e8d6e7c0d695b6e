"""Scheduler and public surface of the checker.

``PPMChecker`` runs one check immediately on ``start`` and then every
``timing.check_interval_seconds``. The host collaborators are loaded lazily
on the first cycle (or the first manual call) and exactly once until ``stop``.
"""

import asyncio
from typing import Any, Dict, Optional, Set

import structlog

from . import __version__
from .auxiliary import AntiIdle, AutoRejoin
from .commands import START_COMMAND, STOP_COMMAND
from .config import UNSET_APPLICATION_ID, get_config
from .correlation import CheckResult
from .exceptions import BootstrapError
from .host import HostBindings
from .recovery import RecoveryOrchestrator, ScheduleCycle
from .scheduler import JobScheduler
from .session import CheckerSession, ConfigProvider, SleepFunc

logger = structlog.get_logger(__name__)

CHECK_JOB_ID = "ppm_check"


class PPMChecker:
    """Periodic PPM check with automatic cluster recovery."""

    def __init__(
        self,
        host: HostBindings,
        config_provider: ConfigProvider = get_config,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.session = CheckerSession(host, config_provider, sleep)
        self.orchestrator = RecoveryOrchestrator(self.session)
        self.scheduler = JobScheduler()
        self.anti_idle = AntiIdle(self.session, self.scheduler)
        self.auto_rejoin = AutoRejoin(self.session, self.scheduler, self.orchestrator)
        self.session.on_auto_kick = self.auto_rejoin.on_auto_kick

        self.cycles_run = 0
        self.last_cycle: Optional[ScheduleCycle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def start(self) -> bool:
        """Schedule the periodic check and fire one immediately."""
        if self.running:
            logger.warning("Checker already started")
            return False

        config = self.session.config
        if not config.bot.application_id or config.bot.application_id == UNSET_APPLICATION_ID:
            logger.error("Config error: bot application id not set")
            return False

        self.scheduler.start()
        self.scheduler.add_interval_job(
            CHECK_JOB_ID,
            self._scheduled_cycle,
            seconds=config.timing.check_interval_seconds,
            description="Periodic PPM check",
            max_instances=2,
        )
        self.anti_idle.schedule()
        self._spawn(self._run_cycle("startup"))
        logger.info("Checker started", version=__version__)
        return True

    def stop(self) -> None:
        """Cancel timers, unblock pending waits and release the host."""
        self.scheduler.stop()
        self.session.reset()
        logger.info("Stopped")

    async def run_check_now(self) -> Optional[CheckResult]:
        return await self._run_cycle("manual")

    async def send_stop_now(self) -> bool:
        if not await self._ensure_bootstrapped():
            return False
        return await self.session.execute(STOP_COMMAND)

    async def send_start_now(self) -> bool:
        if not await self._ensure_bootstrapped():
            return False
        return await self.session.execute(START_COMMAND)

    def status(self) -> Dict[str, Any]:
        last = self.last_cycle
        return {
            "running": self.running,
            "version": __version__,
            "modules_loaded": self.session.modules_loaded,
            "identity_id": self.session.identity_id,
            "cycles_run": self.cycles_run,
            "check_pending": self.session.check_correlator.busy,
            "pending_notifications": len(self.session.queue),
            "last_cycle": None if last is None else {
                "trigger": last.trigger,
                "started_at": last.started_at.isoformat(),
                "finished_at": last.finished_at.isoformat() if last.finished_at else None,
                "result": last.result.kind.value if last.result else None,
                "value": last.result.value if last.result else None,
            },
            "jobs": self.scheduler.list_jobs(),
        }

    async def _ensure_bootstrapped(self) -> bool:
        try:
            performed = await self.session.init()
        except BootstrapError as e:
            logger.error("Bootstrap failed", error=e.message)
            return False
        if performed:
            self.session.notify(
                f"✅ **PPMChecker (v{__version__})** Started. Monitoring for user ID: {self.session.identity_id}"
            )
        return True

    async def _run_cycle(self, trigger: str) -> Optional[CheckResult]:
        if trigger != "manual" and not self.running:
            logger.info("Checker stopped, skipping cycle", trigger=trigger)
            return None

        modules_initialized = self.session.modules_loaded
        if not await self._ensure_bootstrapped():
            if self.running:
                self.scheduler.stop()
                logger.error("Periodic jobs cancelled after bootstrap failure")
            return None

        cycle = ScheduleCycle(trigger=trigger, modules_initialized=modules_initialized)
        self.last_cycle = cycle
        self.cycles_run += 1
        try:
            return await self.orchestrator.run_cycle(cycle)
        except Exception as e:
            logger.error("Check cycle failed", trigger=trigger, error=str(e))
            return None

    async def _scheduled_cycle(self) -> None:
        await self._run_cycle("scheduled")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
