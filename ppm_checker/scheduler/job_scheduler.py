"""Timer primitives for periodic and deferred checker jobs."""

import inspect
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = structlog.get_logger(__name__)


class JobScheduler:
    """Manages interval and one-shot jobs using APScheduler."""

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.running = False

    def start(self):
        """Start the job scheduler on the running event loop."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.scheduler.start()
        self.running = True
        logger.info("Job scheduler started")

    def stop(self):
        """Cancel every job and stop the scheduler."""
        if not self.running:
            return

        self.scheduler.remove_all_jobs()
        self.scheduler.shutdown(wait=False)
        self.jobs.clear()
        self.running = False
        logger.info("Job scheduler stopped")

    def add_interval_job(
        self,
        job_id: str,
        func: Callable,
        seconds: float,
        args: Optional[tuple] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
        max_instances: int = 1
    ):
        """Add an interval-based job."""
        self._require_running()
        if job_id in self.jobs:
            logger.warning("Job already exists, replacing", job_id=job_id)
            self.remove_job(job_id)

        trigger = IntervalTrigger(seconds=seconds)

        job = self.scheduler.add_job(
            func=func,
            trigger=trigger,
            id=job_id,
            args=args or (),
            kwargs=kwargs or {},
            name=description or job_id,
            max_instances=max_instances,
            coalesce=True
        )

        self.jobs[job_id] = {
            "job": job,
            "type": "interval",
            "seconds": seconds,
            "description": description,
            "added_at": datetime.now(timezone.utc)
        }

        logger.info("Added interval job",
                    job_id=job_id,
                    interval_seconds=seconds,
                    description=description)

    def add_date_job(
        self,
        job_id: str,
        func: Callable,
        delay_seconds: float,
        args: Optional[tuple] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None
    ):
        """Add a single-shot job that runs once after ``delay_seconds``."""
        self._require_running()
        if job_id in self.jobs:
            logger.warning("Job already exists, replacing", job_id=job_id)
            self.remove_job(job_id)

        run_at = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)

        async def _run_once(*a, **kw):
            self.jobs.pop(job_id, None)
            result = func(*a, **kw)
            if inspect.isawaitable(result):
                await result

        job = self.scheduler.add_job(
            func=_run_once,
            trigger=DateTrigger(run_date=run_at),
            id=job_id,
            args=args or (),
            kwargs=kwargs or {},
            name=description or job_id,
            misfire_grace_time=None
        )

        self.jobs[job_id] = {
            "job": job,
            "type": "date",
            "run_at": run_at,
            "description": description,
            "added_at": datetime.now(timezone.utc)
        }

        logger.info("Added one-shot job",
                    job_id=job_id,
                    delay_seconds=delay_seconds,
                    description=description)

    def remove_job(self, job_id: str) -> bool:
        """Remove a scheduled job."""
        if job_id not in self.jobs:
            logger.warning("Job not found", job_id=job_id)
            return False

        del self.jobs[job_id]
        try:
            self.scheduler.remove_job(job_id)
            logger.info("Removed job", job_id=job_id)
            return True
        except Exception as e:
            logger.error("Failed to remove job", job_id=job_id, error=str(e))
            return False

    def has_job(self, job_id: str) -> bool:
        return job_id in self.jobs

    def get_job_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Get status information for a job."""
        if job_id not in self.jobs or not self.running:
            return None

        job_info = self.jobs[job_id]
        scheduler_job = self.scheduler.get_job(job_id)

        if scheduler_job is None:
            return None

        return {
            "job_id": job_id,
            "name": scheduler_job.name,
            "type": job_info["type"],
            "next_run": scheduler_job.next_run_time.isoformat() if scheduler_job.next_run_time else None,
            "added_at": job_info["added_at"].isoformat(),
            "description": job_info.get("description")
        }

    def list_jobs(self) -> List[Dict[str, Any]]:
        """List all scheduled jobs."""
        job_statuses = []
        for job_id in list(self.jobs):
            status = self.get_job_status(job_id)
            if status:
                job_statuses.append(status)

        return job_statuses

    def _require_running(self):
        if not self.running:
            raise RuntimeError("Job scheduler is not running")
