"""Scheduling of periodic and deferred checker jobs."""

from .job_scheduler import JobScheduler

__all__ = ["JobScheduler"]
