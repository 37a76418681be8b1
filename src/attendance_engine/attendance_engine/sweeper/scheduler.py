from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .service import ReconciliationSweeper

logger = logging.getLogger(__name__)


def register_jobs(scheduler: BackgroundScheduler, sweeper: ReconciliationSweeper) -> None:
    # End-of-day runs after midnight for the day that just ended.
    scheduler.add_job(sweeper.run_end_of_day_sweep, "cron", hour=0, minute=5, id="end_of_day_sweep")
    scheduler.add_job(sweeper.run_leave_expiry_sweep, "cron", hour=0, minute=1, id="leave_expiry_sweep")
    scheduler.add_job(sweeper.run_check_in_reminder, "cron", day_of_week="mon-fri", hour=13, minute=0, id="check_in_reminder")
    scheduler.add_job(sweeper.run_daily_report, "cron", hour=23, minute=0, id="daily_report")
    scheduler.add_job(sweeper.run_weekly_summary, "cron", day_of_week="fri", hour=18, minute=0, id="weekly_summary")
    scheduler.add_job(sweeper.run_monthly_summary, "cron", day=1, hour=7, minute=0, id="monthly_summary")


def build_scheduler(sweeper: ReconciliationSweeper, *, timezone: Optional[str] = None) -> BackgroundScheduler:
    """One instance per job and misfires coalesced, so a late or re-fired run never overlaps itself."""
    scheduler = BackgroundScheduler(
        timezone=timezone,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 3600,
        },
    )
    register_jobs(scheduler, sweeper)
    return scheduler


def start_scheduler(sweeper: ReconciliationSweeper, *, timezone: Optional[str] = None) -> BackgroundScheduler:
    scheduler = build_scheduler(sweeper, timezone=timezone)
    scheduler.start()
    logger.info("Scheduler started with jobs: %s", ", ".join(job.id for job in scheduler.get_jobs()))
    return scheduler
