"""
Scheduled tasks for the listing sync service.
This module sets up scheduled tasks that run within the FastAPI application.
"""

import logging
from datetime import datetime
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR

from marketsync.core.config import get_settings
from marketsync.services.repricing_service import (
    configured_repricing_settings,
    get_repricing_engine,
)

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def daily_repricing_task():
    """Push every listing priced below its stored minimum back up to it, per configured user"""
    settings = get_settings()
    user_ids = settings.repricing_user_ids
    if not user_ids:
        logger.info("Daily repricing: no users configured (REPRICING_USER_IDS)")
        return

    logger.info(f"=== DAILY REPRICING STARTING for {len(user_ids)} users ===")
    engine = get_repricing_engine()
    repricing_settings = configured_repricing_settings()

    for user_id in user_ids:
        try:
            summary = await engine.reprice_below_minimum(user_id, repricing_settings)
            logger.info(f"Daily repricing for {user_id}: {summary.to_dict()}")
        except Exception as e:
            # One user's failure must not stop the others
            logger.exception(f"Error in daily repricing for user {user_id}: {str(e)}")


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.info(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler() -> AsyncIOScheduler:
    """Create and configure the scheduler"""
    global scheduler

    if scheduler is not None:
        return scheduler

    scheduler = AsyncIOScheduler()
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    settings = get_settings()
    if settings.REPRICING_SCHEDULE_ENABLED:
        scheduler.add_job(
            daily_repricing_task,
            CronTrigger.from_crontab(settings.REPRICING_SCHEDULE),
            id="daily_repricing",
            name="Daily Minimum Price Check",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=3600  # 1 hour grace time
        )
        logger.info(f"Daily repricing job added with schedule: {settings.REPRICING_SCHEDULE}")
    else:
        logger.info("Scheduled repricing is disabled. Set REPRICING_SCHEDULE_ENABLED=true to enable")

    return scheduler


async def start_scheduler():
    """Start the scheduler"""
    global scheduler

    if scheduler is None:
        scheduler = create_scheduler()

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started successfully")

        jobs = scheduler.get_jobs()
        if jobs:
            logger.info(f"Active scheduled jobs: {len(jobs)}")
            for job in jobs:
                logger.info(f"  - {job.name}: {job.trigger}")
        else:
            logger.info("No scheduled jobs configured")


async def stop_scheduler():
    """Stop the scheduler gracefully"""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped successfully")
    scheduler = None


async def get_scheduler_status():
    """Get current scheduler status and job information"""
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs_info = []
    for job in scheduler.get_jobs():
        jobs_info.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger)
        })

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": jobs_info
    }
