import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from habitflow.core.config import settings
from habitflow.workers.habit_horizon_worker import HabitHorizonWorker

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service for managing scheduled tasks"""

    def __init__(self, worker: HabitHorizonWorker = None):
        self.worker = worker or HabitHorizonWorker()
        self.scheduler = AsyncIOScheduler(timezone=settings.timezone)
        self._setup_jobs()

    def _setup_jobs(self):
        """Set up all scheduled jobs"""

        # Extend the horizon just after local midnight
        self.scheduler.add_job(
            func=self.worker.run_horizon_refresh,
            trigger=CronTrigger(
                hour=settings.horizon_refresh_hour,
                minute=settings.horizon_refresh_minute,
                timezone=settings.timezone
            ),
            id="habit_horizon_refresh",
            name="Habit Horizon Refresh",
            replace_existing=True
        )

        logger.info("Scheduled jobs configured")

    def start(self):
        """Start the scheduler and catch up on the horizon right away"""
        self.worker.run_horizon_refresh()
        try:
            self.scheduler.start()
            logger.info("Scheduler started successfully")
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")

    def shutdown(self):
        """Shutdown the scheduler"""
        if not self.scheduler.running:
            return
        try:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shut down successfully")
        except Exception as e:
            logger.error(f"Failed to shutdown scheduler: {e}")


scheduler_service = SchedulerService()
