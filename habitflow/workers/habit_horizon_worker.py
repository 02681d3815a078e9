"""
Habit Horizon Worker - keeps the rolling occurrence horizon filled
"""

import logging
from datetime import datetime, date
from typing import Any, Callable, ContextManager, Dict, Optional

from habitflow.core.config import settings
from habitflow.core.dates import local_today
from habitflow.services.habit_lifecycle import HabitLifecycleManager
from habitflow.services.occurrence_store import OccurrenceStore, open_store

logger = logging.getLogger(__name__)


class HabitHorizonWorker:
    """Worker that extends habit occurrences forward as "today" advances"""

    def __init__(
        self,
        store_factory: Callable[[], ContextManager[OccurrenceStore]] = open_store,
        horizon_days: Optional[int] = None
    ):
        self.store_factory = store_factory
        self.horizon_days = horizon_days if horizon_days is not None else settings.horizon_days

    def run_horizon_refresh(self, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Main worker function - generates any missing occurrences up to the horizon

        Runs shortly after midnight and once at startup.
        """
        today = today or local_today()
        logger.info(f"Starting habit horizon refresh for {today.isoformat()}")

        start_time = datetime.now()
        results = {
            "date": today.isoformat(),
            "horizon_days": self.horizon_days,
            "habits_processed": 0,
            "occurrences_created": 0,
            "errors": [],
            "execution_time_seconds": 0
        }

        try:
            with self.store_factory() as store:
                manager = HabitLifecycleManager(store, horizon_days=self.horizon_days)
                created = manager.ensure_horizon(today)
                results["habits_processed"] = sum(
                    1 for habit in manager.list_habits() if habit.recurrence.is_recurring
                )
                results["occurrences_created"] = len(created)

            logger.info(
                f"Horizon refresh complete: {results['occurrences_created']} occurrences "
                f"for {results['habits_processed']} habits"
            )
        except Exception as e:
            logger.error(f"Horizon refresh failed: {e}")
            results["errors"].append(f"Critical error: {str(e)}")

        results["execution_time_seconds"] = (datetime.now() - start_time).total_seconds()
        return results
