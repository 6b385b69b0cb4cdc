"""
Background task services for account cleanup
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from tabsync.core.config import settings
from tabsync.db.repositories import UserRepository

logger = logging.getLogger(__name__)


class BackgroundTaskManager:
    """Manages periodic maintenance tasks"""

    def __init__(
        self,
        cleanup_interval: Optional[float] = None,
        retention_minutes: Optional[int] = None
    ):
        self.cleanup_interval = cleanup_interval or settings.CLEANUP_INTERVAL_SECONDS
        self.retention = timedelta(minutes=retention_minutes or settings.UNVERIFIED_USER_RETENTION_MINUTES)
        self.is_running = False
        self.tasks: Dict[str, asyncio.Task] = {}

    async def start(self):
        """Start all background tasks"""
        if self.is_running:
            return

        self.is_running = True
        logger.info("Starting background task manager")
        self.tasks['unverified_cleanup'] = asyncio.create_task(self._cleanup_loop())

    async def stop(self):
        """Stop all background tasks"""
        if not self.is_running:
            return

        self.is_running = False
        logger.info("Stopping background task manager")

        for task_name, task in self.tasks.items():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info(f"Cancelled task: {task_name}")

        self.tasks.clear()

    async def _cleanup_loop(self):
        """Periodically remove accounts that never verified their OTP"""
        while self.is_running:
            await asyncio.sleep(self.cleanup_interval)
            try:
                await self.cleanup_unverified_users()
            except Exception as e:
                logger.error(f"Error during user cleanup: {e}")

    async def cleanup_unverified_users(self) -> int:
        """Delete init accounts older than the retention window"""
        cutoff = datetime.now() - self.retention
        deleted = await UserRepository.delete_unverified(cutoff)
        logger.info(f"Cleanup complete: Deleted {deleted} unverified users.")
        return deleted

    async def get_task_status(self) -> Dict[str, Any]:
        """Get status of background tasks"""
        return {
            'is_running': self.is_running,
            'tasks': {
                task_name: {'running': not task.done(), 'cancelled': task.cancelled()}
                for task_name, task in self.tasks.items()
            }
        }
