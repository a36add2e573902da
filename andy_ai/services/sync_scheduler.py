from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import logging
from typing import Callable

from starlette.concurrency import run_in_threadpool

from andy_ai.models import PlaidItem

logger = logging.getLogger(__name__)

class SyncScheduler:
    """Daily re-sync of every linked Plaid item"""

    def __init__(self, plaid_service, session_factory: Callable, hour: int = 4,
                 timezone: str = 'America/New_York'):
        self.plaid_service = plaid_service
        self.session_factory = session_factory
        self.hour = hour
        self.timezone = timezone
        self.scheduler = AsyncIOScheduler()

    def start(self):
        self.scheduler.add_job(
            self._sync_all,
            CronTrigger(hour=self.hour, timezone=self.timezone),
            id='daily_plaid_sync'
        )
        self.scheduler.start()
        logger.info(f"Plaid sync scheduled daily at {self.hour}:00 {self.timezone}")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    async def _sync_all(self):
        # Plaid and DB calls block, keep them off the event loop
        return await run_in_threadpool(self.sync_all)

    def sync_all(self) -> int:
        db = self.session_factory()
        synced = 0
        try:
            for item in db.query(PlaidItem).all():
                item_id = item.item_id
                try:
                    self.plaid_service.sync_item(db, item)
                    synced += 1
                except Exception as e:
                    db.rollback()
                    logger.error(f"Failed to sync Plaid item {item_id}: {e}", exc_info=True)
        finally:
            db.close()
        logger.info(f"Plaid sync finished: {synced} items")
        return synced
