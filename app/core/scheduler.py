import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.clock import system_clock
from app.core.config import settings
from app.core.database import SessionLocal
from app.services.attempt import attempt_service

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def expire_overdue_attempts():
    db = SessionLocal()
    try:
        expired = attempt_service.expire_overdue_attempts(db, now=system_clock.now())
        logger.debug(f"Expiry sweep finished: {expired} attempts expired")
    except Exception as e:
        db.rollback()
        logger.error(f"Error sweeping overdue attempts: {e}", exc_info=True)
    finally:
        db.close()


def start_scheduler():
    if settings.TESTING:
        logger.info("Scheduler disabled in test environment")
        return

    if not scheduler.running:
        scheduler.add_job(
            expire_overdue_attempts,
            'interval',
            seconds=settings.EXPIRY_SWEEP_INTERVAL_SEC,
            id='expire_overdue_attempts',
            name='Expire Overdue Attempts',
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        scheduler.start()
        logger.info(f"Scheduler started with expiry sweep every {settings.EXPIRY_SWEEP_INTERVAL_SEC}s")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
