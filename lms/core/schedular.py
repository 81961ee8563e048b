import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from lms.core.config import settings
from lms.core.database import SessionLocal
from lms.services.reconciliation import CounterReconciler

logger = logging.getLogger(__name__)


def reconcile_counters():
    """
    Scheduled task that recomputes students_count / courses_count from the
    Active enrollments and corrects any drift.
    """
    db = SessionLocal()
    try:
        report = CounterReconciler(db).reconcile()
        logger.info(
            f"[{datetime.now(timezone.utc)}] Counter reconciliation completed. "
            f"Fixed {report.courses_fixed} courses, {report.users_fixed} users."
        )
    except Exception as e:
        logger.error(f"Error during counter reconciliation: {e}")
        db.rollback()
    finally:
        db.close()


def start_scheduler():
    """
    Initialize and start the APScheduler for counter reconciliation.
    """
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        reconcile_counters,
        trigger=IntervalTrigger(minutes=settings.reconciliation_interval_minutes),
        id="counter_reconciliation",
        name="Reconcile enrollment counters",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"Reconciliation scheduler started. Runs every {settings.reconciliation_interval_minutes} minutes."
    )

    return scheduler


def shutdown_scheduler(scheduler: AsyncIOScheduler):
    """
    Gracefully shutdown the scheduler.
    """
    if scheduler:
        scheduler.shutdown()
        logger.info("Reconciliation scheduler shut down.")
