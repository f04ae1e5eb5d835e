"""
Background scheduler.
Handles:
- Nightly ledger audit (balance rows vs. transaction sums)
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import SQLAlchemyError

from calorie_rewards.constants import LEDGER_AUDIT_HOUR
from calorie_rewards.database import SessionLocal
from calorie_rewards.services.ledger_service import LedgerService

logger = logging.getLogger("calorie_rewards.scheduler")

scheduler = BackgroundScheduler()


def run_ledger_audit(session_factory=SessionLocal) -> list:
    """Job: verify every account against its ledger"""
    db = session_factory()
    try:
        problems = LedgerService(db).audit_all()
        if problems:
            logger.warning(f"Ledger audit found {len(problems)} inconsistent accounts")
        return problems
    except SQLAlchemyError as e:
        logger.error(f"Scheduler Error (Ledger audit): {e}")
        return []
    finally:
        db.close()


def start_scheduler():
    """Start the scheduler"""
    if not scheduler.running:
        scheduler.add_job(
            run_ledger_audit,
            CronTrigger(hour=LEDGER_AUDIT_HOUR, minute=0),
            id="ledger_audit",
            replace_existing=True
        )
        scheduler.start()
        logger.info(f"Scheduled jobs: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
