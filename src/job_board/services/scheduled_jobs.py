"""
Scheduled Jobs Service
Periodic expiration sweep for postings and stale pending payments
"""
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import config

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> BackgroundScheduler:
    """
    Get or create the background scheduler instance

    Returns:
        BackgroundScheduler instance
    """
    global _scheduler

    if _scheduler is None:
        _scheduler = BackgroundScheduler(
            job_defaults={
                'coalesce': True,  # Combine missed runs
                'max_instances': 1,  # Only one instance at a time
                'misfire_grace_time': 300
            }
        )

    return _scheduler


def start_scheduler():
    """
    Start the background scheduler and register the sweep job
    """
    scheduler = get_scheduler()

    if scheduler.running:
        logger.warning("Scheduler already running")
        return

    scheduler.add_job(
        func=run_expiration_sweep_job,
        trigger=IntervalTrigger(minutes=config.EXPIRATION_SWEEP_MINUTES),
        id='expiration_sweep',
        name='Expire overdue postings and stale payments',
        replace_existing=True
    )
    logger.info(f"Registered expiration sweep job (every {config.EXPIRATION_SWEEP_MINUTES} minutes)")

    scheduler.start()
    logger.info("Background scheduler started")


def stop_scheduler():
    """
    Stop the background scheduler
    """
    scheduler = get_scheduler()

    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")


def run_expiration_sweep(db, gateway=None, now=None) -> dict:
    """
    Expire overdue postings and void stale pending transactions

    Uses the same predicate as read-time expiration, so running it
    concurrently with requests converges on the same state.

    Returns:
        Counts of expired postings and voided transactions
    """
    from ..clock import utcnow
    from .payment_orchestrator import PaymentOrchestrator
    from .posting_lifecycle import PostingLifecycle

    now = now or utcnow

    expired = PostingLifecycle(db, now=now).expire_overdue()
    db.commit()

    # Without a processor a stale payment may still have succeeded remotely
    voided = 0
    if gateway is not None:
        voided = PaymentOrchestrator(db, gateway=gateway, now=now).resolve_stale_pending()

    return {"postings_expired": expired, "transactions_voided": voided}


def run_expiration_sweep_job():
    """
    Scheduler entry point; owns its own session and gateway
    """
    from ..db.engine import SessionLocal
    from .payment_gateway import get_payment_gateway

    logger.info("Starting scheduled expiration sweep")

    db = SessionLocal()
    try:
        try:
            gateway = get_payment_gateway(config.PAYMENT_PROVIDER, config)
        except ValueError as e:
            logger.warning(f"Payment gateway unavailable, skipping stale payment sweep: {e}")
            gateway = None

        result = run_expiration_sweep(db, gateway=gateway)
        logger.info(
            f"Expiration sweep finished: {result['postings_expired']} posting(s) expired, "
            f"{result['transactions_voided']} transaction(s) voided"
        )
    except Exception as e:
        db.rollback()
        logger.error(f"Expiration sweep failed: {e}", exc_info=True)
    finally:
        db.close()
