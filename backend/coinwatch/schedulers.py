"""
Background maintenance jobs.
"""

import logging
from typing import Optional
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from .rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def setup_scheduler(limiter: RateLimiter, cleanup_seconds: int) -> BackgroundScheduler:
    """
    Set up the periodic purge of expired rate-limit windows.
    
    Returns:
        Configured (not yet started) scheduler
    """
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        limiter.purge_expired,
        trigger=IntervalTrigger(seconds=cleanup_seconds),
        id='rate_limit_cleanup',
        name='Rate Limit Window Cleanup',
        replace_existing=True
    )
    logger.info(f"Rate-limit cleanup scheduled every {cleanup_seconds}s")
    return scheduler


def start_scheduler(limiter: RateLimiter, cleanup_seconds: int) -> BackgroundScheduler:
    """Create and start the maintenance scheduler."""
    scheduler = setup_scheduler(limiter, cleanup_seconds)
    scheduler.start()
    logger.info("Scheduler started")
    return scheduler


def stop_scheduler(scheduler: Optional[BackgroundScheduler]):
    """Stop the scheduler if it is running."""
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
