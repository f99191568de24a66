"""
Job registration for hostca.

Jobs are added to the scheduler created by the app factory once the
components they need exist.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from hostca.db.storage import Storage

logger = logging.getLogger(__name__)


def register_all_jobs(scheduler: BackgroundScheduler, storage: Storage):
    """Register all scheduled jobs with the scheduler."""
    from hostca import config

    if config.GITHUB_SYNC_ENABLED:
        from hostca.jobs.github_sync import build_github_client, sync_github_mappings
        client = build_github_client()
        scheduler.add_job(sync_github_mappings, 'interval',
                          args=[storage, client],
                          seconds=config.GITHUB_SYNC_INTERVAL,
                          coalesce=True, max_instances=1, id="github_sync")
        logger.info(f"GitHub identity sync scheduled every {config.GITHUB_SYNC_INTERVAL}s")
