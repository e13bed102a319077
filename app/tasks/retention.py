import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.retention.purge_expired_trash", ignore_result=True)
def purge_expired_trash() -> None:
    """Daily task that purges file items trashed longer than TRASH_TTL_DAYS.

    Each item is purged independently; failures are logged by the sweeper
    and left for the next run.
    """
    from app.db import SessionLocal
    from app.services.retention import sweeper

    db = SessionLocal()
    try:
        result = sweeper.sweep(db)
        if result.failed:
            logger.warning(
                "Trash sweep left %d files for the next run", len(result.failed)
            )
    except Exception as e:
        db.rollback()
        logger.exception("Failed to purge expired trash: %s", e)
    finally:
        db.close()
