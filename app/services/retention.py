import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.models.library import FileItem
from app.services.documents import Documents, documents

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    purged: list = field(default_factory=list)
    failed: list = field(default_factory=list)


class RetentionSweeper:
    """Purges file items that have sat in the trash longer than the TTL.

    Stateless between runs. Each item is purged on its own, so one failure
    never blocks the rest, and re-running after a partial sweep is safe.
    """

    def __init__(self, document_store: Documents, ttl_days: int):
        self.documents = document_store
        self.ttl = timedelta(days=ttl_days)

    def expired_ids(self, db: Session, now: datetime | None = None) -> list:
        cutoff = (now or datetime.now(timezone.utc)) - self.ttl
        return db.scalars(
            select(FileItem.id)
            .where(FileItem.trashed_at.is_not(None))
            .where(FileItem.trashed_at <= cutoff)
            .order_by(FileItem.trashed_at.asc())
        ).all()

    def sweep(self, db: Session, now: datetime | None = None) -> SweepResult:
        result = SweepResult()
        for item_id in self.expired_ids(db, now):
            try:
                if self.documents.purge_item(db, item_id):
                    result.purged.append(item_id)
            except Exception as e:
                db.rollback()
                logger.warning("Failed to purge trashed file %s: %s", item_id, e)
                result.failed.append(item_id)
        logger.info(
            "Trash sweep purged %d files, %d failed",
            len(result.purged),
            len(result.failed),
        )
        return result


sweeper = RetentionSweeper(documents, settings.trash_ttl_days)
