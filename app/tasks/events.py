import logging
import uuid

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.events.record_audit_event", ignore_result=True)
def record_audit_event(
    action: str,
    entity_type: str,
    entity_id: str,
    actor_id: str | None = None,
    diff: dict | None = None,
    metadata: dict | None = None,
) -> None:
    """Persist one audit event in its own session."""
    from app.db import SessionLocal
    from app.models.audit import AuditEvent

    db = SessionLocal()
    try:
        db.add(
            AuditEvent(
                actor_id=uuid.UUID(actor_id) if actor_id else None,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                diff=diff,
                metadata_=metadata or {},
            )
        )
        db.commit()
        logger.info("Recorded audit event %s for %s/%s", action, entity_type, entity_id)
    except Exception as e:
        db.rollback()
        logger.exception("Failed to record audit event %s: %s", action, e)
    finally:
        db.close()
