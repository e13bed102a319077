import enum
import logging
import uuid

logger = logging.getLogger(__name__)


class EventType(enum.Enum):
    department_created = "department.created"
    department_updated = "department.updated"
    department_moved = "department.moved"
    department_deleted = "department.deleted"

    category_created = "category.created"
    category_updated = "category.updated"
    category_moved = "category.moved"
    category_deleted = "category.deleted"

    file_created = "file.created"
    file_updated = "file.updated"
    file_access_changed = "file.access_changed"
    file_trashed = "file.trashed"
    file_restored = "file.restored"
    file_purged = "file.purged"
    file_downloaded = "file.downloaded"

    version_created = "version.created"
    version_set_current = "version.set_current"
    version_trashed = "version.trashed"
    version_restored = "version.restored"

    asset_uploaded = "asset.uploaded"
    asset_trashed = "asset.trashed"
    asset_restored = "asset.restored"

    file_request_created = "file_request.created"
    file_request_asset_uploaded = "file_request.asset_uploaded"
    file_request_canceled = "file_request.canceled"
    file_request_rejected = "file_request.rejected"
    file_request_approved = "file_request.approved"


def publish_event(
    event_type: EventType,
    entity_type: str,
    entity_id: str | uuid.UUID,
    actor_id: str | uuid.UUID | None = None,
    diff: dict | None = None,
    metadata: dict | None = None,
) -> None:
    """Fire-and-forget audit publishing.

    Queues a Celery task that persists the audit event. Never raises, so a
    broken audit pipeline cannot roll back the operation that produced it.
    """
    try:
        from app.tasks.events import record_audit_event

        record_audit_event.delay(
            action=event_type.value,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=str(actor_id) if actor_id else None,
            diff=diff,
            metadata=metadata or {},
        )
        logger.debug(
            "Published event %s for %s/%s", event_type.value, entity_type, entity_id
        )
    except Exception as e:
        logger.exception("Failed to publish event %s: %s", event_type.value, e)
