import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.config import UploadPolicy, settings
from app.errors import ForbiddenError, NotFoundError, StateError, ValidationError
from app.models.library import (
    AccessType,
    Category,
    FileRequest,
    FileRequestAccessDepartment,
    FileRequestAccessUser,
    FileRequestAsset,
    FileRequestStatus,
    FileRequestTranslation,
    FileVersionAsset,
    Section,
    _utcnow,
)
from app.schemas.library import FileRequestCreate
from app.services import authz
from app.services.access import GrantRequest, normalize_grant_request
from app.services.authz import Actor
from app.services.common import apply_pagination, coerce_uuid
from app.services.documents import Documents, documents
from app.services.event import EventType, publish_event
from app.services.i18n import LanguageSet, available_langs, languages
from app.services.storage import IncomingFile, LocalBlobStorage, check_upload, storage

logger = logging.getLogger(__name__)

PENDING_SCOPE = "pending"
HISTORY_SCOPE = "history"
_TERMINAL = (
    FileRequestStatus.approved,
    FileRequestStatus.rejected,
    FileRequestStatus.canceled,
)


class FileRequests:
    """Moderated submissions: pending -> approved | rejected | canceled.

    Every transition out of ``pending`` is terminal and happens exactly once.
    Staged assets are hard-deleted when a request terminates; on approval
    their blobs change owner instead of being copied.
    """

    def __init__(
        self,
        blob_storage: LocalBlobStorage,
        policy: UploadPolicy,
        language_set: LanguageSet,
        document_store: Documents,
    ):
        self.storage = blob_storage
        self.policy = policy
        self.languages = language_set
        self.documents = document_store

    def get(self, db: Session, request_id, actor: Actor) -> FileRequest:
        request = self._get(db, request_id)
        if request.created_by != actor.id and not actor.has(authz.FILE_REQUEST_MODERATE):
            raise ForbiddenError("Access denied")
        return request

    def submit(self, db: Session, actor: Actor, payload: FileRequestCreate) -> FileRequest:
        if not actor.can_submit_files:
            raise ForbiddenError("File submission is not allowed")
        translations = self.languages.clean_translations(payload.translations)
        section = db.get(Section, coerce_uuid(payload.section_id))
        if not section:
            raise NotFoundError("Section not found")
        category = db.get(Category, coerce_uuid(payload.category_id))
        if not category:
            raise NotFoundError("Category not found")
        grant = normalize_grant_request(
            db, actor, payload.access_type, payload.department_ids, payload.user_ids
        )
        comment = (payload.comment or "").strip() or None

        try:
            request = FileRequest(
                section_id=section.id,
                category_id=category.id,
                access_type=grant.access_type,
                status=FileRequestStatus.pending,
                comment=comment,
                created_by=actor.id,
            )
            db.add(request)
            db.flush()
            for data in translations:
                db.add(FileRequestTranslation(file_request_id=request.id, **data))
            _stage_grants(db, request.id, grant)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(request)
        logger.info("Submitted file request %s by %s", request.id, actor.id)
        publish_event(
            EventType.file_request_created,
            entity_type="file_request",
            entity_id=request.id,
            actor_id=actor.id,
            metadata={"access_type": grant.access_type.value},
        )
        return request

    def attach_asset(
        self,
        db: Session,
        request_id,
        lang: str,
        incoming: IncomingFile,
        actor: Actor,
    ) -> FileRequestAsset:
        request = self._get(db, request_id)
        if request.created_by != actor.id:
            raise ForbiddenError("Access denied")
        _ensure_pending(request)
        lang = self.languages.require(lang)
        check_upload(incoming, self.policy)

        blob = self.storage.save(incoming)
        replaced = db.scalar(
            select(FileRequestAsset)
            .where(FileRequestAsset.file_request_id == request.id)
            .where(FileRequestAsset.lang == lang)
        )
        old_location = replaced.storage_location if replaced else None
        try:
            if replaced:
                db.delete(replaced)
                db.flush()
            asset = FileRequestAsset(
                file_request_id=request.id,
                lang=lang,
                original_name=incoming.original_name,
                mime_type=incoming.mime_type,
                size_bytes=blob.size_bytes,
                storage_location=blob.location,
            )
            db.add(asset)
            request.updated_at = _utcnow()
            db.commit()
        except Exception:
            db.rollback()
            self.storage.delete(blob.location)
            raise
        if old_location:
            self.storage.delete(old_location)
        db.refresh(asset)
        logger.info("Staged %s asset %s on request %s", lang, asset.id, request.id)
        publish_event(
            EventType.file_request_asset_uploaded,
            entity_type="file_request",
            entity_id=request.id,
            actor_id=actor.id,
            metadata={
                "lang": lang,
                "size_bytes": blob.size_bytes,
                "original_name": incoming.original_name,
            },
        )
        return asset

    def list_assets(self, db: Session, request_id, actor: Actor) -> list[FileRequestAsset]:
        request = self.get(db, request_id, actor)
        return db.scalars(
            select(FileRequestAsset)
            .where(FileRequestAsset.file_request_id == request.id)
            .order_by(FileRequestAsset.lang.asc())
        ).all()

    def cancel(self, db: Session, request_id, actor: Actor) -> FileRequest:
        request = self._get(db, request_id)
        if request.created_by != actor.id:
            raise ForbiddenError("Access denied")
        return self._terminate(db, request, FileRequestStatus.canceled, actor)

    def reject(
        self, db: Session, request_id, actor: Actor, reason: str | None = None
    ) -> FileRequest:
        authz.require(actor, authz.FILE_REQUEST_MODERATE)
        request = self._get(db, request_id)
        return self._terminate(
            db,
            request,
            FileRequestStatus.rejected,
            actor,
            reason=(reason or "").strip() or None,
        )

    def approve(self, db: Session, request_id, actor: Actor) -> uuid.UUID:
        """Publish a pending request as a new file item in one transaction."""
        authz.require(actor, authz.FILE_REQUEST_MODERATE)
        request = self._get(db, request_id)
        _ensure_pending(request)
        staged = list(request.assets)
        if not staged:
            raise StateError("Request assets missing")

        grant = GrantRequest(
            access_type=request.access_type,
            department_ids=tuple(row.department_id for row in request.access_departments),
            user_ids=tuple(row.person_id for row in request.access_users),
        )
        translations = [
            {"lang": t.lang, "title": t.title, "description": t.description}
            for t in request.translations
        ]

        try:
            item, version = self.documents.add_item(
                db,
                section_id=request.section_id,
                category_id=request.category_id,
                grant=grant,
                translations=translations,
                created_by=request.created_by,
                extra_user_ids=[request.created_by],
            )
            for asset in staged:
                db.add(
                    FileVersionAsset(
                        file_version_id=version.id,
                        lang=asset.lang,
                        original_name=asset.original_name,
                        mime_type=asset.mime_type,
                        size_bytes=asset.size_bytes,
                        storage_location=asset.storage_location,
                    )
                )
            request.status = FileRequestStatus.approved
            request.rejection_reason = None
            request.resolved_by = actor.id
            request.resolved_at = _utcnow()
            request.file_item_id = item.id
            db.execute(
                delete(FileRequestAsset).where(
                    FileRequestAsset.file_request_id == request.id
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(request)
        logger.info(
            "Approved file request %s as file %s (%d assets)",
            request.id,
            item.id,
            len(staged),
        )
        publish_event(
            EventType.file_request_approved,
            entity_type="file_request",
            entity_id=request.id,
            actor_id=actor.id,
            metadata={"file_item_id": str(item.id)},
        )
        publish_event(
            EventType.file_created,
            entity_type="file",
            entity_id=item.id,
            actor_id=actor.id,
            metadata={"file_request_id": str(request.id)},
        )
        publish_event(
            EventType.version_created,
            entity_type="file_version",
            entity_id=version.id,
            actor_id=actor.id,
            metadata={"file_item_id": str(item.id), "version_number": 1},
        )
        return item.id

    def list_for_user(
        self,
        db: Session,
        actor: Actor,
        scope: str | None,
        lang: str | None,
        limit: int,
        offset: int,
    ) -> list[dict]:
        """The actor's own requests; ``pending`` or ``history`` narrows them."""
        stmt = select(FileRequest).where(FileRequest.created_by == actor.id)
        stmt = _apply_scope(stmt, scope)
        stmt = stmt.order_by(FileRequest.created_at.desc())
        requests = db.scalars(apply_pagination(stmt, limit, offset)).all()
        return [self._summary(request, lang) for request in requests]

    def list_for_moderation(
        self,
        db: Session,
        actor: Actor,
        scope: str | None,
        status: str | None,
        lang: str | None,
        limit: int,
        offset: int,
    ) -> list[dict]:
        authz.require(actor, authz.FILE_REQUEST_MODERATE)
        stmt = _apply_scope(select(FileRequest), scope)
        if status:
            try:
                stmt = stmt.where(FileRequest.status == FileRequestStatus(status))
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")
        stmt = stmt.order_by(FileRequest.created_at.desc())
        requests = db.scalars(apply_pagination(stmt, limit, offset)).all()
        return [self._summary(request, lang) for request in requests]

    def _get(self, db: Session, request_id) -> FileRequest:
        request = db.get(FileRequest, coerce_uuid(request_id))
        if not request:
            raise NotFoundError("Request not found")
        return request

    def _terminate(
        self,
        db: Session,
        request: FileRequest,
        status: FileRequestStatus,
        actor: Actor,
        reason: str | None = None,
    ) -> FileRequest:
        _ensure_pending(request)
        locations = [asset.storage_location for asset in request.assets]
        try:
            request.status = status
            request.rejection_reason = reason
            request.resolved_by = actor.id
            request.resolved_at = _utcnow()
            db.execute(
                delete(FileRequestAsset).where(
                    FileRequestAsset.file_request_id == request.id
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        for location in locations:
            self.storage.delete(location)
        db.refresh(request)
        logger.info(
            "File request %s %s (%d staged blobs removed)",
            request.id,
            status.value,
            len(locations),
        )
        event = (
            EventType.file_request_canceled
            if status == FileRequestStatus.canceled
            else EventType.file_request_rejected
        )
        publish_event(
            event,
            entity_type="file_request",
            entity_id=request.id,
            actor_id=actor.id,
            metadata={"reason": reason} if reason else None,
        )
        return request

    def _summary(self, request: FileRequest, lang: str | None) -> dict:
        translation = self.languages.select(request.translations, lang)
        return {
            "id": request.id,
            "status": request.status,
            "access_type": request.access_type,
            "title": translation.title if translation else None,
            "description": translation.description if translation else None,
            "available_langs": available_langs(request.assets),
            "created_by": request.created_by,
            "created_at": request.created_at,
            "resolved_at": request.resolved_at,
            "rejection_reason": request.rejection_reason,
        }


def _ensure_pending(request: FileRequest) -> None:
    if not request.is_pending:
        raise StateError("Request is not pending")


def _apply_scope(stmt, scope: str | None):
    if scope and scope not in (PENDING_SCOPE, HISTORY_SCOPE):
        raise ValidationError(f"Invalid scope: {scope}")
    if scope == PENDING_SCOPE:
        return stmt.where(FileRequest.status == FileRequestStatus.pending)
    if scope == HISTORY_SCOPE:
        return stmt.where(FileRequest.status.in_(_TERMINAL))
    return stmt


def _stage_grants(db: Session, request_id: uuid.UUID, grant: GrantRequest) -> None:
    if grant.access_type != AccessType.restricted:
        return
    for department_id in grant.department_ids:
        db.add(
            FileRequestAccessDepartment(
                file_request_id=request_id, department_id=department_id
            )
        )
    for user_id in grant.user_ids:
        db.add(FileRequestAccessUser(file_request_id=request_id, person_id=user_id))


file_requests = FileRequests(
    storage, UploadPolicy.from_settings(settings), languages, documents
)
