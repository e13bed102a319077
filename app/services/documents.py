from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from app.config import UploadPolicy, settings
from app.errors import NotFoundError, StateError, ValidationError
from app.models.library import (
    AccessType,
    Category,
    FileAccessDepartment,
    FileAccessUser,
    FileItem,
    FileRequest,
    FileTranslation,
    FileVersion,
    FileVersionAsset,
    Section,
    _utcnow,
)
from app.schemas.library import (
    AccessGrantsIn,
    FileItemCreate,
    FileItemUpdate,
    FileVersionCreate,
)
from app.services import authz
from app.services.access import (
    GrantRequest,
    assert_can_read,
    granting_departments,
    normalize_grant_request,
)
from app.services.authz import Actor
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.event import EventType, publish_event
from app.services.i18n import LanguageSet, languages
from app.services.response import ListResponseMixin
from app.services.storage import (
    IncomingFile,
    LocalBlobStorage,
    StoredBlob,
    check_upload,
    storage,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Download:
    file_item: FileItem
    asset: FileVersionAsset
    path: Path


class Documents(ListResponseMixin):
    """Published file items, their numbered versions and per-language assets.

    Items, versions and assets are trashed independently. Purging an item is
    the only hard delete and removes every row and blob beneath it.
    """

    def __init__(
        self,
        blob_storage: LocalBlobStorage,
        policy: UploadPolicy,
        language_set: LanguageSet,
    ):
        self.storage = blob_storage
        self.policy = policy
        self.languages = language_set

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def get(self, db: Session, file_item_id) -> FileItem:
        item = db.get(FileItem, coerce_uuid(file_item_id))
        if not item:
            raise NotFoundError("File not found")
        return item

    def get_readable(self, db: Session, actor: Actor, file_item_id) -> FileItem:
        authz.require(actor, authz.FILE_READ)
        item = db.get(FileItem, coerce_uuid(file_item_id))
        return assert_can_read(db, actor, item)

    def create(self, db: Session, payload: FileItemCreate, actor: Actor) -> FileItem:
        authz.require(actor, authz.FILE_ADD)
        translations = self.languages.clean_translations(payload.translations)
        section = db.get(Section, coerce_uuid(payload.section_id))
        if not section:
            raise NotFoundError("Section not found")
        category = db.get(Category, coerce_uuid(payload.category_id))
        if not category:
            raise NotFoundError("Category not found")
        if category.section_id != section.id:
            raise ValidationError("Category is not in section")
        grant = normalize_grant_request(
            db, actor, payload.access_type, payload.department_ids, payload.user_ids
        )

        try:
            item, version = self.add_item(
                db,
                section_id=section.id,
                category_id=category.id,
                grant=grant,
                translations=translations,
                created_by=actor.id,
                comment=payload.comment,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(item)
        logger.info("Created file %s with version %s", item.id, version.id)
        publish_event(
            EventType.file_created,
            entity_type="file",
            entity_id=item.id,
            actor_id=actor.id,
            metadata={"access_type": item.access_type.value},
        )
        return item

    def add_item(
        self,
        db: Session,
        *,
        section_id: uuid.UUID,
        category_id: uuid.UUID,
        grant: GrantRequest,
        translations: Iterable[dict],
        created_by: uuid.UUID,
        comment: str | None = None,
        extra_user_ids: Iterable[uuid.UUID] = (),
    ) -> tuple[FileItem, FileVersion]:
        """Stage a new item with version 1 in the open transaction.

        The caller commits. ``extra_user_ids`` are granted alongside the
        normalized targets whatever the access type.
        """
        item = FileItem(
            section_id=section_id,
            category_id=category_id,
            access_type=grant.access_type,
            created_by=created_by,
        )
        db.add(item)
        db.flush()

        version = FileVersion(
            file_item_id=item.id,
            version_number=1,
            comment=comment,
            created_by=created_by,
        )
        db.add(version)
        db.flush()
        item.current_version_id = version.id

        for data in translations:
            db.add(
                FileTranslation(
                    file_item_id=item.id,
                    lang=data["lang"],
                    title=data["title"],
                    description=data.get("description"),
                )
            )
        _write_grants(db, item.id, grant, extra_user_ids)
        db.flush()
        return item, version

    def list(
        self,
        db: Session,
        actor: Actor,
        section_id: str | None,
        category_id: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[FileItem]:
        """Active items the actor may read."""
        authz.require(actor, authz.FILE_READ)
        stmt = select(FileItem).where(FileItem.trashed_at.is_(None))
        if section_id is not None:
            stmt = stmt.where(FileItem.section_id == coerce_uuid(section_id))
        if category_id is not None:
            stmt = stmt.where(FileItem.category_id == coerce_uuid(category_id))
        if not actor.has(authz.FILE_DOWNLOAD_RESTRICTED):
            stmt = stmt.where(_readable_clause(db, actor))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"created_at": FileItem.created_at, "updated_at": FileItem.updated_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    def list_trash(
        self,
        db: Session,
        actor: Actor,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[FileItem]:
        authz.require(actor, authz.FILE_TRASH_READ)
        stmt = select(FileItem).where(FileItem.trashed_at.is_not(None))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"trashed_at": FileItem.trashed_at, "created_at": FileItem.created_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    def update(
        self, db: Session, file_item_id: str, payload: FileItemUpdate, actor: Actor
    ) -> FileItem:
        """Move an item to another section/category and replace its translations.

        Omitted fields are left as they are. The category must belong to the
        resulting section.
        """
        authz.require(actor, authz.FILE_UPDATE)
        item = self._active_item(db, file_item_id)
        data = payload.model_dump(exclude_unset=True)
        before = {
            "section_id": str(item.section_id),
            "category_id": str(item.category_id),
        }

        section_id = item.section_id
        category_id = item.category_id
        placing = data.get("section_id") is not None or data.get("category_id") is not None
        if placing:
            section = db.get(Section, coerce_uuid(data.get("section_id") or section_id))
            if not section:
                raise NotFoundError("Section not found")
            category = db.get(Category, coerce_uuid(data.get("category_id") or category_id))
            if not category:
                raise NotFoundError("Category not found")
            if category.section_id != section.id:
                raise ValidationError("Category is not in section")
            section_id, category_id = section.id, category.id

        translations = None
        if data.get("translations") is not None:
            translations = self.languages.clean_translations(payload.translations)

        try:
            item.section_id = section_id
            item.category_id = category_id
            if translations is not None:
                db.execute(
                    delete(FileTranslation).where(FileTranslation.file_item_id == item.id)
                )
                for row in translations:
                    db.add(
                        FileTranslation(
                            file_item_id=item.id,
                            lang=row["lang"],
                            title=row["title"],
                            description=row.get("description"),
                        )
                    )
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(item)
        logger.info("Updated metadata of file %s", item.id)
        publish_event(
            EventType.file_updated,
            entity_type="file",
            entity_id=item.id,
            actor_id=actor.id,
            diff={
                "before": before,
                "after": {
                    "section_id": str(item.section_id),
                    "category_id": str(item.category_id),
                },
            },
            metadata={"langs": [row["lang"] for row in translations or []]},
        )
        return item

    def update_access(
        self, db: Session, file_item_id: str, payload: AccessGrantsIn, actor: Actor
    ) -> FileItem:
        authz.require(actor, authz.FILE_ACCESS_UPDATE)
        item = self._active_item(db, file_item_id)
        grant = normalize_grant_request(
            db, actor, payload.access_type, payload.department_ids, payload.user_ids
        )
        before = item.access_type.value

        try:
            db.execute(
                delete(FileAccessDepartment).where(
                    FileAccessDepartment.file_item_id == item.id
                )
            )
            db.execute(
                delete(FileAccessUser).where(FileAccessUser.file_item_id == item.id)
            )
            item.access_type = grant.access_type
            _write_grants(db, item.id, grant)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(item)
        logger.info("Replaced access grants of file %s", item.id)
        publish_event(
            EventType.file_access_changed,
            entity_type="file",
            entity_id=item.id,
            actor_id=actor.id,
            diff={
                "before": {"access_type": before},
                "after": {
                    "access_type": grant.access_type.value,
                    "department_ids": [str(i) for i in grant.department_ids],
                    "user_ids": [str(i) for i in grant.user_ids],
                },
            },
        )
        return item

    def trash_item(self, db: Session, file_item_id: str, actor: Actor) -> FileItem:
        authz.require(actor, authz.FILE_DELETE)
        item = self.get(db, file_item_id)
        if item.is_trashed:
            raise StateError("File is already in trash")
        item.trash()
        db.commit()
        db.refresh(item)
        logger.info("Trashed file %s", item.id)
        publish_event(
            EventType.file_trashed,
            entity_type="file",
            entity_id=item.id,
            actor_id=actor.id,
        )
        return item

    def restore_item(self, db: Session, file_item_id: str, actor: Actor) -> FileItem:
        authz.require(actor, authz.FILE_RESTORE)
        item = self.get(db, file_item_id)
        if not item.is_trashed:
            raise StateError("File is not in trash")
        item.restore()
        db.commit()
        db.refresh(item)
        logger.info("Restored file %s", item.id)
        publish_event(
            EventType.file_restored,
            entity_type="file",
            entity_id=item.id,
            actor_id=actor.id,
        )
        return item

    def purge_item(self, db: Session, file_item_id, actor: Actor | None = None) -> bool:
        """Irreversibly delete an item with every version, asset, grant and blob.

        Purging an id that no longer exists is a no-op and returns False.
        ``actor`` is None when invoked by the retention sweep.
        """
        if actor is not None:
            authz.require(actor, authz.FILE_FORCE_DELETE)
        item_id = coerce_uuid(file_item_id)
        if db.get(FileItem, item_id) is None:
            logger.debug("File %s already purged", item_id)
            return False

        version_ids = select(FileVersion.id).where(FileVersion.file_item_id == item_id)
        locations = db.scalars(
            select(FileVersionAsset.storage_location).where(
                FileVersionAsset.file_version_id.in_(version_ids)
            )
        ).all()

        try:
            db.execute(
                update(FileItem)
                .where(FileItem.id == item_id)
                .values(current_version_id=None)
            )
            db.execute(
                update(FileRequest)
                .where(FileRequest.file_item_id == item_id)
                .values(file_item_id=None)
            )
            db.execute(
                delete(FileVersionAsset).where(
                    FileVersionAsset.file_version_id.in_(version_ids)
                )
            )
            db.execute(delete(FileVersion).where(FileVersion.file_item_id == item_id))
            db.execute(
                delete(FileTranslation).where(FileTranslation.file_item_id == item_id)
            )
            db.execute(
                delete(FileAccessDepartment).where(
                    FileAccessDepartment.file_item_id == item_id
                )
            )
            db.execute(delete(FileAccessUser).where(FileAccessUser.file_item_id == item_id))
            db.execute(delete(FileItem).where(FileItem.id == item_id))
            db.commit()
        except Exception:
            db.rollback()
            raise

        for location in locations:
            self.storage.delete(location)
        logger.info("Purged file %s (%d blobs)", item_id, len(locations))
        publish_event(
            EventType.file_purged,
            entity_type="file",
            entity_id=item_id,
            actor_id=actor.id if actor else None,
            metadata={"blobs": len(locations)},
        )
        return True

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def list_versions(
        self, db: Session, file_item_id: str, actor: Actor, include_trashed: bool = True
    ) -> list[FileVersion]:
        authz.require(actor, authz.FILE_VERSION_READ)
        item = self.get(db, file_item_id)
        stmt = select(FileVersion).where(FileVersion.file_item_id == item.id)
        if not include_trashed:
            stmt = stmt.where(FileVersion.trashed_at.is_(None))
        return db.scalars(stmt.order_by(FileVersion.version_number.desc())).all()

    def create_version(
        self, db: Session, file_item_id: str, payload: FileVersionCreate, actor: Actor
    ) -> FileVersion:
        authz.require(actor, authz.FILE_VERSION_ADD)
        item = self._active_item(db, file_item_id)
        next_number = (
            db.scalar(
                select(func.max(FileVersion.version_number)).where(
                    FileVersion.file_item_id == item.id
                )
            )
            or 0
        ) + 1

        copies: list[tuple[FileVersionAsset, StoredBlob]] = []
        if payload.copy_from_current and item.current_version_id:
            sources = db.scalars(
                select(FileVersionAsset)
                .where(FileVersionAsset.file_version_id == item.current_version_id)
                .where(FileVersionAsset.trashed_at.is_(None))
            ).all()
            try:
                for source in sources:
                    copies.append(
                        (source, self.storage.copy(source.storage_location, source.original_name))
                    )
            except Exception:
                self._discard_blobs(blob for _, blob in copies)
                raise

        try:
            version = FileVersion(
                file_item_id=item.id,
                version_number=next_number,
                comment=payload.comment,
                created_by=actor.id,
            )
            db.add(version)
            db.flush()
            for source, blob in copies:
                db.add(
                    FileVersionAsset(
                        file_version_id=version.id,
                        lang=source.lang,
                        original_name=source.original_name,
                        mime_type=source.mime_type,
                        size_bytes=source.size_bytes,
                        storage_location=blob.location,
                    )
                )
            db.commit()
        except Exception:
            db.rollback()
            self._discard_blobs(blob for _, blob in copies)
            raise
        db.refresh(version)
        logger.info(
            "Created version %d of file %s (%d assets copied)",
            next_number,
            item.id,
            len(copies),
        )
        publish_event(
            EventType.version_created,
            entity_type="file_version",
            entity_id=version.id,
            actor_id=actor.id,
            metadata={"file_item_id": str(item.id), "version_number": next_number},
        )
        return version

    def set_current_version(
        self, db: Session, file_item_id: str, version_id: str, actor: Actor
    ) -> FileItem:
        authz.require(actor, authz.FILE_VERSION_SET_CURRENT)
        item = self._active_item(db, file_item_id)
        version = self._version_of(db, item, version_id)
        if version.is_trashed:
            raise StateError("Version is in trash")
        before = item.current_version_id
        item.current_version_id = version.id
        db.commit()
        db.refresh(item)
        logger.info("Set current version of file %s to %s", item.id, version.id)
        publish_event(
            EventType.version_set_current,
            entity_type="file_version",
            entity_id=version.id,
            actor_id=actor.id,
            diff={
                "before": {"current_version_id": str(before) if before else None},
                "after": {"current_version_id": str(version.id)},
            },
        )
        return item

    def trash_version(
        self, db: Session, file_item_id: str, version_id: str, actor: Actor
    ) -> FileVersion:
        authz.require(actor, authz.FILE_VERSION_DELETE)
        item = self._active_item(db, file_item_id)
        version = self._version_of(db, item, version_id)
        if version.is_trashed:
            raise StateError("Version is already in trash")
        if item.current_version_id == version.id:
            raise StateError("Cannot delete current version")
        active = db.scalar(
            select(func.count(FileVersion.id))
            .where(FileVersion.file_item_id == item.id)
            .where(FileVersion.trashed_at.is_(None))
        )
        if active <= 1:
            raise StateError("Cannot delete last version")

        now = _utcnow()
        try:
            version.trash(now)
            cascaded = 0
            for asset in version.assets:
                if not asset.is_trashed:
                    asset.trash(now)
                    cascaded += 1
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(version)
        logger.info("Trashed version %s with %d assets", version.id, cascaded)
        publish_event(
            EventType.version_trashed,
            entity_type="file_version",
            entity_id=version.id,
            actor_id=actor.id,
            metadata={"file_item_id": str(item.id), "assets": cascaded},
        )
        return version

    def restore_version(
        self, db: Session, file_item_id: str, version_id: str, actor: Actor
    ) -> FileVersion:
        """Restore a version and the assets trashed together with it.

        Assets trashed on their own beforehand stay trashed, and an asset is
        skipped when its language slot has been filled since.
        """
        authz.require(actor, authz.FILE_VERSION_RESTORE)
        item = self._active_item(db, file_item_id)
        version = self._version_of(db, item, version_id)
        if not version.is_trashed:
            raise StateError("Version is not in trash")

        trashed_at = version.trashed_at
        occupied = {asset.lang for asset in version.assets if not asset.is_trashed}
        restored = 0
        try:
            version.restore()
            for asset in version.assets:
                if asset.trashed_at != trashed_at or asset.lang in occupied:
                    continue
                asset.restore()
                occupied.add(asset.lang)
                restored += 1
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(version)
        logger.info("Restored version %s with %d assets", version.id, restored)
        publish_event(
            EventType.version_restored,
            entity_type="file_version",
            entity_id=version.id,
            actor_id=actor.id,
            metadata={"file_item_id": str(item.id), "assets": restored},
        )
        return version

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def upload_asset(
        self,
        db: Session,
        file_item_id: str,
        version_id: str,
        lang: str,
        incoming: IncomingFile,
        actor: Actor,
    ) -> FileVersionAsset:
        authz.require(actor, authz.FILE_ASSET_UPLOAD)
        lang = self.languages.require(lang)
        item = self._active_item(db, file_item_id)
        version = self._version_of(db, item, version_id)
        if version.is_trashed:
            raise StateError("Version is in trash")
        check_upload(incoming, self.policy)

        blob = self.storage.save(incoming)
        replaced = db.scalar(
            select(FileVersionAsset)
            .where(FileVersionAsset.file_version_id == version.id)
            .where(FileVersionAsset.lang == lang)
            .where(FileVersionAsset.trashed_at.is_(None))
        )
        old_location = replaced.storage_location if replaced else None
        try:
            if replaced:
                db.delete(replaced)
                db.flush()
            asset = FileVersionAsset(
                file_version_id=version.id,
                lang=lang,
                original_name=incoming.original_name,
                mime_type=incoming.mime_type,
                size_bytes=blob.size_bytes,
                storage_location=blob.location,
            )
            db.add(asset)
            db.commit()
        except Exception:
            db.rollback()
            self.storage.delete(blob.location)
            raise
        if old_location:
            self.storage.delete(old_location)
        db.refresh(asset)
        logger.info(
            "Uploaded %s asset %s to version %s%s",
            lang,
            asset.id,
            version.id,
            " (replaced)" if old_location else "",
        )
        publish_event(
            EventType.asset_uploaded,
            entity_type="file_version",
            entity_id=version.id,
            actor_id=actor.id,
            metadata={
                "lang": lang,
                "size_bytes": blob.size_bytes,
                "original_name": incoming.original_name,
                "replaced": bool(old_location),
            },
        )
        return asset

    def trash_asset(
        self, db: Session, file_item_id: str, version_id: str, asset_id: str, actor: Actor
    ) -> FileVersionAsset:
        authz.require(actor, authz.FILE_ASSET_DELETE)
        asset = self._asset_of(db, file_item_id, version_id, asset_id)
        if asset.is_trashed:
            raise StateError("Asset is already in trash")
        asset.trash()
        db.commit()
        db.refresh(asset)
        logger.info("Trashed asset %s", asset.id)
        publish_event(
            EventType.asset_trashed,
            entity_type="file_version",
            entity_id=asset.file_version_id,
            actor_id=actor.id,
            metadata={"asset_id": str(asset.id), "lang": asset.lang},
        )
        return asset

    def restore_asset(
        self, db: Session, file_item_id: str, version_id: str, asset_id: str, actor: Actor
    ) -> FileVersionAsset:
        authz.require(actor, authz.FILE_ASSET_UPLOAD)
        asset = self._asset_of(db, file_item_id, version_id, asset_id)
        if not asset.is_trashed:
            raise StateError("Asset is not in trash")
        if asset.version.is_trashed:
            raise StateError("Version is in trash")
        occupied = db.scalar(
            select(FileVersionAsset.id)
            .where(FileVersionAsset.file_version_id == asset.file_version_id)
            .where(FileVersionAsset.lang == asset.lang)
            .where(FileVersionAsset.trashed_at.is_(None))
            .limit(1)
        )
        if occupied:
            raise StateError("Language slot is occupied")
        asset.restore()
        db.commit()
        db.refresh(asset)
        logger.info("Restored asset %s", asset.id)
        publish_event(
            EventType.asset_restored,
            entity_type="file_version",
            entity_id=asset.file_version_id,
            actor_id=actor.id,
            metadata={"asset_id": str(asset.id), "lang": asset.lang},
        )
        return asset

    def resolve_download(
        self, db: Session, actor: Actor, file_item_id: str, lang: str | None = None
    ) -> Download:
        """Pick the asset of the current version in the best available language."""
        authz.require(actor, authz.FILE_DOWNLOAD)
        item = assert_can_read(db, actor, db.get(FileItem, coerce_uuid(file_item_id)))
        if not item.current_version_id:
            raise NotFoundError("File has no current version")
        assets = db.scalars(
            select(FileVersionAsset)
            .where(FileVersionAsset.file_version_id == item.current_version_id)
            .where(FileVersionAsset.trashed_at.is_(None))
            .order_by(FileVersionAsset.lang.asc())
        ).all()
        asset = self.languages.select(assets, lang)
        if asset is None:
            raise NotFoundError("No assets")
        path = self.storage.path(asset.storage_location)
        if not path.is_file():
            raise NotFoundError("Stored file not found")
        logger.info("Resolved download of file %s as %s", item.id, asset.lang)
        publish_event(
            EventType.file_downloaded,
            entity_type="file",
            entity_id=item.id,
            actor_id=actor.id,
            metadata={"asset_id": str(asset.id), "lang": asset.lang},
        )
        return Download(file_item=item, asset=asset, path=path)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _active_item(self, db: Session, file_item_id) -> FileItem:
        item = self.get(db, file_item_id)
        if item.is_trashed:
            raise StateError("File is in trash")
        return item

    def _version_of(self, db: Session, item: FileItem, version_id) -> FileVersion:
        version = db.get(FileVersion, coerce_uuid(version_id))
        if not version or version.file_item_id != item.id:
            raise NotFoundError("Version not found")
        return version

    def _asset_of(self, db: Session, file_item_id, version_id, asset_id) -> FileVersionAsset:
        item = self._active_item(db, file_item_id)
        version = self._version_of(db, item, version_id)
        asset = db.get(FileVersionAsset, coerce_uuid(asset_id))
        if not asset or asset.file_version_id != version.id:
            raise NotFoundError("Asset not found")
        return asset

    def _discard_blobs(self, blobs: Iterable[StoredBlob]) -> None:
        for blob in blobs:
            self.storage.delete(blob.location)


def _write_grants(
    db: Session,
    file_item_id: uuid.UUID,
    grant: GrantRequest,
    extra_user_ids: Iterable[uuid.UUID] = (),
) -> None:
    """Stage grant rows. ``extra_user_ids`` are written for public items too."""
    for department_id in grant.department_ids:
        db.add(FileAccessDepartment(file_item_id=file_item_id, department_id=department_id))
    user_ids = list(grant.user_ids)
    for user_id in extra_user_ids:
        if user_id not in user_ids:
            user_ids.append(user_id)
    for user_id in user_ids:
        db.add(FileAccessUser(file_item_id=file_item_id, person_id=user_id))


def _readable_clause(db: Session, actor: Actor):
    conditions = [
        FileItem.access_type == AccessType.public,
        FileItem.id.in_(
            select(FileAccessUser.file_item_id).where(
                FileAccessUser.person_id == actor.id
            )
        ),
    ]
    lineage = granting_departments(db, actor.department_id)
    if lineage:
        conditions.append(
            FileItem.id.in_(
                select(FileAccessDepartment.file_item_id).where(
                    FileAccessDepartment.department_id.in_(list(lineage))
                )
            )
        )
    return or_(*conditions)


documents = Documents(storage, UploadPolicy.from_settings(settings), languages)
