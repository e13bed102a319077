from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.schemas.common import ListResponse
from app.schemas.library import (
    AccessGrantsIn,
    FileItemCreate,
    FileItemRead,
    FileItemUpdate,
    FileVersionAssetRead,
    FileVersionCreate,
    FileVersionRead,
    SetCurrentVersion,
)
from app.services.authz import Actor
from app.services.documents import documents
from app.services.storage import IncomingFile

router = APIRouter(prefix="/files", tags=["files"])


def incoming_from_upload(upload: UploadFile) -> IncomingFile:
    size = upload.size
    if size is None:
        upload.file.seek(0, 2)
        size = upload.file.tell()
        upload.file.seek(0)
    return IncomingFile(
        original_name=upload.filename or "",
        mime_type=upload.content_type or "application/octet-stream",
        size_bytes=size,
        stream=upload.file,
    )


# ------------------------------------------------------------------
# File items
# ------------------------------------------------------------------


@router.post("", response_model=FileItemRead, status_code=status.HTTP_201_CREATED)
def create_file(
    payload: FileItemCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.create(db, payload, actor)


@router.get("", response_model=ListResponse[FileItemRead])
def list_files(
    section_id: str | None = None,
    category_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.list_response(
        db, actor, section_id, category_id, order_by, order_dir, limit, offset
    )


@router.get("/trash", response_model=ListResponse[FileItemRead])
def list_trash(
    order_by: str = Query(default="trashed_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items = documents.list_trash(db, actor, order_by, order_dir, limit, offset)
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


@router.get("/{file_item_id}", response_model=FileItemRead)
def get_file(
    file_item_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.get_readable(db, actor, file_item_id)


@router.patch("/{file_item_id}", response_model=FileItemRead)
def update_file(
    file_item_id: str,
    payload: FileItemUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.update(db, file_item_id, payload, actor)


@router.put("/{file_item_id}/access", response_model=FileItemRead)
def update_file_access(
    file_item_id: str,
    payload: AccessGrantsIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.update_access(db, file_item_id, payload, actor)


@router.delete("/{file_item_id}", response_model=FileItemRead)
def trash_file(
    file_item_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.trash_item(db, file_item_id, actor)


@router.post("/{file_item_id}/restore", response_model=FileItemRead)
def restore_file(
    file_item_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.restore_item(db, file_item_id, actor)


@router.delete("/{file_item_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
def purge_file(
    file_item_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    documents.purge_item(db, file_item_id, actor)


@router.get("/{file_item_id}/download")
def download_file(
    file_item_id: str,
    lang: str | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    download = documents.resolve_download(db, actor, file_item_id, lang)
    return FileResponse(
        download.path,
        media_type=download.asset.mime_type,
        filename=download.asset.original_name,
    )


# ------------------------------------------------------------------
# Versions
# ------------------------------------------------------------------


@router.get(
    "/{file_item_id}/versions", response_model=ListResponse[FileVersionRead]
)
def list_versions(
    file_item_id: str,
    include_trashed: bool = True,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items = documents.list_versions(db, file_item_id, actor, include_trashed)
    return {"items": items, "count": len(items), "limit": len(items), "offset": 0}


@router.post(
    "/{file_item_id}/versions",
    response_model=FileVersionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_version(
    file_item_id: str,
    payload: FileVersionCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.create_version(db, file_item_id, payload, actor)


@router.put("/{file_item_id}/current-version", response_model=FileItemRead)
def set_current_version(
    file_item_id: str,
    payload: SetCurrentVersion,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.set_current_version(db, file_item_id, payload.version_id, actor)


@router.delete(
    "/{file_item_id}/versions/{version_id}", response_model=FileVersionRead
)
def trash_version(
    file_item_id: str,
    version_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.trash_version(db, file_item_id, version_id, actor)


@router.post(
    "/{file_item_id}/versions/{version_id}/restore", response_model=FileVersionRead
)
def restore_version(
    file_item_id: str,
    version_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.restore_version(db, file_item_id, version_id, actor)


# ------------------------------------------------------------------
# Assets
# ------------------------------------------------------------------


@router.put(
    "/{file_item_id}/versions/{version_id}/assets/{lang}",
    response_model=FileVersionAssetRead,
)
def upload_asset(
    file_item_id: str,
    version_id: str,
    lang: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.upload_asset(
        db, file_item_id, version_id, lang, incoming_from_upload(file), actor
    )


@router.delete(
    "/{file_item_id}/versions/{version_id}/assets/{asset_id}",
    response_model=FileVersionAssetRead,
)
def trash_asset(
    file_item_id: str,
    version_id: str,
    asset_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.trash_asset(db, file_item_id, version_id, asset_id, actor)


@router.post(
    "/{file_item_id}/versions/{version_id}/assets/{asset_id}/restore",
    response_model=FileVersionAssetRead,
)
def restore_asset(
    file_item_id: str,
    version_id: str,
    asset_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return documents.restore_asset(db, file_item_id, version_id, asset_id, actor)
