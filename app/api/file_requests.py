from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.api.files import incoming_from_upload
from app.schemas.common import ListResponse
from app.schemas.library import (
    ApprovalRead,
    FileRequestAssetRead,
    FileRequestCreate,
    FileRequestRead,
    FileRequestReject,
    FileRequestSummary,
)
from app.services.authz import Actor
from app.services.file_requests import file_requests

router = APIRouter(prefix="/file-requests", tags=["file-requests"])


@router.post("", response_model=FileRequestRead, status_code=status.HTTP_201_CREATED)
def submit_request(
    payload: FileRequestCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_requests.submit(db, actor, payload)


@router.get("/mine", response_model=ListResponse[FileRequestSummary])
def list_my_requests(
    scope: str | None = Query(default=None, pattern="^(pending|history)$"),
    lang: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items = file_requests.list_for_user(db, actor, scope, lang, limit, offset)
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


@router.get("", response_model=ListResponse[FileRequestSummary])
def list_requests_for_moderation(
    scope: str | None = Query(default=None, pattern="^(pending|history)$"),
    status_filter: str | None = Query(default=None, alias="status"),
    lang: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items = file_requests.list_for_moderation(
        db, actor, scope, status_filter, lang, limit, offset
    )
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


@router.get("/{request_id}", response_model=FileRequestRead)
def get_request(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_requests.get(db, request_id, actor)


@router.get(
    "/{request_id}/assets", response_model=ListResponse[FileRequestAssetRead]
)
def list_request_assets(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items = file_requests.list_assets(db, request_id, actor)
    return {"items": items, "count": len(items), "limit": len(items), "offset": 0}


@router.put("/{request_id}/assets/{lang}", response_model=FileRequestAssetRead)
def attach_asset(
    request_id: str,
    lang: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_requests.attach_asset(
        db, request_id, lang, incoming_from_upload(file), actor
    )


@router.post("/{request_id}/cancel", response_model=FileRequestRead)
def cancel_request(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_requests.cancel(db, request_id, actor)


@router.post("/{request_id}/reject", response_model=FileRequestRead)
def reject_request(
    request_id: str,
    payload: FileRequestReject,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_requests.reject(db, request_id, actor, payload.reason)


@router.post("/{request_id}/approve", response_model=ApprovalRead)
def approve_request(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return {"file_item_id": file_requests.approve(db, request_id, actor)}
