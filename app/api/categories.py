from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.schemas.common import ListResponse
from app.schemas.library import CategoryCreate, CategoryRead, CategoryUpdate, TreePathRead
from app.services.authz import Actor
from app.services.tree import categories

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return categories.create(db, payload, actor)


@router.get("", response_model=ListResponse[CategoryRead])
def list_categories(
    section_id: str | None = None,
    parent_id: str | None = None,
    order_by: str = Query(default="depth"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return categories.list_response(
        db, section_id, parent_id, order_by, order_dir, limit, offset
    )


@router.get("/{category_id}", response_model=CategoryRead)
def get_category(category_id: str, db: Session = Depends(get_db)):
    return categories.get(db, category_id)


@router.get("/{category_id}/path", response_model=TreePathRead)
def get_category_path(
    category_id: str, lang: str | None = None, db: Session = Depends(get_db)
):
    category = categories.get(db, category_id)
    return {"id": category.id, "path": categories.ancestor_path(db, category.id, lang)}


@router.patch("/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return categories.update(db, category_id, payload, actor)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    categories.delete(db, category_id, actor)
