from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.schemas.common import ListResponse
from app.schemas.library import (
    AccessOptionsRead,
    DepartmentCreate,
    DepartmentRead,
    DepartmentUpdate,
    TreePathRead,
)
from app.services import access as access_service
from app.services.authz import Actor
from app.services.tree import departments

router = APIRouter(prefix="/departments", tags=["departments"])


@router.post("", response_model=DepartmentRead, status_code=status.HTTP_201_CREATED)
def create_department(
    payload: DepartmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return departments.create(db, payload, actor)


@router.get("", response_model=ListResponse[DepartmentRead])
def list_departments(
    parent_id: str | None = None,
    order_by: str = Query(default="depth"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return departments.list_response(db, parent_id, order_by, order_dir, limit, offset)


@router.get("/access-options", response_model=AccessOptionsRead)
def get_access_options(
    db: Session = Depends(get_db), actor: Actor = Depends(get_actor)
):
    return access_service.access_options(db, actor)


@router.get("/{department_id}", response_model=DepartmentRead)
def get_department(department_id: str, db: Session = Depends(get_db)):
    return departments.get(db, department_id)


@router.get("/{department_id}/path", response_model=TreePathRead)
def get_department_path(department_id: str, db: Session = Depends(get_db)):
    department = departments.get(db, department_id)
    return {"id": department.id, "path": departments.ancestor_path(db, department.id)}


@router.patch("/{department_id}", response_model=DepartmentRead)
def update_department(
    department_id: str,
    payload: DepartmentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return departments.update(db, department_id, payload, actor)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_department(
    department_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    departments.delete(db, department_id, actor)
