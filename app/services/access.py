import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.library import (
    AccessType,
    Department,
    FileAccessDepartment,
    FileAccessUser,
    FileItem,
)
from app.models.person import Person
from app.services import authz
from app.services.authz import Actor
from app.services.common import coerce_uuid
from app.services.tree import departments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrantRequest:
    """Normalized access targets for a file item or a pending request."""

    access_type: AccessType
    department_ids: tuple[uuid.UUID, ...] = field(default_factory=tuple)
    user_ids: tuple[uuid.UUID, ...] = field(default_factory=tuple)

    @property
    def is_restricted(self) -> bool:
        return self.access_type == AccessType.restricted


def department_scope(db: Session, department_id) -> set[uuid.UUID]:
    """A department plus its whole subtree. Never extends upward."""
    if department_id is None:
        return set()
    return departments.descendants(db, department_id)


def granting_departments(db: Session, department_id) -> set[uuid.UUID]:
    """Departments whose grant reaches a member of ``department_id``.

    That is the department itself and every department above it, since a
    grant on D covers D's whole subtree.
    """
    if department_id is None:
        return set()
    return departments.lineage(db, department_id)


def can_read(db: Session, actor: Actor, file_item: FileItem) -> bool:
    if file_item.access_type == AccessType.public:
        return True
    if actor.has(authz.FILE_DOWNLOAD_RESTRICTED):
        return True

    user_grant = db.scalar(
        select(FileAccessUser.id)
        .where(FileAccessUser.file_item_id == file_item.id)
        .where(FileAccessUser.person_id == actor.id)
        .limit(1)
    )
    if user_grant:
        return True

    if actor.department_id is None:
        return False
    granted = db.scalars(
        select(FileAccessDepartment.department_id).where(
            FileAccessDepartment.file_item_id == file_item.id
        )
    ).all()
    return any(
        actor.department_id in department_scope(db, department_id)
        for department_id in granted
    )


def assert_can_read(db: Session, actor: Actor, file_item: FileItem | None) -> FileItem:
    if file_item is None or file_item.is_trashed:
        raise NotFoundError("File not found")
    if not can_read(db, actor, file_item):
        logger.info("Denied read of file %s to %s", file_item.id, actor.id)
        raise ForbiddenError("Access denied")
    return file_item


def _parse_access_type(value) -> AccessType:
    if isinstance(value, AccessType):
        return value
    try:
        return AccessType(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid access type: {value}")


def _dedupe(values: Iterable | None) -> list[uuid.UUID]:
    seen: list[uuid.UUID] = []
    for value in values or []:
        coerced = coerce_uuid(value)
        if coerced is not None and coerced not in seen:
            seen.append(coerced)
    return seen


def normalize_grant_request(
    db: Session,
    actor: Actor,
    access_type,
    department_ids: Iterable | None = None,
    user_ids: Iterable | None = None,
) -> GrantRequest:
    """Validate requested targets against the actor's department scope.

    Public access carries no targets. Restricted access with no explicit
    targets falls back to the actor's own department, or to the actor alone
    when they have no department.
    """
    kind = _parse_access_type(access_type)
    if kind == AccessType.public:
        return GrantRequest(access_type=kind)

    requested_departments = _dedupe(department_ids)
    requested_users = _dedupe(user_ids)
    scope = department_scope(db, actor.department_id)

    for department_id in requested_departments:
        if department_id not in scope:
            raise ValidationError("Department access not allowed")

    if requested_users:
        if actor.department_id is None:
            if any(user_id != actor.id for user_id in requested_users):
                raise ValidationError("User access not allowed")
        else:
            allowed = set(
                db.scalars(
                    select(Person.id)
                    .where(Person.id.in_(requested_users))
                    .where(Person.is_active.is_(True))
                    .where(Person.department_id.in_(list(scope)))
                ).all()
            )
            if any(user_id not in allowed for user_id in requested_users):
                raise ValidationError("User access not allowed")

    if not requested_departments and not requested_users:
        if actor.department_id is not None:
            requested_departments = [actor.department_id]
        else:
            requested_users = [actor.id]

    return GrantRequest(
        access_type=kind,
        department_ids=tuple(requested_departments),
        user_ids=tuple(requested_users),
    )


def access_options(db: Session, actor: Actor) -> dict:
    """Departments and people the actor may target with a restricted grant."""
    if actor.department_id is None:
        own = db.get(Person, actor.id)
        people = [_person_option(own)] if own else [{"id": actor.id}]
        return {"departments": [], "people": people}

    scope = list(department_scope(db, actor.department_id))
    department_rows = db.scalars(
        select(Department)
        .where(Department.id.in_(scope))
        .order_by(Department.depth.asc(), Department.name.asc())
    ).all()
    people = db.scalars(
        select(Person)
        .where(Person.department_id.in_(scope))
        .where(Person.is_active.is_(True))
        .order_by(Person.full_name.asc(), Person.login.asc())
    ).all()
    return {
        "departments": [
            {"id": row.id, "name": row.name, "depth": row.depth}
            for row in department_rows
        ],
        "people": [_person_option(person) for person in people],
    }


def _person_option(person: Person) -> dict:
    return {
        "id": person.id,
        "login": person.login,
        "full_name": person.full_name,
        "department_id": person.department_id,
    }
