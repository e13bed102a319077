from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.errors import ForbiddenError
from app.models.person import Person
from app.services.authz import Actor, actor_from_person
from app.services.common import coerce_uuid


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor(
    x_person_id: str | None = Header(default=None),
    x_permissions: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the caller forwarded by the identity gateway.

    The gateway authenticates the session and passes the person id and its
    comma-separated permission codes along with the request.
    """
    if not x_person_id:
        raise ForbiddenError("Access denied")
    person = db.get(Person, coerce_uuid(x_person_id))
    if not person or not person.is_active:
        raise ForbiddenError("Access denied")
    capabilities = [
        code.strip() for code in (x_permissions or "").split(",") if code.strip()
    ]
    return actor_from_person(person, capabilities)
