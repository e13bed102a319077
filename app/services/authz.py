import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from app.errors import ForbiddenError
from app.models.person import Person

# Permission codes issued by the identity service
DEPARTMENT_ADD = "department.add"
DEPARTMENT_UPDATE = "department.update"
DEPARTMENT_DELETE = "department.delete"
CATEGORY_ADD = "category.add"
CATEGORY_UPDATE = "category.update"
CATEGORY_DELETE = "category.delete"
FILE_READ = "file.read"
FILE_ADD = "file.add"
FILE_UPDATE = "file.update"
FILE_DELETE = "file.delete"
FILE_RESTORE = "file.restore"
FILE_FORCE_DELETE = "file.force_delete"
FILE_ACCESS_UPDATE = "file.access.update"
FILE_TRASH_READ = "file.trash.read"
FILE_VERSION_READ = "file.version.read"
FILE_VERSION_ADD = "file.version.add"
FILE_VERSION_DELETE = "file.version.delete"
FILE_VERSION_RESTORE = "file.version.restore"
FILE_VERSION_SET_CURRENT = "file.version.set_current"
FILE_ASSET_UPLOAD = "file.asset.upload"
FILE_ASSET_DELETE = "file.asset.delete"
FILE_DOWNLOAD = "file.download"
FILE_DOWNLOAD_RESTRICTED = "file.download.restricted"
FILE_REQUEST_MODERATE = "file.request.moderate"


@dataclass(frozen=True)
class Actor:
    """Authorization view of the caller, supplied by the identity service."""

    id: uuid.UUID
    department_id: uuid.UUID | None = None
    capabilities: frozenset[str] = field(default_factory=frozenset)
    can_submit_files: bool = False

    def has(self, capability: str) -> bool:
        return capability in self.capabilities


def actor_from_person(person: Person, capabilities: Iterable[str] = ()) -> Actor:
    return Actor(
        id=person.id,
        department_id=person.department_id,
        capabilities=frozenset(capabilities),
        can_submit_files=bool(person.can_submit_files),
    )


def authorize(actor: Actor | None, required_capabilities: Iterable[str]) -> bool:
    if actor is None:
        return False
    return all(actor.has(capability) for capability in required_capabilities)


def require(actor: Actor | None, *required_capabilities: str) -> Actor:
    if not authorize(actor, required_capabilities):
        raise ForbiddenError("Access denied")
    return actor
