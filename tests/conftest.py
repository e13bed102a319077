import io
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="doclib-uploads-"))
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

import uuid  # noqa: E402
from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import app.models  # noqa: E402,F401
from app.config import UploadPolicy  # noqa: E402
from app.db import Base, create_db_engine  # noqa: E402
from app.models.library import Category, CategoryTranslation, Department, Section  # noqa: E402
from app.models.person import Person  # noqa: E402
from app.services import authz  # noqa: E402
from app.services.authz import Actor, actor_from_person  # noqa: E402
from app.services.documents import Documents  # noqa: E402
from app.services.file_requests import FileRequests  # noqa: E402
from app.services.i18n import LanguageSet  # noqa: E402
from app.services.storage import IncomingFile, LocalBlobStorage  # noqa: E402

ALL_CAPABILITIES = frozenset(
    value
    for name, value in vars(authz).items()
    if name.isupper() and isinstance(value, str)
)


@pytest.fixture()
def engine():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def audit_delay():
    with patch("app.tasks.events.record_audit_event.delay") as mock_delay:
        yield mock_delay


# ---------------------------------------------------------------------------
# Storage and services
# ---------------------------------------------------------------------------


@pytest.fixture()
def storage(tmp_path):
    return LocalBlobStorage(tmp_path / "uploads")


@pytest.fixture()
def policy():
    return UploadPolicy(
        max_size_bytes=1024 * 1024,
        allowed_extensions=("pdf", "txt", "docx"),
        allowed_mime_types=("application/pdf", "text/plain"),
    )


@pytest.fixture()
def langs():
    return LanguageSet(codes=("ru", "en", "uz"), default="ru")


@pytest.fixture()
def docs(storage, policy, langs):
    return Documents(storage, policy, langs)


@pytest.fixture()
def requests_service(storage, policy, langs, docs):
    return FileRequests(storage, policy, langs, docs)


@pytest.fixture()
def make_file():
    def _make(name="report.txt", content=b"hello world", mime_type="text/plain"):
        return IncomingFile(
            original_name=name,
            mime_type=mime_type,
            size_bytes=len(content),
            stream=io.BytesIO(content),
        )

    return _make


# ---------------------------------------------------------------------------
# Hierarchies and people
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_department(db_session):
    def _make(name=None, parent=None):
        department = Department(
            name=name or f"dept_{uuid.uuid4().hex[:8]}",
            parent_id=parent.id if parent else None,
            depth=parent.depth + 1 if parent else 1,
        )
        db_session.add(department)
        db_session.commit()
        db_session.refresh(department)
        return department

    return _make


@pytest.fixture()
def department(make_department):
    return make_department("Head Office")


@pytest.fixture()
def make_person(db_session):
    def _make(department=None, can_submit_files=True, is_active=True):
        person = Person(
            login=f"user_{uuid.uuid4().hex[:8]}",
            full_name="Test User",
            department_id=department.id if department else None,
            can_submit_files=can_submit_files,
            is_active=is_active,
        )
        db_session.add(person)
        db_session.commit()
        db_session.refresh(person)
        return person

    return _make


@pytest.fixture()
def person(make_person, department):
    return make_person(department)


@pytest.fixture()
def actor(person):
    """A staff member holding every capability."""
    return actor_from_person(person, ALL_CAPABILITIES)


@pytest.fixture()
def reader_for():
    """Actor with read-side capabilities only."""

    def _make(person) -> Actor:
        return actor_from_person(
            person, {authz.FILE_READ, authz.FILE_DOWNLOAD, authz.FILE_VERSION_READ}
        )

    return _make


@pytest.fixture()
def section(db_session):
    section = Section(name="Regulations")
    db_session.add(section)
    db_session.commit()
    db_session.refresh(section)
    return section


@pytest.fixture()
def category(db_session, section):
    category = Category(section_id=section.id, depth=1)
    db_session.add(category)
    db_session.flush()
    db_session.add(
        CategoryTranslation(category_id=category.id, lang="ru", title="Приказы")
    )
    db_session.add(
        CategoryTranslation(category_id=category.id, lang="en", title="Orders")
    )
    db_session.commit()
    db_session.refresh(category)
    return category


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture()
def client(db_session, storage):
    from app.api.deps import get_db
    from app.main import app
    from app.services.documents import documents
    from app.services.file_requests import file_requests

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    with patch.object(documents, "storage", storage), patch.object(
        file_requests, "storage", storage
    ):
        with TestClient(app) as test_client:
            yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(person):
    return {
        "X-Person-Id": str(person.id),
        "X-Permissions": ",".join(sorted(ALL_CAPABILITIES)),
    }
