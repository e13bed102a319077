import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AccessType(enum.Enum):
    public = "public"
    restricted = "restricted"


class FileRequestStatus(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    canceled = "canceled"


# ---------------------------------------------------------------------------
# Soft-delete lifecycle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Active:
    pass


@dataclass(frozen=True)
class Trashed:
    at: datetime


class TrashableMixin:
    """Soft-delete state stored as ``trashed_at`` and exposed as a tagged value."""

    trashed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def lifecycle(self) -> Active | Trashed:
        if self.trashed_at is None:
            return Active()
        return Trashed(at=self.trashed_at)

    @property
    def is_trashed(self) -> bool:
        return self.trashed_at is not None

    def trash(self, at: datetime | None = None) -> None:
        self.trashed_at = at or _utcnow()

    def restore(self) -> None:
        self.trashed_at = None


# ---------------------------------------------------------------------------
# Hierarchies: Departments
# ---------------------------------------------------------------------------


class Department(Base):
    __tablename__ = "departments"
    __table_args__ = (
        Index("ix_departments_parent_id", "parent_id"),
        Index("ix_departments_depth", "depth"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("departments.id")
    )
    depth: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    parent = relationship(
        "Department", remote_side="Department.id", back_populates="children"
    )
    children = relationship("Department", back_populates="parent")
    members = relationship("Person", back_populates="department")


# ---------------------------------------------------------------------------
# Hierarchies: Sections (flat) and Categories
# ---------------------------------------------------------------------------


class Section(Base):
    __tablename__ = "sections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    categories = relationship("Category", back_populates="section")


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        Index("ix_categories_section_id", "section_id"),
        Index("ix_categories_parent_id", "parent_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    section_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sections.id"), nullable=False
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("categories.id")
    )
    depth: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    section = relationship("Section", back_populates="categories")
    parent = relationship(
        "Category", remote_side="Category.id", back_populates="children"
    )
    children = relationship("Category", back_populates="parent")
    translations = relationship(
        "CategoryTranslation",
        back_populates="category",
        cascade="all, delete-orphan",
    )


class CategoryTranslation(Base):
    __tablename__ = "category_translations"
    __table_args__ = (
        UniqueConstraint("category_id", "lang", name="uq_category_translations_lang"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id"), nullable=False
    )
    lang: Mapped[str] = mapped_column(String(8), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    category = relationship("Category", back_populates="translations")


# ---------------------------------------------------------------------------
# Documents: File items
# ---------------------------------------------------------------------------


class FileItem(TrashableMixin, Base):
    __tablename__ = "file_items"
    __table_args__ = (
        Index("ix_file_items_section_id", "section_id"),
        Index("ix_file_items_category_id", "category_id"),
        Index("ix_file_items_trashed_at", "trashed_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    section_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sections.id"), nullable=False
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id"), nullable=False
    )
    access_type: Mapped[AccessType] = mapped_column(
        Enum(AccessType), nullable=False, default=AccessType.public
    )
    # Points at a non-trashed version of this item once any version exists
    current_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey(
            "file_versions.id",
            use_alter=True,
            name="fk_file_items_current_version_id",
        ),
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    section = relationship("Section")
    category = relationship("Category")
    creator = relationship("Person", foreign_keys=[created_by])
    current_version = relationship(
        "FileVersion", foreign_keys=[current_version_id], post_update=True
    )
    versions = relationship(
        "FileVersion",
        foreign_keys="FileVersion.file_item_id",
        back_populates="file_item",
        order_by="FileVersion.version_number.desc()",
    )
    translations = relationship("FileTranslation", back_populates="file_item")
    access_departments = relationship(
        "FileAccessDepartment", back_populates="file_item"
    )
    access_users = relationship("FileAccessUser", back_populates="file_item")


class FileTranslation(Base):
    __tablename__ = "file_translations"
    __table_args__ = (
        UniqueConstraint("file_item_id", "lang", name="uq_file_translations_lang"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_items.id"), nullable=False
    )
    lang: Mapped[str] = mapped_column(String(8), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    file_item = relationship("FileItem", back_populates="translations")


# ---------------------------------------------------------------------------
# Documents: Versions and per-language assets
# ---------------------------------------------------------------------------


class FileVersion(TrashableMixin, Base):
    __tablename__ = "file_versions"
    __table_args__ = (
        UniqueConstraint(
            "file_item_id", "version_number", name="uq_file_versions_item_number"
        ),
        Index("ix_file_versions_file_item_id", "file_item_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_items.id"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    file_item = relationship(
        "FileItem", foreign_keys=[file_item_id], back_populates="versions"
    )
    creator = relationship("Person", foreign_keys=[created_by])
    assets = relationship(
        "FileVersionAsset",
        back_populates="version",
        order_by="FileVersionAsset.lang",
    )


class FileVersionAsset(TrashableMixin, Base):
    __tablename__ = "file_version_assets"
    __table_args__ = (
        Index("ix_file_version_assets_version_id", "file_version_id"),
        Index(
            "uq_file_version_assets_active_lang",
            "file_version_id",
            "lang",
            unique=True,
            postgresql_where=text("trashed_at IS NULL"),
            sqlite_where=text("trashed_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_version_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_versions.id"), nullable=False
    )
    lang: Mapped[str] = mapped_column(String(8), nullable=False)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    storage_location: Mapped[str] = mapped_column(String(1024), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    version = relationship("FileVersion", back_populates="assets")


# ---------------------------------------------------------------------------
# Access Control: grants on restricted file items
# ---------------------------------------------------------------------------


class FileAccessDepartment(Base):
    __tablename__ = "file_access_departments"
    __table_args__ = (
        UniqueConstraint(
            "file_item_id", "department_id", name="uq_file_access_departments"
        ),
        Index("ix_file_access_departments_department_id", "department_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_items.id"), nullable=False
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("departments.id"), nullable=False
    )

    file_item = relationship("FileItem", back_populates="access_departments")


class FileAccessUser(Base):
    __tablename__ = "file_access_users"
    __table_args__ = (
        UniqueConstraint("file_item_id", "person_id", name="uq_file_access_users"),
        Index("ix_file_access_users_person_id", "person_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_items.id"), nullable=False
    )
    person_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )

    file_item = relationship("FileItem", back_populates="access_users")


# ---------------------------------------------------------------------------
# Ingestion: File requests (moderated submissions)
# ---------------------------------------------------------------------------


class FileRequest(Base):
    __tablename__ = "file_requests"
    __table_args__ = (
        Index("ix_file_requests_status", "status"),
        Index("ix_file_requests_created_by", "created_by"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    section_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sections.id"), nullable=False
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id"), nullable=False
    )
    access_type: Mapped[AccessType] = mapped_column(
        Enum(AccessType), nullable=False, default=AccessType.restricted
    )
    status: Mapped[FileRequestStatus] = mapped_column(
        Enum(FileRequestStatus), nullable=False, default=FileRequestStatus.pending
    )
    comment: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("people.id")
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    # Set on approval
    file_item_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("file_items.id")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    creator = relationship("Person", foreign_keys=[created_by])
    resolver = relationship("Person", foreign_keys=[resolved_by])
    translations = relationship(
        "FileRequestTranslation", back_populates="file_request"
    )
    assets = relationship(
        "FileRequestAsset",
        back_populates="file_request",
        order_by="FileRequestAsset.lang",
    )
    access_departments = relationship(
        "FileRequestAccessDepartment", back_populates="file_request"
    )
    access_users = relationship("FileRequestAccessUser", back_populates="file_request")

    @property
    def is_pending(self) -> bool:
        return self.status == FileRequestStatus.pending


class FileRequestTranslation(Base):
    __tablename__ = "file_request_translations"
    __table_args__ = (
        UniqueConstraint(
            "file_request_id", "lang", name="uq_file_request_translations_lang"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_requests.id"), nullable=False
    )
    lang: Mapped[str] = mapped_column(String(8), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    file_request = relationship("FileRequest", back_populates="translations")


class FileRequestAsset(Base):
    """Staged per-language file; hard-deleted on any terminal transition."""

    __tablename__ = "file_request_assets"
    __table_args__ = (
        UniqueConstraint(
            "file_request_id", "lang", name="uq_file_request_assets_lang"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_requests.id"), nullable=False
    )
    lang: Mapped[str] = mapped_column(String(8), nullable=False)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    storage_location: Mapped[str] = mapped_column(String(1024), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    file_request = relationship("FileRequest", back_populates="assets")


class FileRequestAccessDepartment(Base):
    __tablename__ = "file_request_access_departments"
    __table_args__ = (
        UniqueConstraint(
            "file_request_id",
            "department_id",
            name="uq_file_request_access_departments",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_requests.id"), nullable=False
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("departments.id"), nullable=False
    )

    file_request = relationship("FileRequest", back_populates="access_departments")


class FileRequestAccessUser(Base):
    __tablename__ = "file_request_access_users"
    __table_args__ = (
        UniqueConstraint(
            "file_request_id", "person_id", name="uq_file_request_access_users"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("file_requests.id"), nullable=False
    )
    person_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )

    file_request = relationship("FileRequest", back_populates="access_users")
