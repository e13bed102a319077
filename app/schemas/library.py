from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.library import AccessType, FileRequestStatus


# ---------------------------------------------------------------------------
# Translations
# ---------------------------------------------------------------------------


class TranslationIn(BaseModel):
    lang: str = Field(min_length=2, max_length=8)
    title: str = Field(max_length=500)
    description: str | None = None


class TranslationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lang: str
    title: str
    description: str | None = None


# ---------------------------------------------------------------------------
# Department
# ---------------------------------------------------------------------------


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    parent_id: UUID | None = None


class DepartmentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    parent_id: UUID | None = None


class DepartmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    parent_id: UUID | None
    depth: int
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------


class CategoryCreate(BaseModel):
    section_id: UUID
    parent_id: UUID | None = None
    translations: list[TranslationIn]


class CategoryUpdate(BaseModel):
    parent_id: UUID | None = None
    translations: list[TranslationIn] | None = None


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_id: UUID
    parent_id: UUID | None
    depth: int
    translations: list[TranslationRead]
    created_at: datetime
    updated_at: datetime


class TreePathRead(BaseModel):
    id: UUID
    path: list[str]


# ---------------------------------------------------------------------------
# Access grants
# ---------------------------------------------------------------------------


class AccessGrantsIn(BaseModel):
    access_type: str = "restricted"
    department_ids: list[UUID] = Field(default_factory=list)
    user_ids: list[UUID] = Field(default_factory=list)


class DepartmentOption(BaseModel):
    id: UUID
    name: str
    depth: int


class PersonOption(BaseModel):
    id: UUID
    login: str | None = None
    full_name: str | None = None
    department_id: UUID | None = None


class AccessOptionsRead(BaseModel):
    departments: list[DepartmentOption]
    people: list[PersonOption]


# ---------------------------------------------------------------------------
# File items, versions, assets
# ---------------------------------------------------------------------------


class FileItemCreate(AccessGrantsIn):
    section_id: UUID
    category_id: UUID
    access_type: str = "public"
    translations: list[TranslationIn]
    comment: str | None = None


class FileItemUpdate(BaseModel):
    section_id: UUID | None = None
    category_id: UUID | None = None
    translations: list[TranslationIn] | None = None


class FileVersionCreate(BaseModel):
    comment: str | None = None
    copy_from_current: bool = False


class SetCurrentVersion(BaseModel):
    version_id: UUID


class FileVersionAssetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_version_id: UUID
    lang: str
    original_name: str
    mime_type: str
    size_bytes: int
    trashed_at: datetime | None
    created_at: datetime


class FileVersionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_item_id: UUID
    version_number: int
    comment: str | None
    created_by: UUID
    trashed_at: datetime | None
    created_at: datetime
    assets: list[FileVersionAssetRead] = Field(default_factory=list)


class FileItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_id: UUID
    category_id: UUID
    access_type: AccessType
    current_version_id: UUID | None
    created_by: UUID
    trashed_at: datetime | None
    translations: list[TranslationRead]
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# File requests
# ---------------------------------------------------------------------------


class FileRequestCreate(AccessGrantsIn):
    section_id: UUID
    category_id: UUID
    translations: list[TranslationIn]
    comment: str | None = None


class FileRequestReject(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class FileRequestAssetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lang: str
    original_name: str
    mime_type: str
    size_bytes: int
    created_at: datetime


class FileRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_id: UUID
    category_id: UUID
    access_type: AccessType
    status: FileRequestStatus
    comment: str | None
    created_by: UUID
    resolved_by: UUID | None
    resolved_at: datetime | None
    rejection_reason: str | None
    file_item_id: UUID | None
    translations: list[TranslationRead]
    created_at: datetime
    updated_at: datetime


class FileRequestSummary(BaseModel):
    id: UUID
    status: FileRequestStatus
    access_type: AccessType
    title: str | None
    description: str | None
    available_langs: list[str]
    created_by: UUID
    created_at: datetime
    resolved_at: datetime | None
    rejection_reason: str | None


class ApprovalRead(BaseModel):
    file_item_id: UUID
