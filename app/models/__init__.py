from app.models.audit import AuditEvent  # noqa: F401
from app.models.person import Person  # noqa: F401
from app.models.library import (  # noqa: F401
    AccessType,
    Active,
    Category,
    CategoryTranslation,
    Department,
    FileAccessDepartment,
    FileAccessUser,
    FileItem,
    FileRequest,
    FileRequestAccessDepartment,
    FileRequestAccessUser,
    FileRequestAsset,
    FileRequestStatus,
    FileRequestTranslation,
    FileTranslation,
    FileVersion,
    FileVersionAsset,
    Section,
    Trashed,
)
