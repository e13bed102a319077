import logging
import os
import re
import shutil
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from app.config import UploadPolicy, settings
from app.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')
_WHITESPACE = re.compile(r"\s+")


@dataclass
class IncomingFile:
    """An uploaded file not yet placed in storage."""

    original_name: str
    mime_type: str
    size_bytes: int
    stream: BinaryIO

    @property
    def extension(self) -> str:
        return Path(self.original_name or "").suffix.lstrip(".").lower()


@dataclass(frozen=True)
class StoredBlob:
    location: str
    size_bytes: int


def check_upload(incoming: IncomingFile | None, policy: UploadPolicy) -> None:
    if incoming is None:
        raise ValidationError("File is required")
    if incoming.size_bytes > policy.max_size_bytes:
        raise ValidationError("File too large")
    if policy.allowed_extensions and incoming.extension not in policy.allowed_extensions:
        raise ValidationError("File extension not allowed")
    mime = (incoming.mime_type or "").split(";")[0].strip().lower()
    if policy.allowed_mime_types and mime not in policy.allowed_mime_types:
        raise ValidationError("File type not allowed")


def sanitize_file_name(original_name: str) -> str:
    base = PurePosixPath((original_name or "").replace("\\", "/")).name
    safe = _UNSAFE_CHARS.sub("_", base)
    safe = _WHITESPACE.sub(" ", safe).strip().strip(".")
    return safe or uuid.uuid4().hex


class LocalBlobStorage:
    """Blob store rooted at one directory, bucketed by upload date.

    Locations are POSIX paths relative to the root, e.g.
    ``2026/03/14/report.pdf``. Name collisions get ``_1``, ``_2``... suffixes;
    the target file is created exclusively so concurrent writers never share
    a path.
    """

    def __init__(self, root: str | os.PathLike):
        self.root = Path(root).resolve()

    def path(self, location: str) -> Path:
        target = (self.root / location).resolve()
        if target != self.root and self.root not in target.parents:
            raise ValidationError("Storage location escapes the upload root")
        return target

    def exists(self, location: str) -> bool:
        return self.path(location).is_file()

    def save(self, incoming: IncomingFile, now: datetime | None = None) -> StoredBlob:
        incoming.stream.seek(0)
        target, handle = self._create_unique(incoming.original_name, now)
        with handle:
            shutil.copyfileobj(incoming.stream, handle)
            size = handle.tell()
        location = self._location(target)
        logger.info("Stored blob %s (%d bytes)", location, size)
        return StoredBlob(location=location, size_bytes=size)

    def copy(self, location: str, original_name: str) -> StoredBlob:
        source = self.path(location)
        if not source.is_file():
            raise NotFoundError(f"Stored file not found: {location}")
        target, handle = self._create_unique(original_name, None)
        with handle, source.open("rb") as src:
            shutil.copyfileobj(src, handle)
            size = handle.tell()
        new_location = self._location(target)
        logger.info("Copied blob %s to %s", location, new_location)
        return StoredBlob(location=new_location, size_bytes=size)

    def delete(self, location: str | None) -> bool:
        """Best-effort removal; a file that is already gone counts as deleted."""
        if not location:
            return False
        try:
            self.path(location).unlink()
        except FileNotFoundError:
            logger.debug("Blob %s already absent", location)
            return False
        except OSError as e:
            logger.warning("Failed to delete blob %s: %s", location, e)
            return False
        logger.info("Deleted blob %s", location)
        return True

    def _create_unique(self, original_name: str, now: datetime | None):
        now = now or datetime.now(timezone.utc)
        directory = self.root / f"{now:%Y}" / f"{now:%m}" / f"{now:%d}"
        directory.mkdir(parents=True, exist_ok=True)
        safe_name = sanitize_file_name(original_name)
        stem, suffix = os.path.splitext(safe_name)
        candidate = safe_name
        counter = 1
        while True:
            target = directory / candidate
            try:
                return target, target.open("xb")
            except FileExistsError:
                candidate = f"{stem}_{counter}{suffix}"
                counter += 1

    def _location(self, target: Path) -> str:
        return target.relative_to(self.root).as_posix()


storage = LocalBlobStorage(settings.upload_dir)
