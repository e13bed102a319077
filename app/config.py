import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/doclib"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip().lower() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Upload storage
    upload_dir: str = os.getenv("UPLOAD_DIR", "uploads")
    max_upload_size_bytes: int = (
        int(os.getenv("MAX_UPLOAD_SIZE_MB", "10")) * 1024 * 1024
    )  # 10MB
    allowed_extensions: tuple[str, ...] = _csv(
        os.getenv("ALLOWED_EXTENSIONS", "pdf,txt,docx")
    )
    allowed_mime_types: tuple[str, ...] = _csv(
        os.getenv(
            "ALLOWED_MIME_TYPES",
            "application/pdf,text/plain,"
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        )
    )

    # Trash retention
    trash_ttl_days: int = int(os.getenv("TRASH_TTL_DAYS", "30"))
    trash_sweep_hour: int = int(os.getenv("TRASH_SWEEP_HOUR", "3"))

    # Languages
    supported_langs: tuple[str, ...] = _csv(os.getenv("SUPPORTED_LANGS", "ru,en,uz"))
    default_lang: str = os.getenv("DEFAULT_DATA_LANG", "ru").strip().lower()

    # Hierarchies
    max_tree_depth: int = int(os.getenv("MAX_TREE_DEPTH", "10"))

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv(
        "CELERY_RESULT_BACKEND", "redis://localhost:6379/1"
    )

    # Branding
    brand_name: str = os.getenv("BRAND_NAME", "Document Library")


@dataclass(frozen=True)
class UploadPolicy:
    """Size and type constraints applied to every stored blob."""

    max_size_bytes: int
    allowed_extensions: tuple[str, ...]
    allowed_mime_types: tuple[str, ...]

    @classmethod
    def from_settings(cls, source: Settings) -> "UploadPolicy":
        return cls(
            max_size_bytes=source.max_upload_size_bytes,
            allowed_extensions=source.allowed_extensions,
            allowed_mime_types=source.allowed_mime_types,
        )


settings = Settings()
