from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar

from app.config import settings
from app.errors import ValidationError


class HasLang(Protocol):
    lang: str


T = TypeVar("T", bound=HasLang)


@dataclass(frozen=True)
class LanguageSet:
    """Fixed set of data languages with one default used as the fallback."""

    codes: tuple[str, ...]
    default: str

    def __post_init__(self):
        if self.default not in self.codes:
            raise ValueError(
                f"Default language {self.default!r} is not one of {self.codes}"
            )

    def normalize(self, value) -> str | None:
        if not value:
            return None
        code = str(value).strip().lower()
        return code if code in self.codes else None

    def require(self, value) -> str:
        code = self.normalize(value)
        if code is None:
            raise ValidationError(
                f"Unsupported language: {value}. Allowed: {', '.join(self.codes)}"
            )
        return code

    def select(self, translations: Sequence[T], preferred=None) -> T | None:
        """Pick preferred, then default, then the first available translation."""
        if not translations:
            return None
        lang = self.normalize(preferred)
        if lang:
            for item in translations:
                if item.lang == lang:
                    return item
        for item in translations:
            if item.lang == self.default:
                return item
        return translations[0]

    def clean_translations(self, translations: Iterable) -> list[dict]:
        """Validate incoming translations and drop the ones with blank titles.

        Raises ValidationError when nothing usable remains or a language
        appears twice.
        """
        cleaned: list[dict] = []
        seen: set[str] = set()
        for item in translations or []:
            data = item if isinstance(item, dict) else item.model_dump()
            title = str(data.get("title") or "").strip()
            if not title:
                continue
            lang = self.require(data.get("lang"))
            if lang in seen:
                raise ValidationError(f"Duplicate translation for language: {lang}")
            seen.add(lang)
            description = data.get("description")
            description = str(description).strip() or None if description else None
            cleaned.append({"lang": lang, "title": title, "description": description})
        if not cleaned:
            raise ValidationError("Translations required")
        return cleaned


def available_langs(translations: Iterable[HasLang]) -> list[str]:
    return [item.lang for item in translations]


languages = LanguageSet(codes=settings.supported_langs, default=settings.default_lang)
