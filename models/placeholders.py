"""Placeholder text model: typed representation of placeholders.yaml.

New catalog items are emitted with placeholder titles and descriptions that
are edited by hand afterwards. Each language defines format strings that may
reference `{item_id}`, `{photo_count}` and `{photos}` (the singular or plural
photo noun, chosen by count).
"""
from pathlib import Path

from pydantic import BaseModel, Field

from models.catalog import LocalizedText


class LanguagePlaceholder(BaseModel):
    title: str
    description: str
    photo_singular: str
    photo_plural: str

    def render(self, item_id: int, photo_count: int) -> LocalizedText:
        photos = self.photo_singular if photo_count == 1 else self.photo_plural
        values = {"item_id": item_id, "photo_count": photo_count, "photos": photos}
        return LocalizedText(
            title=self.title.format(**values),
            description=self.description.format(**values),
        )


def _default_en() -> LanguagePlaceholder:
    return LanguagePlaceholder(
        title="Item {item_id}",
        description="This is item {item_id} with {photo_count} {photos}. In good condition.",
        photo_singular="photo",
        photo_plural="photos",
    )


def _default_sv() -> LanguagePlaceholder:
    return LanguagePlaceholder(
        title="Artikel {item_id}",
        description="Detta är artikel {item_id} med {photo_count} {photos}. I gott skick.",
        photo_singular="foto",
        photo_plural="foton",
    )


class PlaceholderTemplate(BaseModel):
    """Per-language placeholder text. Every field has a default."""

    en: LanguagePlaceholder = Field(default_factory=_default_en)
    sv: LanguagePlaceholder = Field(default_factory=_default_sv)

    @classmethod
    def load(cls, path: Path) -> "PlaceholderTemplate":
        """Load from a YAML file. Missing languages use the defaults.

        Raises FileNotFoundError if path does not exist.
        """
        import yaml  # lazy, only needed at load time
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls.model_validate(data)

    @classmethod
    def load_or_default(cls, path: Path) -> "PlaceholderTemplate":
        """Load from path if it exists, otherwise return the built-in placeholders."""
        if path.exists():
            return cls.load(path)
        return cls()
