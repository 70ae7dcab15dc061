from pydantic import BaseModel, Field, field_validator


class LocalizedText(BaseModel):
    title: str
    description: str


class CatalogItem(BaseModel):
    """One listing in items.json. Field order matches the site's JSON layout."""

    id: int = Field(ge=1)
    categories: list[int] = Field(default_factory=list)
    active: bool = True
    price: int = Field(ge=0)
    images: list[str] = Field(min_length=1)
    en: LocalizedText
    sv: LocalizedText


class Catalog(BaseModel):
    items: list[CatalogItem] = Field(default_factory=list)

    @field_validator("items")
    @classmethod
    def ids_must_be_unique(cls, v: list[CatalogItem]) -> list[CatalogItem]:
        ids = [item.id for item in v]
        if len(ids) != len(set(ids)):
            raise ValueError("catalog item ids must be unique")
        return v
