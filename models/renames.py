from pydantic import BaseModel, ConfigDict, Field, RootModel


class RenameEntry(BaseModel):
    """One photo's place in the rename pass.

    `target` equals `source` when the photo already carries its canonical name
    or when its rename was skipped because of a collision (`skipped=True`).
    """

    model_config = ConfigDict(frozen=True)

    item_id: int = Field(ge=1)
    photo_number: int = Field(ge=1)
    source: str
    target: str
    skipped: bool = False

    @property
    def moves(self) -> bool:
        return self.source != self.target


class RenamePlan(BaseModel):
    entries: list[RenameEntry] = Field(default_factory=list)

    def by_item(self) -> dict[int, list[RenameEntry]]:
        """Entries keyed by item ID, in item order, photos in photo-number order."""
        items: dict[int, list[RenameEntry]] = {}
        for entry in sorted(self.entries, key=lambda e: (e.item_id, e.photo_number)):
            items.setdefault(entry.item_id, []).append(entry)
        return items

    @property
    def moves(self) -> dict[str, str]:
        return {e.source: e.target for e in self.entries if e.moves}

    @property
    def skipped(self) -> list[RenameEntry]:
        return [e for e in self.entries if e.skipped]


class ImageMapping(RootModel[dict[str, str]]):
    """Provenance record: renamed filename -> original filename."""

    root: dict[str, str] = Field(default_factory=dict)

    def original_name(self, filename: str) -> str:
        return self.root.get(filename, filename)
