from datetime import datetime

from pydantic import BaseModel, Field, computed_field, field_validator

from models.images import TimestampedImage


class ImageGroup(BaseModel):
    """The photo set of one catalog item, ascending by timestamp.

    Ordering is validated on construction so a group can never be built
    out of order by hand.
    """

    images: list[TimestampedImage] = Field(min_length=1)

    @field_validator("images")
    @classmethod
    def must_be_chronological(cls, v: list[TimestampedImage]) -> list[TimestampedImage]:
        for prev, cur in zip(v, v[1:]):
            if cur.timestamp < prev.timestamp:
                raise ValueError("images in a group must ascend by timestamp")
        return v

    @property
    def first_timestamp(self) -> datetime:
        return self.images[0].timestamp

    @property
    def filenames(self) -> list[str]:
        return [i.filename for i in self.images]

    @property
    def span_seconds(self) -> float:
        return (self.images[-1].timestamp - self.images[0].timestamp).total_seconds()


class ThresholdSearch(BaseModel):
    """Best-seen candidate of the threshold bisection."""

    threshold_seconds: int = Field(ge=0)
    group_count: int = Field(ge=0)
    target_groups: int = Field(ge=1)
    iterations: int = Field(ge=0)

    @computed_field  # type: ignore[misc]
    @property
    def difference(self) -> int:
        return abs(self.group_count - self.target_groups)


class GroupingResult(BaseModel):
    threshold_seconds: float = Field(ge=0)
    groups: list[ImageGroup] = Field(default_factory=list)
    search: ThresholdSearch | None = None

    @property
    def filename_groups(self) -> list[list[str]]:
        return [g.filenames for g in self.groups]

    @property
    def image_count(self) -> int:
        return sum(len(g.images) for g in self.groups)
