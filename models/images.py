from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

TimestampSource = Literal["filename", "exif", "filesystem"]


class TimestampedImage(BaseModel):
    """A photo in the images directory paired with its capture time.

    `source` records which resolver produced the timestamp. All datetimes are
    stored as UTC-aware; naive values (filename and EXIF times carry no zone)
    are treated as UTC.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    timestamp: datetime
    source: TimestampSource

    @field_validator("timestamp", mode="before")
    @classmethod
    def ensure_utc(cls, v: datetime | str) -> datetime | str:
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class UnresolvedImage(BaseModel):
    """An image whose timestamp could not be determined by any resolver."""

    filename: str
    reason: str


class ResolvedImageSet(BaseModel):
    images: list[TimestampedImage] = Field(default_factory=list)
    unresolved: list[UnresolvedImage] = Field(default_factory=list)
