from datetime import datetime
from pathlib import Path

import pytest
from PIL import Image

from settings import Settings

_EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


def save_photo(path: Path, taken: datetime | None = None, tag: int = 36867) -> Path:
    """Write a small JPEG, optionally with an EXIF date under the given tag."""
    img = Image.new("RGB", (32, 24), "white")
    if taken is None:
        img.save(path)
    else:
        exif = Image.Exif()
        exif[tag] = taken.strftime(_EXIF_DATETIME_FORMAT)
        img.save(path, exif=exif)
    return path


def camera_name(taken: datetime, duplicate: int | None = None) -> str:
    """Filename in the phone export format, e.g. '2025-10-29 12.00.25_1.jpg'."""
    stem = taken.strftime("%Y-%m-%d %H.%M.%S")
    if duplicate is not None:
        stem += f"_{duplicate}"
    return f"{stem}.jpg"


@pytest.fixture
def tmp_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a fresh temp project.

    Directory layout mirrors the site's public folder:
        images/   product photos
        data/     items.json, image-mapping.json, placeholders.yaml
    """
    for subdir in ("images", "data"):
        (tmp_path / subdir).mkdir()
    return Settings(project_dir=tmp_path)
