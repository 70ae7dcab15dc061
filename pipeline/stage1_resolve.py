"""Stage 1: Resolve - inventory the images directory and timestamp every photo.

Each image is passed through an ordered list of resolvers; the first one that
yields a timestamp wins:

  filename    "YYYY-MM-DD HH.MM.SS[_N].jpg" as written by the phone camera export
  exif        DateTimeOriginal, DateTimeDigitized, DateTime (first present)
  filesystem  creation time if the platform reports one, else modification time

Images no resolver can date are reported as unresolved, never dropped silently.

Reads:  <project>/images/
"""
import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from PIL import Image

from models.images import ResolvedImageSet, TimestampedImage, TimestampSource, UnresolvedImage
from settings import Settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})

_FILENAME_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2})\s+(\d{2})\.(\d{2})\.(\d{2})(?:_\d+)?\.jpg$",
    re.IGNORECASE,
)

# EXIF tag IDs for timestamps (checked in priority order)
_EXIF_DATETIME_TAGS = (36867, 36868, 306)  # DateTimeOriginal, DateTimeDigitized, DateTime
_EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"
_EXIF_IFD_POINTER = 0x8769

Resolver = Callable[[Path], datetime | None]


def run(settings: Settings) -> ResolvedImageSet:
    """Resolve a timestamp for every image in the images directory.

    Returns the ResolvedImageSet; images are listed in filename order.
    """
    image_set = ResolvedImageSet()

    for path in list_images(settings.images_dir):
        resolved = resolve_timestamp(path)
        if resolved is None:
            logger.warning("Could not resolve a timestamp for %s", path.name)
            image_set.unresolved.append(UnresolvedImage(
                filename=path.name,
                reason="no filename pattern, EXIF date or file time",
            ))
            continue
        timestamp, source = resolved
        image_set.images.append(
            TimestampedImage(filename=path.name, timestamp=timestamp, source=source)
        )

    by_source: dict[str, int] = {}
    for image in image_set.images:
        by_source[image.source] = by_source.get(image.source, 0) + 1

    logger.info("Stage 1 complete → %s", settings.images_dir)
    logger.info("  Resolved:   %d", len(image_set.images))
    for source, count in sorted(by_source.items()):
        logger.info("    %-10s %d", source, count)
    logger.info("  Unresolved: %d", len(image_set.unresolved))

    return image_set


def list_images(images_dir: Path) -> list[Path]:
    """Image files in `images_dir`, sorted by name. Hidden files are skipped."""
    if not images_dir.exists():
        logger.warning("Images directory not found: %s", images_dir)
        return []

    return sorted(
        f for f in images_dir.iterdir()
        if f.is_file()
        and not f.name.startswith(".")
        and f.suffix.lower() in IMAGE_EXTENSIONS
    )


def resolve_timestamp(path: Path) -> tuple[datetime, TimestampSource] | None:
    for source, resolver in _RESOLVERS:
        timestamp = resolver(path)
        if timestamp is not None:
            return timestamp, source
    return None


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------

def parse_filename_timestamp(filename: str) -> datetime | None:
    match = _FILENAME_PATTERN.match(filename)
    if match is None:
        return None
    day, hour, minute, second = match.groups()
    try:
        return datetime.strptime(
            f"{day} {hour}:{minute}:{second}", "%Y-%m-%d %H:%M:%S"
        ).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _from_filename(path: Path) -> datetime | None:
    return parse_filename_timestamp(path.name)


def _from_exif(path: Path) -> datetime | None:
    try:
        with Image.open(path) as img:
            exif = img.getexif()
            exif_ifd = exif.get_ifd(_EXIF_IFD_POINTER)
    except Exception as exc:
        logger.debug("Could not read EXIF from %s: %s", path.name, exc)
        return None
    return _read_exif_timestamp(exif, exif_ifd)


def _read_exif_timestamp(*ifds) -> datetime | None:
    for tag_id in _EXIF_DATETIME_TAGS:
        for ifd in ifds:
            value = ifd.get(tag_id)
            if not value:
                continue
            if isinstance(value, bytes):
                value = value.decode("ascii", errors="ignore")
            try:
                return datetime.strptime(value.strip("\x00 "), _EXIF_DATETIME_FORMAT).replace(
                    tzinfo=timezone.utc
                )
            except ValueError:
                continue
    return None


def _from_filesystem(path: Path) -> datetime | None:
    try:
        stat = path.stat()
    except OSError as exc:
        logger.debug("Could not stat %s: %s", path.name, exc)
        return None
    return filesystem_time(stat)


def filesystem_time(stat) -> datetime | None:
    """Creation time when the platform reports a non-zero one, else mtime."""
    created = getattr(stat, "st_birthtime", None)
    seconds = created if created else stat.st_mtime
    if not seconds or seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


_RESOLVERS: tuple[tuple[TimestampSource, Resolver], ...] = (
    ("filename", _from_filename),
    ("exif", _from_exif),
    ("filesystem", _from_filesystem),
)
