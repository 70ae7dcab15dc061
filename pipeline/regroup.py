"""Regroup: rebuild item groups from already-renamed photos.

After a first run, items are split or merged by hand by renaming photos with
a letter suffix: "item-6-1x.jpg" and "item-6-2x.jpg" become their own item
right after item 6. Groups are keyed by (item number, suffix), ordered by item
number then suffix (no suffix first), and photos inside a group by photo
number. The result feeds Stage 3 and Stage 4, which renumber everything.
"""
import logging
import re

from pipeline.stage1_resolve import list_images
from settings import Settings

logger = logging.getLogger(__name__)

_ITEM_PATTERN = re.compile(
    r"^item-(?P<item>\d+)-(?P<photo>\d+)(?P<suffix>[a-z]?)\.[a-z0-9]+$",
    re.IGNORECASE,
)


def run(settings: Settings) -> list[list[str]]:
    """Return source filenames per item, in catalog order."""
    filenames = [p.name for p in list_images(settings.images_dir)]
    groups, unmatched = group_by_item_name(filenames)

    for filename in unmatched:
        logger.warning("Not an item photo, leaving untouched: %s", filename)

    logger.info("Regroup complete → %d items from %d photos", len(groups),
                sum(len(g) for g in groups))
    return groups


def group_by_item_name(filenames: list[str]) -> tuple[list[list[str]], list[str]]:
    """Split filenames into ordered item groups and the names that did not parse."""
    keyed: dict[tuple[int, str], list[tuple[int, str]]] = {}
    unmatched: list[str] = []

    for filename in filenames:
        match = _ITEM_PATTERN.match(filename)
        if match is None:
            unmatched.append(filename)
            continue
        key = (int(match.group("item")), match.group("suffix").lower())
        keyed.setdefault(key, []).append((int(match.group("photo")), filename))

    groups = [
        [filename for _, filename in sorted(keyed[key])]
        for key in sorted(keyed)
    ]
    return groups, unmatched
