"""Stage 3: Rename - give every grouped photo its canonical catalog name.

Item IDs count from 1 in group order, photo numbers from 1 within each group;
the canonical name is "item-{id}-{photo}{ext}".

Order of side effects:
  1. plan every rename and drop the ones whose target is taken by a file
     that is not itself moving away (logged as collisions, photo keeps its name)
  2. write the provenance mapping (new name -> original name)
  3. move every renamed photo to ".staging-{token}-{target}"
  4. move every staged photo to its target

The mapping is on disk before the first rename, and a staged name still
encodes its target, so an interrupted run can be finished or undone with
`run_pipeline.py --restore`. Until that is done, Stage 3 refuses to run.

Reads:  <project>/data/image-mapping.json (if present)
Writes: <project>/images/item-*.*
        <project>/data/image-mapping.json
"""
import logging
import re
import uuid
from collections.abc import Iterable, Sequence
from pathlib import Path

from models.renames import ImageMapping, RenameEntry, RenamePlan
from settings import Settings
from utils.artifacts import (
    InterruptedRenameError,
    RenameCollisionError,
    load_mapping,
    write_mapping,
)

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".staging-"
_STAGING_PATTERN = re.compile(r"^\.staging-[0-9a-f]{8}-(?P<target>.+)$")


def run(settings: Settings, groups: Sequence[Sequence[str]]) -> RenamePlan:
    """Rename the grouped photos in place and persist the provenance mapping.

    `groups` lists source filenames per item, photos in display order.
    Returns the applied RenamePlan. Raises InterruptedRenameError if staging
    files from an earlier run are still in the images directory.
    """
    images_dir = settings.images_dir
    ensure_not_interrupted(images_dir)
    existing = load_mapping(settings.mapping_json_path)

    present = _present_names(images_dir)
    plan = plan_renames(groups, present)
    mapping = build_mapping(plan, existing, present)
    write_mapping(mapping, settings.mapping_json_path)
    logger.info("Saved mapping file: %s", settings.mapping_json_path)

    moves = plan.moves
    apply_renames(images_dir, moves)

    logger.info("Stage 3 complete → %s", images_dir)
    logger.info("  Items:     %d", len(plan.by_item()))
    logger.info("  Renamed:   %d", len(moves))
    logger.info("  Unchanged: %d", len(plan.entries) - len(moves) - len(plan.skipped))
    logger.info("  Skipped:   %d", len(plan.skipped))

    return plan


def canonical_name(item_id: int, photo_number: int, suffix: str) -> str:
    return f"item-{item_id}-{photo_number}{suffix.lower()}"


def plan_renames(groups: Sequence[Sequence[str]], present: Iterable[str]) -> RenamePlan:
    """Assign item IDs and photo numbers, then drop colliding renames."""
    candidates: list[RenameEntry] = []
    for item_id, group in enumerate(groups, start=1):
        for photo_number, source in enumerate(group, start=1):
            candidates.append(RenameEntry(
                item_id=item_id,
                photo_number=photo_number,
                source=source,
                target=canonical_name(item_id, photo_number, Path(source).suffix),
            ))

    _, rejected = resolve_collisions(
        {e.source: e.target for e in candidates if e.moves}, present
    )
    for source, target in rejected.items():
        logger.warning("Rename collision: %s already exists; keeping %s", target, source)

    entries = [
        e.model_copy(update={"target": e.source, "skipped": True})
        if e.source in rejected else e
        for e in candidates
    ]
    return RenamePlan(entries=entries)


def resolve_collisions(
    moves: dict[str, str],
    present: Iterable[str],
) -> tuple[dict[str, str], dict[str, str]]:
    """Split source -> target moves into (accepted, rejected).

    A move is rejected when its target is occupied by a file that is not
    vacated by another accepted move, or when another accepted move already
    claims the same target. Rejecting a move pins its source in place, which
    can block further moves, so this repeats until nothing changes.
    """
    present = set(present)
    accepted = dict(moves)
    rejected: dict[str, str] = {}

    changed = True
    while changed:
        changed = False
        vacated = set(accepted)
        claimed: set[str] = set()
        for source, target in list(accepted.items()):
            if (target in present and target not in vacated) or target in claimed:
                del accepted[source]
                rejected[source] = target
                changed = True
                break
            claimed.add(target)

    return accepted, rejected


def build_mapping(plan: RenamePlan, existing: ImageMapping, present: Iterable[str]) -> ImageMapping:
    """Map each final filename to the name the photo had before any run.

    Existing entries for files that are still on disk but not part of this
    plan (unresolved photos, skipped extensions) are carried over unchanged.
    """
    mapping = {
        entry.target: existing.original_name(entry.source)
        for entry in plan.entries
    }
    planned = {entry.source for entry in plan.entries}
    present = set(present)
    for current, original in existing.root.items():
        if current in present and current not in planned and current not in mapping:
            mapping[current] = original
    return ImageMapping(mapping)


def apply_renames(images_dir: Path, moves: dict[str, str]) -> None:
    """Two-phase rename of source -> target inside `images_dir`.

    Raises RenameCollisionError if a target appears between planning and the
    second phase; the photo is then left under its staging name.
    """
    if not moves:
        return

    token = uuid.uuid4().hex[:8]
    staged: dict[str, str] = {}

    logger.info("Renaming %d files (phase 1: to staging names)...", len(moves))
    for source, target in moves.items():
        staging = f"{STAGING_PREFIX}{token}-{target}"
        (images_dir / source).rename(images_dir / staging)
        staged[staging] = target

    logger.info("Renaming %d files (phase 2: to final names)...", len(staged))
    for staging, target in staged.items():
        final_path = images_dir / target
        if final_path.exists():
            raise RenameCollisionError(
                f"{target} appeared during rename; photo left at {staging}"
            )
        (images_dir / staging).rename(final_path)


def staged_target(filename: str) -> str | None:
    """Target name encoded in a staging filename, or None for other files."""
    match = _STAGING_PATTERN.match(filename)
    return match.group("target") if match else None


def ensure_not_interrupted(images_dir: Path) -> None:
    """Refuse to continue while an earlier rename is half done.

    Staged photos are hidden from Stage 1 and their target names could be
    handed to other photos, so they must be recovered with --restore first.
    """
    staged = sorted(n for n in _present_names(images_dir) if staged_target(n) is not None)
    if staged:
        raise InterruptedRenameError(
            f"{len(staged)} photo(s) left under staging names by an interrupted run "
            f"(e.g. {staged[0]}); run with --restore first"
        )


def _present_names(images_dir: Path) -> set[str]:
    if not images_dir.exists():
        return set()
    return {p.name for p in images_dir.iterdir()}
