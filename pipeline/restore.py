"""Restore: undo renames using the provenance mapping.

Two steps:
  1. finish interrupted renames: a ".staging-{token}-{target}" photo left by
     a crashed Stage 3 is moved to its target when that name is free
  2. rename every mapped photo that is still present back to its original
     name, with the same collision rules and two-phase rename as Stage 3

Restored entries are dropped from image-mapping.json. items.json is not
touched and will reference the old names until the pipeline is re-run.
"""
import logging

from models.renames import ImageMapping
from pipeline.stage3_rename import apply_renames, resolve_collisions, staged_target
from settings import Settings
from utils.artifacts import load_mapping, write_mapping

logger = logging.getLogger(__name__)


def run(settings: Settings) -> dict[str, str]:
    """Restore original filenames. Returns the applied current -> original moves."""
    images_dir = settings.images_dir
    if not images_dir.exists():
        logger.warning("Images directory not found: %s", images_dir)
        return {}

    recovered = recover_staged(settings)

    mapping = load_mapping(settings.mapping_json_path)
    present = {p.name for p in images_dir.iterdir()}
    wanted = {
        current: original
        for current, original in mapping.root.items()
        if current in present and current != original
    }
    moves, rejected = resolve_collisions(wanted, present)
    for current, original in rejected.items():
        logger.warning("Cannot restore %s: %s already exists", current, original)

    apply_renames(images_dir, moves)

    remaining = ImageMapping({
        current: original
        for current, original in mapping.root.items()
        if current not in moves
    })
    write_mapping(remaining, settings.mapping_json_path)

    logger.info("Restore complete → %s", images_dir)
    logger.info("  Recovered from staging: %d", len(recovered))
    logger.info("  Restored:               %d", len(moves))
    logger.info("  Failed:                 %d", len(rejected))
    for current in rejected:
        logger.info("    - %s", current)

    return moves


def recover_staged(settings: Settings) -> dict[str, str]:
    """Move leftover staging files to the target their name encodes."""
    images_dir = settings.images_dir
    recovered: dict[str, str] = {}

    for path in sorted(images_dir.iterdir()):
        target = staged_target(path.name)
        if target is None:
            continue
        target_path = images_dir / target
        if target_path.exists():
            logger.warning("Staged file %s not recovered: %s already exists", path.name, target)
            continue
        path.rename(target_path)
        recovered[path.name] = target
        logger.info("Recovered staged file: %s -> %s", path.name, target)

    return recovered
