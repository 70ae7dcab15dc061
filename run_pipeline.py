#!/usr/bin/env python3
"""Group catalog photos into items, rename them and rebuild items.json.

Usage:
    python run_pipeline.py                      # search a threshold for ~CIG_TARGET_GROUPS items
    python run_pipeline.py --target-groups 40   # search a threshold for ~40 items
    python run_pipeline.py --threshold 30       # group with a fixed 30 s gap
    python run_pipeline.py --dry-run            # resolve and group only, touch nothing
    python run_pipeline.py --regroup            # renumber item-N-P[x].jpg photos after manual edits
    python run_pipeline.py --restore            # rename photos back using image-mapping.json
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from settings import Settings
from pipeline import regroup, restore, stage1_resolve, stage2_group, stage3_rename, stage4_catalog
from utils.artifacts import CatalogWriteError, InterruptedRenameError, MappingReadError

logger = logging.getLogger("run_pipeline")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser()
    parser.add_argument("--target-groups", type=int, default=None, dest="target_groups",
                        help="Approximate number of items to aim for (overrides CIG_TARGET_GROUPS)")
    parser.add_argument("--threshold", type=int, default=None, dest="threshold",
                        help="Fixed grouping gap in seconds; skips the threshold search")
    parser.add_argument("--dry-run", action="store_true", dest="dry_run",
                        help="Resolve and group only; do not rename files or write JSON")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--regroup", action="store_true",
                      help="Rebuild groups from item-N-P[suffix] filenames instead of timestamps")
    mode.add_argument("--restore", action="store_true",
                      help="Restore original filenames from image-mapping.json")
    args = parser.parse_args(argv)
    grouping_flags = args.threshold is not None or args.target_groups is not None
    if (args.regroup or args.restore) and grouping_flags:
        parser.error("--threshold and --target-groups cannot be combined with --regroup or --restore")
    return args


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        _run(settings, args)
    except (CatalogWriteError, MappingReadError, InterruptedRenameError) as exc:
        logger.error("Aborting: %s", exc)
        sys.exit(1)


def _run(settings: Settings, args: argparse.Namespace) -> None:
    if args.restore:
        logger.info("=== Restore original filenames ===")
        restore.run(settings)
        return

    stage3_rename.ensure_not_interrupted(settings.images_dir)

    if args.regroup:
        logger.info("=== Regroup from item filenames ===")
        groups = regroup.run(settings)
    else:
        logger.info("=== Stage 1: Resolve timestamps ===")
        image_set = stage1_resolve.run(settings)
        for unresolved in image_set.unresolved:
            logger.warning("Excluded from grouping: %s (%s)", unresolved.filename, unresolved.reason)

        logger.info("=== Stage 2: Group ===")
        grouping = stage2_group.run(
            settings,
            image_set,
            target_groups=args.target_groups,
            threshold_seconds=args.threshold,
        )
        groups = grouping.filename_groups

    if not groups:
        logger.warning("No photos to group; leaving %s untouched.", settings.items_json_path)
        return

    if args.dry_run:
        logger.info("=== Dry run: %d items planned, nothing renamed ===", len(groups))
        return

    logger.info("=== Stage 3: Rename ===")
    plan = stage3_rename.run(settings, groups)

    logger.info("=== Stage 4: Catalog ===")
    catalog = stage4_catalog.run(settings, plan)

    logger.info("=== Done → %d items, %d photos ===", len(catalog.items), len(plan.entries))


if __name__ == "__main__":
    main()
