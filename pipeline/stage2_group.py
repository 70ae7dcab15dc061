"""Stage 2: Group - partition timestamped photos into catalog items.

Photos are sorted by capture time and scanned once. A new group starts when
the gap to the previous photo exceeds the threshold; a gap equal to the
threshold stays in the current group.

The threshold is chosen in this order:
  1. an explicit threshold (CLI flag or CIG_THRESHOLD_SECONDS)
  2. a bisection search for the threshold whose group count is closest to
     the target number of items
  3. settings.default_threshold

Group count falls as the threshold grows, but only roughly: real gaps are
irregular, so the search keeps the best candidate it has seen rather than
trusting where the bisection ends up.
"""
import logging
import re
from collections.abc import Iterable
from statistics import mean

from models.grouping import GroupingResult, ImageGroup, ThresholdSearch
from models.images import ResolvedImageSet, TimestampedImage
from settings import Settings

logger = logging.getLogger(__name__)

_SAMPLE_GAPS = 10
_DIGITS = re.compile(r"(\d+)")


def run(
    settings: Settings,
    image_set: ResolvedImageSet,
    *,
    target_groups: int | None = None,
    threshold_seconds: int | None = None,
) -> GroupingResult:
    """Group the resolved images, choosing a threshold as described above.

    Keyword arguments override the corresponding settings.
    """
    images = sort_images(image_set.images)
    threshold = threshold_seconds if threshold_seconds is not None else settings.threshold_seconds
    target = target_groups if target_groups is not None else settings.target_groups
    search: ThresholdSearch | None = None

    if threshold is None and target is not None and images:
        logger.info("Finding grouping threshold for ~%d items...", target)
        search = find_optimal_threshold(
            images,
            target,
            low=settings.threshold_min,
            high=settings.threshold_max,
            iterations=settings.search_iterations,
            default=settings.default_threshold,
        )
        threshold = search.threshold_seconds
    elif threshold is None:
        threshold = settings.default_threshold

    groups = group_images(images, threshold)
    result = GroupingResult(threshold_seconds=threshold, groups=groups, search=search)

    logger.info("Stage 2 complete")
    logger.info("  Threshold: %s s (%.1f min)", threshold, threshold / 60)
    if search is not None:
        logger.info(
            "  Search:    %d iterations, %d groups for target %d",
            search.iterations, search.group_count, search.target_groups,
        )
    logger.info("  Groups:    %d (%d photos)", len(groups), result.image_count)
    _log_group_summary(images, result)

    return result


def sort_images(images: Iterable[TimestampedImage]) -> list[TimestampedImage]:
    # numbered names break ties in numeric order, so item-1-9 stays before item-1-10
    return sorted(images, key=lambda i: (i.timestamp, natural_key(i.filename)))


def natural_key(filename: str) -> list[str | int]:
    return [int(part) if part.isdecimal() else part for part in _DIGITS.split(filename)]


def group_images(images: Iterable[TimestampedImage], threshold_seconds: float) -> list[ImageGroup]:
    """Partition images into groups separated by gaps larger than the threshold."""
    groups: list[ImageGroup] = []
    current: list[TimestampedImage] = []

    for image in sort_images(images):
        if current and _gap(current[-1], image) > threshold_seconds:
            groups.append(ImageGroup(images=current))
            current = []
        current.append(image)

    if current:
        groups.append(ImageGroup(images=current))

    return groups


def count_groups(sorted_images: list[TimestampedImage], threshold_seconds: float) -> int:
    """Number of groups group_images would produce, for already-sorted input."""
    if not sorted_images:
        return 0
    return 1 + sum(
        1 for prev, cur in zip(sorted_images, sorted_images[1:])
        if _gap(prev, cur) > threshold_seconds
    )


def find_optimal_threshold(
    images: Iterable[TimestampedImage],
    target_groups: int,
    *,
    low: int = 10,
    high: int = 300,
    iterations: int = 20,
    default: int = 60,
) -> ThresholdSearch:
    """Bisect [low, high] for the threshold whose group count is nearest the target.

    Returns the best candidate seen within `iterations` steps. On ties the
    earlier candidate wins; an exact match stops the search.
    """
    sorted_images = sort_images(images)
    best_threshold = default
    best_count = count_groups(sorted_images, default)
    best_diff: int | None = None
    performed = 0

    for _ in range(iterations):
        if low > high:
            break
        performed += 1
        mid = (low + high) // 2
        count = count_groups(sorted_images, mid)
        diff = abs(count - target_groups)

        if best_diff is None or diff < best_diff:
            best_threshold, best_count, best_diff = mid, count, diff
        if diff == 0:
            break

        if count > target_groups:
            # too many groups: merge more by allowing larger gaps
            low = mid + 1
        else:
            high = mid - 1

    return ThresholdSearch(
        threshold_seconds=best_threshold,
        group_count=best_count,
        target_groups=target_groups,
        iterations=performed,
    )


def _gap(prev: TimestampedImage, cur: TimestampedImage) -> float:
    return (cur.timestamp - prev.timestamp).total_seconds()


def _log_group_summary(images: list[TimestampedImage], result: GroupingResult) -> None:
    if not result.groups:
        return
    sizes = [len(g.images) for g in result.groups]
    logger.info(
        "  Group sizes: min=%d, max=%d, avg=%.1f", min(sizes), max(sizes), mean(sizes)
    )
    logger.info("  Longest item: %.0fs", max(g.span_seconds for g in result.groups))
    logger.info("  Sample time gaps (first %d):", _SAMPLE_GAPS)
    for prev, cur in list(zip(images, images[1:]))[:_SAMPLE_GAPS]:
        gap = _gap(prev, cur)
        marker = "same item" if gap <= result.threshold_seconds else "NEW ITEM"
        logger.info("    %.1fs (%s)", gap, marker)
