"""Tests for Stage 2 grouping and threshold search."""
from datetime import datetime, timedelta, timezone

import pytest

from models.images import ResolvedImageSet, TimestampedImage
from pipeline.stage2_group import count_groups, find_optimal_threshold, group_images, run, sort_images
from settings import Settings


T0 = datetime(2025, 10, 29, 12, 0, 0, tzinfo=timezone.utc)

# Gaps 15, 40, 80, 120, 200, 250 s: every threshold band in [10, 300] gives a
# distinct group count from 7 down to 1.
_STAIRCASE_OFFSETS = [0, 15, 55, 135, 255, 455, 705]


def _images(offsets: list[float]) -> list[TimestampedImage]:
    return [
        TimestampedImage(filename=f"img_{i:03d}.jpg", timestamp=T0 + timedelta(seconds=o), source="filename")
        for i, o in enumerate(offsets)
    ]


def _offsets(groups) -> list[list[float]]:
    return [[(i.timestamp - T0).total_seconds() for i in g.images] for g in groups]


# ---------------------------------------------------------------------------
# group_images
# ---------------------------------------------------------------------------

class TestGroupImages:
    def test_no_images_no_groups(self):
        assert group_images([], 30) == []

    def test_splits_on_large_gap(self):
        groups = group_images(_images([0, 10, 20, 90, 100]), 30)
        assert _offsets(groups) == [[0, 10, 20], [90, 100]]

    def test_evenly_spaced_beyond_threshold_are_singletons(self):
        groups = group_images(_images([0, 60, 120, 180, 240]), 30)
        assert _offsets(groups) == [[0], [60], [120], [180], [240]]

    def test_gap_equal_to_threshold_stays_together(self):
        groups = group_images(_images([0, 30, 60]), 30)
        assert len(groups) == 1

    def test_gap_measured_from_previous_photo(self):
        # 0 -> 100 spans more than the threshold but every step is within it
        groups = group_images(_images([0, 25, 50, 75, 100]), 30)
        assert len(groups) == 1

    def test_zero_threshold_keeps_only_identical_timestamps(self):
        groups = group_images(_images([0, 0, 1, 1, 1, 5]), 0)
        assert [len(g.images) for g in groups] == [2, 3, 1]

    def test_input_order_does_not_matter(self):
        images = _images([0, 10, 20, 90, 100])
        shuffled = [images[3], images[0], images[4], images[2], images[1]]
        assert group_images(shuffled, 30) == group_images(images, 30)

    def test_equal_timestamps_ordered_by_filename(self):
        a = TimestampedImage(filename="b.jpg", timestamp=T0, source="exif")
        b = TimestampedImage(filename="a.jpg", timestamp=T0, source="exif")
        assert [i.filename for i in sort_images([a, b])] == ["a.jpg", "b.jpg"]

    def test_equal_timestamps_ordered_by_photo_number(self):
        names = ["item-1-10.jpg", "item-1-9.jpg", "item-1-11.jpg"]
        images = [TimestampedImage(filename=n, timestamp=T0, source="exif") for n in names]
        assert [i.filename for i in sort_images(images)] == ["item-1-9.jpg", "item-1-10.jpg", "item-1-11.jpg"]

    def test_burst_suffixes_follow_base_name(self):
        names = ["12.00.09_10.jpg", "12.00.09_2.jpg", "12.00.09.jpg", "12.00.09_1.jpg"]
        images = [TimestampedImage(filename=n, timestamp=T0, source="filename") for n in names]
        assert [i.filename for i in sort_images(images)] == [
            "12.00.09.jpg", "12.00.09_1.jpg", "12.00.09_2.jpg", "12.00.09_10.jpg",
        ]


class TestGroupingProperties:
    OFFSETS = [0, 3, 3, 50, 51, 52, 140, 141, 400, 401, 402, 403, 1000]

    @pytest.mark.parametrize("threshold", [0, 1, 10, 60, 100, 500])
    def test_partition_without_loss_or_duplication(self, threshold):
        images = _images(self.OFFSETS)
        groups = group_images(images, threshold)
        flattened = [i.filename for g in groups for i in g.images]
        assert sorted(flattened) == sorted(i.filename for i in images)
        assert len(flattened) == len(set(flattened))

    @pytest.mark.parametrize("threshold", [0, 1, 10, 60, 100, 500])
    def test_groups_ascend(self, threshold):
        groups = group_images(_images(self.OFFSETS), threshold)
        firsts = [g.first_timestamp for g in groups]
        assert firsts == sorted(firsts)
        for g in groups:
            stamps = [i.timestamp for i in g.images]
            assert stamps == sorted(stamps)

    @pytest.mark.parametrize("threshold", [0, 1, 10, 60, 100, 500])
    def test_adjacent_pair_same_group_iff_gap_within_threshold(self, threshold):
        images = sort_images(_images(self.OFFSETS))
        groups = group_images(images, threshold)
        group_of = {i.filename: n for n, g in enumerate(groups) for i in g.images}
        for prev, cur in zip(images, images[1:]):
            gap = (cur.timestamp - prev.timestamp).total_seconds()
            assert (gap <= threshold) == (group_of[prev.filename] == group_of[cur.filename])

    @pytest.mark.parametrize("threshold", [0, 1, 10, 60, 100, 500])
    def test_count_groups_matches_group_images(self, threshold):
        images = sort_images(_images(self.OFFSETS))
        assert count_groups(images, threshold) == len(group_images(images, threshold))


# ---------------------------------------------------------------------------
# find_optimal_threshold
# ---------------------------------------------------------------------------

class TestThresholdSearch:
    @pytest.mark.parametrize("target, expected", [
        (1, 264), (2, 228), (3, 155), (4, 82), (5, 45), (6, 27), (7, 13),
    ])
    def test_exact_targets(self, target, expected):
        result = find_optimal_threshold(_images(_STAIRCASE_OFFSETS), target)
        assert result.threshold_seconds == expected
        assert result.group_count == target
        assert result.difference == 0

    def test_threshold_never_grows_with_target(self):
        images = _images(_STAIRCASE_OFFSETS)
        thresholds = [find_optimal_threshold(images, t).threshold_seconds for t in range(1, 12)]
        assert thresholds == sorted(thresholds, reverse=True)

    def test_unreachable_target_returns_closest(self):
        result = find_optimal_threshold(_images(_STAIRCASE_OFFSETS), 100)
        assert result.group_count == 7
        assert 10 <= result.threshold_seconds < 15

    def test_result_stays_within_bounds(self):
        result = find_optimal_threshold(_images(_STAIRCASE_OFFSETS), 1, low=20, high=100)
        assert 20 <= result.threshold_seconds <= 100
        assert result.group_count == 4

    def test_iterations_are_bounded(self):
        result = find_optimal_threshold(_images(_STAIRCASE_OFFSETS), 100, iterations=3)
        assert result.iterations == 3

    def test_stops_early_on_exact_match(self):
        result = find_optimal_threshold(_images(_STAIRCASE_OFFSETS), 3)
        assert result.iterations == 1

    def test_empty_input(self):
        result = find_optimal_threshold([], 5)
        assert result.group_count == 0
        assert 10 <= result.threshold_seconds <= 300


# ---------------------------------------------------------------------------
# run()
# ---------------------------------------------------------------------------

class TestStage2Run:
    def _set(self, offsets):
        return ResolvedImageSet(images=_images(offsets))

    def test_explicit_threshold_skips_search(self):
        s = Settings(target_groups=10)
        result = run(s, self._set([0, 10, 20, 90, 100]), threshold_seconds=30)
        assert result.search is None
        assert result.threshold_seconds == 30
        assert len(result.groups) == 2

    def test_threshold_from_settings(self):
        s = Settings(threshold_seconds=5)
        result = run(s, self._set([0, 10, 20]))
        assert result.threshold_seconds == 5
        assert len(result.groups) == 3

    def test_searches_for_target(self):
        s = Settings(target_groups=70)
        result = run(s, self._set(_STAIRCASE_OFFSETS), target_groups=4)
        assert result.search is not None
        assert result.search.target_groups == 4
        assert result.threshold_seconds == 82
        assert len(result.groups) == 4

    def test_default_threshold_without_target(self):
        s = Settings(target_groups=None, default_threshold=60)
        result = run(s, self._set([0, 50, 200]))
        assert result.search is None
        assert result.threshold_seconds == 60
        assert len(result.groups) == 2

    def test_empty_set(self):
        result = run(Settings(), ResolvedImageSet())
        assert result.groups == []
