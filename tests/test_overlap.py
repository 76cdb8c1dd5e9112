"""
Overlap Finder Tests
====================

Tests for the coarse-to-fine overlap search and its post-filters.
"""

import numpy as np
import pytest

from conftest import cut_frame, make_canvas, make_scroll_frames
from scrollstitch.config import OverlapConfig
from scrollstitch.errors import DimensionMismatchError
from scrollstitch.models.frame import Frame, PixelFormat
from scrollstitch.models.overlap import OverlapVerdict
from scrollstitch.stitching import (
    Compositor,
    OverlapFinder,
    SuspiciousSmallOverlapPolicy,
    find_overlaps,
    overlap,
)


class TestScenarios:
    """End-to-end overlap scenarios."""

    def test_shifted_frames(self):
        """800x600 frames shifted by 100 rows share ~500 rows."""
        canvas = make_canvas(700, 800, seed=1)
        top, bottom = make_scroll_frames(canvas, [0, 100], 600)

        result = overlap(top, bottom)

        assert abs(result.overlap_rows - 500) <= 4
        assert result.similarity > 0.65
        assert result.verdict == OverlapVerdict.MATCHED

        image = Compositor().stitch([top, bottom], [result])
        assert image.height == 700
        assert np.array_equal(image.pixels, canvas[:700])

    def test_identical_frames(self):
        """Identical 400x1000 frames are a full duplicate."""
        canvas = make_canvas(1000, 400, seed=2)
        top = cut_frame(canvas, 0, 1000, index=0)
        bottom = cut_frame(canvas, 0, 1000, index=1)

        result = overlap(top, bottom)

        assert result.overlap_rows == 1000
        assert result.verdict == OverlapVerdict.DUPLICATE_FRAME
        assert Compositor().stitch([top, bottom], [result]).height == 1000

    def test_unrelated_frames(self):
        """Frames with no common content are drawn in full."""
        top = Frame.from_array(make_canvas(500, 300, seed=10), index=0)
        bottom = Frame.from_array(make_canvas(500, 300, seed=11), index=1)

        result = overlap(top, bottom)

        assert result.overlap_rows == 0
        assert result.similarity < 0.65
        assert result.verdict == OverlapVerdict.NO_MATCH
        assert Compositor().stitch([top, bottom], [result]).height == 1000

    def test_self_overlap_is_full_height(self):
        frame = Frame.from_array(make_canvas(321, 64, seed=4))
        assert overlap(frame, frame).overlap_rows == frame.height


class TestRefinement:
    """Tests for the fine refinement step."""

    @pytest.fixture
    def blocky_pair(self):
        """Vertically correlated content; true overlap 502 is off the coarse grid."""
        canvas = make_canvas(700, 200, seed=3, row_block=10)
        return make_scroll_frames(canvas, [0, 98], 600)

    def test_coarse_lands_near_true_overlap(self, blocky_pair):
        top, bottom = blocky_pair
        coarse_overlap, coarse_similarity = OverlapFinder().coarse_search(top, bottom)

        assert coarse_overlap == 500
        assert 0.65 < coarse_similarity < 1.0

    def test_refinement_finds_exact_overlap(self, blocky_pair):
        top, bottom = blocky_pair
        result = overlap(top, bottom)

        # Blocky rows sampled every second row also match one row short.
        assert abs(result.overlap_rows - 502) <= 1
        assert result.overlap_rows != 500
        assert result.similarity == pytest.approx(1.0)
        assert result.coarse_similarity < result.similarity

    def test_refinement_never_decreases_similarity(self, blocky_pair):
        top, bottom = blocky_pair
        finder = OverlapFinder()
        coarse_overlap, coarse_similarity = finder.coarse_search(top, bottom)

        _, refined_similarity = finder.refine(top, bottom, coarse_overlap, coarse_similarity)

        assert refined_similarity >= coarse_similarity


class TestPostFilters:
    """Tests for the duplicate post-filters."""

    def test_near_full_overlap_is_duplicate(self):
        """Best overlap at the top of the search range means a near-zero scroll."""
        canvas = make_canvas(660, 240, seed=5)
        top, bottom = make_scroll_frames(canvas, [0, 60], 600)

        result = overlap(top, bottom)

        assert result.verdict == OverlapVerdict.NEAR_FULL_OVERLAP
        assert result.overlap_rows == 600

    def test_small_overlap_policy_on_by_default(self):
        """A 150-row perfect match is reported as a duplicate by default."""
        canvas = make_canvas(250, 300, seed=6)
        top, bottom = make_scroll_frames(canvas, [0, 50], 200)

        result = overlap(top, bottom)

        assert result.verdict == OverlapVerdict.SUSPICIOUS_SMALL_OVERLAP
        assert result.overlap_rows == 200

    def test_small_overlap_policy_disabled(self):
        canvas = make_canvas(250, 300, seed=6)
        top, bottom = make_scroll_frames(canvas, [0, 50], 200)

        result = overlap(top, bottom, OverlapConfig(treat_small_overlap_as_duplicate=False))

        assert result.verdict == OverlapVerdict.MATCHED
        assert result.overlap_rows == 150

    def test_custom_policy(self):
        """A caller-supplied policy replaces the default rule."""
        canvas = make_canvas(250, 300, seed=6)
        top, bottom = make_scroll_frames(canvas, [0, 50], 200)
        calls = []

        def never(rows, similarity):
            calls.append((rows, similarity))
            return False

        result = OverlapFinder(small_overlap_policy=never).find_overlap(top, bottom)

        assert result.overlap_rows == 150
        assert calls == [(150, pytest.approx(1.0))]

    def test_default_policy_thresholds(self):
        policy = SuspiciousSmallOverlapPolicy()
        assert policy(150, 0.95)
        assert not policy(150, 0.90)
        assert not policy(200, 0.99)


class TestValidation:
    """Tests for incompatible inputs."""

    def test_width_mismatch(self):
        top = Frame.from_array(make_canvas(100, 64, seed=1))
        bottom = Frame.from_array(make_canvas(100, 65, seed=1))

        with pytest.raises(DimensionMismatchError):
            overlap(top, bottom)

    def test_pixel_format_mismatch(self):
        pixels = make_canvas(100, 64, seed=1)
        top = Frame.from_array(pixels, pixel_format=PixelFormat.BGRA)
        bottom = Frame.from_array(pixels, pixel_format=PixelFormat.RGBA)

        with pytest.raises(DimensionMismatchError):
            overlap(top, bottom)

    def test_too_short_to_search(self):
        """Frames shorter than min_overlap / 0.9 are never searched."""
        top = Frame.from_array(make_canvas(8, 32, seed=1))
        bottom = Frame.from_array(make_canvas(8, 32, seed=2))

        result = overlap(top, bottom)

        assert result.overlap_rows == 0
        assert result.verdict == OverlapVerdict.NO_MATCH


class TestFindOverlaps:
    """Tests for pairwise search over a sequence."""

    def test_one_result_per_adjacent_pair(self):
        canvas = make_canvas(1400, 200, seed=8)
        frames = make_scroll_frames(canvas, [0, 300, 600], 600)

        results = find_overlaps(frames)

        assert [(r.top_index, r.bottom_index) for r in results] == [(0, 1), (1, 2)]
        assert [r.overlap_rows for r in results] == [300, 300]

    def test_single_frame_has_no_overlaps(self):
        frame = Frame.from_array(make_canvas(50, 50, seed=1))
        assert find_overlaps([frame]) == []
