"""
Seam Visualization Tests
========================

Tests for seam positions and the gated annotated image.
"""

import numpy as np

from conftest import make_canvas, make_scroll_frames
from scrollstitch.config import ObservabilityConfig
from scrollstitch.models.overlap import OverlapResult, OverlapVerdict
from scrollstitch.observability import SeamVisualizer, compute_seams, parse_hex_color
from scrollstitch.stitching import build_plan, stitch


def _results():
    return [
        OverlapResult(top_index=0, bottom_index=1, overlap_rows=100, similarity=1.0),
        OverlapResult(
            top_index=1, bottom_index=2, overlap_rows=300, similarity=1.0,
            verdict=OverlapVerdict.DUPLICATE_FRAME,
        ),
    ]


def _frames():
    canvas = make_canvas(600, 64, seed=41)
    return make_scroll_frames(canvas, [0, 200, 200], 300)


class TestComputeSeams:
    """Tests for compute_seams()."""

    def test_seams_skip_empty_entries(self):
        plan = build_plan(_frames(), _results())

        seams = compute_seams(plan, _results())

        # Frame 1 is a duplicate of frame 2 and contributes no rows.
        assert [(s.y, s.frame_index) for s in seams] == [(200, 2)]
        assert seams[0].overlap_rows == 300
        assert seams[0].verdict == "DUPLICATE_FRAME"

    def test_parse_hex_color(self):
        assert parse_hex_color("#ff3b30") == (255, 59, 48)


class TestSeamVisualizer:
    """Tests for the gated visualizer."""

    def test_disabled_is_noop(self):
        frames, results = _frames(), _results()
        image = stitch(frames, results)

        artifacts = SeamVisualizer().generate(image, build_plan(frames, results), results)

        assert artifacts.seams is None
        assert artifacts.annotated is None

    def test_enabled_draws_on_a_copy(self):
        frames, results = _frames(), _results()
        image = stitch(frames, results)
        before = np.array(image.pixels)
        config = ObservabilityConfig(enable_seams=True, seam_color="#00ff00")

        artifacts = SeamVisualizer(config).generate(image, build_plan(frames, results), results)

        assert len(artifacts.seams) == 1
        assert artifacts.annotated.height == image.height
        assert np.array_equal(image.pixels, before)
        # Green line across the seam row (BGRA)
        assert (artifacts.annotated.pixels[200, 10:60, :3] == (0, 255, 0)).all()
