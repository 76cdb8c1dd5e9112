"""
Replay Tool Tests
=================

Tests for the scrollstitch-replay command line.
"""

import numpy as np
import pytest

from conftest import make_canvas, make_scroll_frames
from scrollstitch.capture import load_image, save_png
from scrollstitch.models.frame import Frame
from scrollstitch.replay import main


@pytest.fixture
def capture_dir(tmp_path):
    """Recorded session: four captures, one a duplicate."""
    canvas = make_canvas(1200, 120, seed=61)
    frames = make_scroll_frames(canvas, [0, 300, 600, 600], 600)
    directory = tmp_path / "scroll_debug"
    directory.mkdir()
    for i, frame in enumerate(frames):
        save_png(frame, directory / f"capture_{i:03d}.png")
    return canvas, directory


class TestReplay:
    """Tests for the replay entry point."""

    def test_prints_plan(self, capture_dir, capsys):
        _, directory = capture_dir

        assert main([str(directory)]) == 0

        out = capsys.readouterr().out
        assert "Total output height: 1200 pixels" in out
        assert "SKIP (duplicate)" in out

    def test_writes_output_and_pairs(self, capture_dir, tmp_path):
        canvas, directory = capture_dir
        output = tmp_path / "result.png"

        assert main([str(directory), str(output), "--pairs"]) == 0

        assert np.array_equal(load_image(output).pixels, canvas)
        assert (tmp_path / "result_pair_001_002.png").exists()
        assert (tmp_path / "result_pair_003_004.png").exists()

    def test_seam_image(self, capture_dir, tmp_path):
        _, directory = capture_dir
        seams = tmp_path / "seams.png"

        assert main([str(directory), "--seams", str(seams)]) == 0
        assert load_image(seams).height == 1200

    def test_single_pair(self, capture_dir, tmp_path, capsys):
        canvas, directory = capture_dir
        output = tmp_path / "pair.png"

        assert main([str(directory), str(output), "--pair", "0"]) == 0

        assert "overlap:           300px" in capsys.readouterr().out
        assert np.array_equal(load_image(output).pixels, canvas[:900])

    def test_pair_out_of_range(self, capture_dir):
        _, directory = capture_dir
        assert main([str(directory), "--pair", "3"]) == 1

    def test_empty_directory(self, tmp_path):
        assert main([str(tmp_path)]) == 1

    def test_pair_with_mismatched_widths(self, tmp_path):
        directory = tmp_path / "mixed"
        directory.mkdir()
        save_png(Frame.from_array(make_canvas(600, 120, seed=1)), directory / "capture_000.png")
        save_png(Frame.from_array(make_canvas(600, 100, seed=2)), directory / "capture_001.png")

        assert main([str(directory), "--pair", "0"]) == 1
