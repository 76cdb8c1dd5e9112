"""
HTTP API Tests
==============

Tests for the FastAPI service using TestClient.
"""

import numpy as np
import pytest
from fastapi.testclient import TestClient

from conftest import make_canvas, make_scroll_frames
from scrollstitch.capture import decode_image, encode_png
from scrollstitch.main import app
from scrollstitch.models.frame import Frame


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def scroll_pngs():
    """Three 600-row captures, 300 rows apart, as PNG uploads."""
    canvas = make_canvas(1200, 160, seed=51)
    frames = make_scroll_frames(canvas, [0, 300, 600], 600)
    return canvas, [encode_png(f) for f in frames]


def _uploads(pngs):
    return [("files", (f"capture_{i:03d}.png", data, "image/png")) for i, data in enumerate(pngs)]


class TestServiceEndpoints:
    """Tests for informational endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "scrollstitch"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "stitches" in response.json()


class TestOverlapEndpoint:
    """Tests for POST /overlap."""

    def test_overlap(self, client, scroll_pngs):
        _, pngs = scroll_pngs
        response = client.post(
            "/overlap",
            files={
                "top": ("top.png", pngs[0], "image/png"),
                "bottom": ("bottom.png", pngs[1], "image/png"),
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["overlap_rows"] == 300
        assert body["verdict"] == "MATCHED"

    def test_corrupt_upload(self, client, scroll_pngs):
        _, pngs = scroll_pngs
        response = client.post(
            "/overlap",
            files={
                "top": ("top.png", pngs[0], "image/png"),
                "bottom": ("bottom.png", b"garbage", "image/png"),
            },
        )
        assert response.status_code == 400


class TestStitchEndpoints:
    """Tests for POST /plan and POST /stitch."""

    def test_plan(self, client, scroll_pngs):
        _, pngs = scroll_pngs
        response = client.post("/plan", files=_uploads(pngs))

        assert response.status_code == 200
        body = response.json()
        assert body["frame_count"] == 3
        assert body["output_height"] == 1200
        assert [o["overlap_rows"] for o in body["overlaps"]] == [300, 300]
        assert len(body["plan"]["entries"]) == 3

    def test_stitch(self, client, scroll_pngs):
        canvas, pngs = scroll_pngs
        response = client.post("/stitch", files=_uploads(pngs))

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["x-output-height"] == "1200"

        image = decode_image(response.content)
        assert np.array_equal(image.pixels, canvas)

    def test_width_mismatch(self, client, scroll_pngs):
        _, pngs = scroll_pngs
        narrow = encode_png(Frame.from_array(make_canvas(600, 100, seed=1)))

        response = client.post("/stitch", files=_uploads([pngs[0], narrow]))

        assert response.status_code == 422
