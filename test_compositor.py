"""Tests for layout decisions and the before/after merge."""

import base64
import logging
from unittest.mock import patch

import cv2
import numpy as np
import pytest

from app.models.composite import LayoutPolicy, Orientation
from app.services.compositor import (
    CompositingError,
    add_text_overlay,
    decide_layout,
    merge_images,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _encode(width, height, bgr, ext=".png"):
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :] = bgr
    ok, buffer = cv2.imencode(ext, image)
    assert ok
    return buffer.tobytes()


def _b64(data):
    return base64.b64encode(data).decode("ascii")


def _decode(data):
    return cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)


def _white_pixels(region):
    return int(np.sum(np.all(region > 200, axis=-1)))


def test_stacked_layout_formula():
    layout = decide_layout((1000, 800), (512, 512), LayoutPolicy.STACKED)
    assert layout.orientation is Orientation.VERTICAL
    assert layout.original_size == (1000, 800)
    assert layout.generated_size == (1000, 1000)
    assert layout.canvas_size == (1000, 1800)
    assert layout.seam == 800

    layout = decide_layout((300, 200), (100, 50), LayoutPolicy.STACKED)
    assert layout.canvas_size == (300, 200 + 150)

    # round(101 * 1 / 2) rounds the half up.
    layout = decide_layout((101, 10), (2, 1), LayoutPolicy.STACKED)
    assert layout.generated_size == (101, 51)
    logger.info("✓ Stacked layout sizes")


def test_adaptive_layout_horizontal_for_landscape():
    layout = decide_layout((400, 300), (512, 512), LayoutPolicy.ADAPTIVE)
    assert layout.orientation is Orientation.HORIZONTAL
    assert layout.common_length == 300
    assert layout.original_size == (400, 300)
    assert layout.generated_size == (300, 300)
    assert layout.canvas_size == (700, 300)
    assert layout.seam == 400

    # Square originals also join horizontally.
    assert decide_layout((500, 500), (100, 100), "adaptive").orientation is Orientation.HORIZONTAL
    logger.info("✓ Adaptive horizontal layout")


def test_adaptive_layout_vertical_for_portrait():
    layout = decide_layout((300, 400), (512, 512), LayoutPolicy.ADAPTIVE)
    assert layout.orientation is Orientation.VERTICAL
    assert layout.common_length == 300
    assert layout.generated_size == (300, 300)
    assert layout.canvas_size == (300, 700)
    assert layout.seam == 400
    logger.info("✓ Adaptive vertical layout")


def test_adaptive_layout_never_enlarges():
    layout = decide_layout((800, 600), (200, 100), LayoutPolicy.ADAPTIVE)
    assert layout.generated_size == (200, 100)
    assert layout.original_size == (133, 100)
    assert layout.canvas_size == (333, 100)


def test_decide_layout_rejects_empty_dimensions():
    with pytest.raises(CompositingError):
        decide_layout((0, 10), (10, 10))


def test_stacked_merge_end_to_end_dimensions_and_banner():
    original = _encode(1000, 800, (255, 0, 0), ext=".jpg")
    generated = _encode(512, 512, (0, 160, 0))

    result = merge_images(original, _b64(generated), "Still Going Here?", LayoutPolicy.STACKED)

    assert result.data[:2] == b"\xff\xd8"
    assert (result.width, result.height) == (1000, 1800)
    merged = _decode(result.data)
    assert merged.shape == (1800, 1000, 3)

    banner = result.banner
    assert banner is not None
    assert banner.top == 800
    assert banner.height == 150
    assert banner.text == "STILL GOING HERE?"
    red, green, blue = banner.fill
    assert red < 5 and blue < 5 and abs(green - 160) <= 2

    assert _white_pixels(merged[800:950]) > 0
    assert _white_pixels(merged[:790]) == 0
    # Just above the seam the original is still plain blue.
    b, g, r = merged[780, 10]
    assert b > 200 and g < 40 and r < 40
    logger.info("✓ Stacked merge with seam banner")


def test_square_generated_image_below_landscape_original():
    # 1000x800 original, 512x512 generated: 800 + round(1000 * 512 / 512) rows.
    original = _encode(1000, 800, (90, 90, 90), ext=".jpg")
    generated = _encode(512, 512, (20, 60, 120))
    result = merge_images(original, _b64(generated), "Still Going Here?")
    assert (result.width, result.height) == (1000, 1800)


def test_merge_without_title_skips_banner():
    original = _encode(400, 300, (255, 0, 0))
    generated = _encode(200, 100, (0, 160, 0))

    plain = merge_images(original, _b64(generated), None)
    empty = merge_images(original, _b64(generated), "")
    titled = merge_images(original, _b64(generated), "Hello")

    assert plain.banner is None
    assert empty.banner is None
    assert (plain.width, plain.height) == (titled.width, titled.height) == (400, 500)
    assert plain.data == empty.data

    plain_pixels = _decode(plain.data)
    titled_pixels = _decode(titled.data)
    assert _white_pixels(plain_pixels) == 0
    assert _white_pixels(titled_pixels[300:]) > 0
    logger.info("✓ No title, no banner")


def test_title_that_sanitizes_to_nothing_skips_banner():
    original = _encode(200, 200, (10, 10, 10))
    generated = _encode(200, 200, (30, 30, 30))
    result = merge_images(original, _b64(generated), "<>\"'")
    assert result.banner is None


def test_adaptive_merge_gradient_on_top():
    original = _encode(600, 400, (128, 128, 128))
    generated = _encode(512, 512, (128, 128, 128))

    result = merge_images(original, _b64(generated), "Tom & Jerry", LayoutPolicy.ADAPTIVE)

    assert (result.width, result.height) == (600 + 400, 400)
    assert result.banner.top == 0
    assert result.banner.uses_gradient
    assert result.banner.text == "TOM AND JERRY"

    merged = _decode(result.data)
    b, g, r = merged[3, 3]
    assert r > 150 and g < 70
    b, g, r = merged[3, result.width - 4]
    assert r > 200 and g > 150 and b < 90
    # Below the banner the gray image is untouched.
    b, g, r = merged[380, 10]
    assert abs(int(r) - 128) < 10 and abs(int(g) - 128) < 10
    logger.info("✓ Adaptive merge with gradient banner")


def test_merge_rejects_undecodable_inputs():
    generated = _encode(10, 10, (0, 0, 0))
    with pytest.raises(CompositingError, match="merge failed"):
        merge_images(b"definitely not an image", _b64(generated), "Title")
    with pytest.raises(CompositingError, match="merge failed"):
        merge_images(_encode(10, 10, (0, 0, 0)), "!!not-base64!!", "Title")
    with pytest.raises(CompositingError, match="merge failed"):
        merge_images(_encode(10, 10, (0, 0, 0)), _b64(b"plain text"), None)
    logger.info("✓ Decode failures abort the merge")


def test_merge_accepts_line_wrapped_base64():
    original = _encode(120, 80, (255, 0, 0))
    noise = np.random.default_rng(3).integers(0, 256, size=(80, 120, 3), dtype=np.uint8)
    ok, buffer = cv2.imencode(".png", noise)
    assert ok
    wrapped = base64.encodebytes(buffer.tobytes())
    assert b"\n" in wrapped.rstrip(b"\n")

    from_bytes = merge_images(original, wrapped, None)
    from_text = merge_images(original, wrapped.decode("ascii"), None)
    plain = merge_images(original, _b64(buffer.tobytes()), None)

    assert (from_bytes.width, from_bytes.height) == (120, 160)
    assert from_bytes.data == from_text.data == plain.data
    logger.info("✓ Line-wrapped base64 decoded")


def test_overlay_failure_is_reported_as_overlay_failed():
    original = _encode(100, 100, (0, 0, 0))
    generated = _encode(100, 100, (0, 0, 0))
    with patch("app.services.compositor.render_banner", side_effect=RuntimeError("font exploded")):
        with pytest.raises(CompositingError, match="overlay failed: font exploded"):
            merge_images(original, _b64(generated), "Title")


def test_add_text_overlay():
    image = _encode(640, 360, (128, 128, 128), ext=".jpg")
    output = add_text_overlay(image, "Your Vacation Spot in 2045")
    decoded = _decode(output)
    assert decoded.shape == (360, 640, 3)
    assert _white_pixels(decoded[:70]) > 0

    with pytest.raises(CompositingError, match="overlay failed"):
        add_text_overlay(b"garbage", "Title")
