"""
Before/after compositing of an original photo and its generated counterpart.

Two layout policies are supported:

- `stacked`: the generated image is scaled to the original's width and placed
  below it. The banner sits on the seam and takes its color from the
  generated section.
- `adaptive`: landscape originals are joined side by side at the smaller of
  the two heights, portrait originals are stacked at the smaller of the two
  widths. Images are only ever scaled down. The banner is a fixed gradient
  across the top.

Images are handled as OpenCV BGR arrays and written out as JPEG.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from app.models.composite import (
    BannerSpec,
    CompositeResult,
    LayoutDecision,
    LayoutPolicy,
    Orientation,
)
from app.services.banner import build_adaptive_banner, build_stacked_banner, render_banner

logger = logging.getLogger(__name__)

JPEG_QUALITY = 90


class CompositingError(RuntimeError):
    """Raised when decoding, merging, overlaying or encoding fails."""


def _scale(length: int, numerator: int, denominator: int) -> int:
    """`length * numerator / denominator`, rounded half up, at least 1 px."""
    return max(1, int(length * numerator / denominator + 0.5))


def _image_size(image: np.ndarray) -> Tuple[int, int]:
    height, width = image.shape[:2]
    return width, height


def decode_image(data: bytes) -> np.ndarray:
    """Decode an encoded image buffer into a 3-channel BGR array."""
    if not data:
        raise CompositingError("empty image buffer")
    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise CompositingError("could not decode image data")
    return image


def decode_base64_image(payload: str | bytes) -> np.ndarray:
    # MIME-style payloads wrap lines; drop whitespace before strict decoding.
    compact = payload.encode("ascii", "replace") if isinstance(payload, str) else payload
    try:
        raw = base64.b64decode(b"".join(compact.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CompositingError("generated image is not valid base64") from exc
    return decode_image(raw)


def encode_jpeg(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY])
    if not ok:
        raise CompositingError("JPEG encoding failed")
    return buffer.tobytes()


def _fit_height(size: Tuple[int, int], target_height: int) -> Tuple[int, int]:
    width, height = size
    if height <= target_height:
        return size
    return _scale(width, target_height, height), target_height


def _fit_width(size: Tuple[int, int], target_width: int) -> Tuple[int, int]:
    width, height = size
    if width <= target_width:
        return size
    return target_width, _scale(height, target_width, width)


def decide_layout(
    original_size: Tuple[int, int],
    generated_size: Tuple[int, int],
    policy: LayoutPolicy = LayoutPolicy.STACKED,
) -> LayoutDecision:
    """
    Decide how the two images are joined and what size each ends up at.

    Sizes are (width, height) tuples. Pure; no pixels are touched.
    """
    policy = LayoutPolicy(policy)
    ow, oh = original_size
    gw, gh = generated_size
    if min(ow, oh, gw, gh) <= 0:
        raise CompositingError("image dimensions must be positive")

    if policy is LayoutPolicy.STACKED:
        return LayoutDecision(
            policy=policy,
            orientation=Orientation.VERTICAL,
            common_length=ow,
            original_size=(ow, oh),
            generated_size=(ow, _scale(gh, ow, gw)),
            seam=oh,
        )

    if ow >= oh:
        common_height = min(oh, gh)
        scaled_original = _fit_height(original_size, common_height)
        return LayoutDecision(
            policy=policy,
            orientation=Orientation.HORIZONTAL,
            common_length=common_height,
            original_size=scaled_original,
            generated_size=_fit_height(generated_size, common_height),
            seam=scaled_original[0],
        )

    common_width = min(ow, gw)
    scaled_original = _fit_width(original_size, common_width)
    return LayoutDecision(
        policy=policy,
        orientation=Orientation.VERTICAL,
        common_length=common_width,
        original_size=scaled_original,
        generated_size=_fit_width(generated_size, common_width),
        seam=scaled_original[1],
    )


def _resize(image: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    if _image_size(image) == size:
        return image
    return cv2.resize(image, size, interpolation=cv2.INTER_LANCZOS4)


def _merge_canvas(
    original: bytes,
    generated_b64: str | bytes,
    policy: LayoutPolicy,
) -> Tuple[np.ndarray, np.ndarray, LayoutDecision]:
    original_image = decode_image(original)
    generated_image = decode_base64_image(generated_b64)

    layout = decide_layout(_image_size(original_image), _image_size(generated_image), policy)
    resized_original = _resize(original_image, layout.original_size)
    resized_generated = _resize(generated_image, layout.generated_size)

    if layout.orientation is Orientation.HORIZONTAL:
        canvas = np.hstack([resized_original, resized_generated])
    else:
        canvas = np.vstack([resized_original, resized_generated])

    logger.info(
        "Merged %s %s: original %s + generated %s -> %s",
        layout.policy.value,
        layout.orientation.value,
        layout.original_size,
        layout.generated_size,
        layout.canvas_size,
    )
    return canvas, resized_generated, layout


def _plan_banner(
    canvas: np.ndarray,
    generated_section: np.ndarray,
    title: Optional[str],
    layout: LayoutDecision,
) -> BannerSpec | None:
    width, _ = _image_size(canvas)
    if layout.policy is LayoutPolicy.STACKED:
        return build_stacked_banner(width, layout.seam, title, generated_section)
    return build_adaptive_banner(width, title)


def merge_images(
    original: bytes,
    generated_b64: str | bytes,
    title: Optional[str] = None,
    policy: LayoutPolicy = LayoutPolicy.STACKED,
) -> CompositeResult:
    """
    Merge the original photo and the base64 generated image into one JPEG.

    When `title` is empty or None the banner step is skipped entirely. Any
    failure raises `CompositingError`; nothing partial is returned.
    """
    try:
        canvas, generated_section, layout = _merge_canvas(
            original, generated_b64, LayoutPolicy(policy)
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("Error merging images: %s", exc)
        raise CompositingError(f"merge failed: {exc}") from exc

    banner: BannerSpec | None = None
    if title:
        try:
            banner = _plan_banner(canvas, generated_section, title, layout)
            if banner is not None:
                canvas = render_banner(canvas, banner)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error adding text overlay: %s", exc)
            raise CompositingError(f"overlay failed: {exc}") from exc

    try:
        data = encode_jpeg(canvas)
    except Exception as exc:  # noqa: BLE001
        logger.error("Error encoding merged image: %s", exc)
        raise CompositingError(f"merge failed: {exc}") from exc

    width, height = _image_size(canvas)
    return CompositeResult(data=data, width=width, height=height, layout=layout, banner=banner)


def add_text_overlay(image_data: bytes, title: str) -> bytes:
    """Burn a gradient title banner into the top of an encoded image."""
    try:
        image = decode_image(image_data)
        banner = build_adaptive_banner(_image_size(image)[0], title)
        if banner is not None:
            image = render_banner(image, banner)
        return encode_jpeg(image)
    except Exception as exc:  # noqa: BLE001
        logger.error("Error adding text overlay: %s", exc)
        raise CompositingError(f"overlay failed: {exc}") from exc
