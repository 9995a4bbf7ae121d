"""
Text banner rendering for merged before/after images.

The sizing and color helpers are pure functions of image dimensions, title
text and pixel statistics. `render_banner` is the only function that draws,
and it works on in-memory arrays only.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from app.models.composite import BannerSpec

logger = logging.getLogger(__name__)

FONT_CANDIDATES: Tuple[str, ...] = (
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "arialbd.ttf",
)

# Left-to-right gradient stops: (offset, RGB, stop opacity).
GRADIENT_STOPS: Tuple[Tuple[float, Tuple[int, int, int], float], ...] = (
    (0.0, (0xCC, 0x00, 0x00), 0.9),
    (0.5, (0xFF, 0x66, 0x00), 0.95),
    (1.0, (0xFF, 0xCC, 0x00), 0.9),
)
GRADIENT_FILL_OPACITY = 0.9
SAMPLED_FILL_OPACITY = 0.85

SHADOW_OFFSET = 2
SHADOW_BLUR_RADIUS = 3
SHADOW_OPACITY = 0.8
MIN_RENDER_FONT_SIZE = 12

# Colors are bucketed to 32 levels per channel when sampling.
_QUANT_SHIFT = 3
_MAX_COLOR_SAMPLES = 250_000

_STRIPPED_CHARS = str.maketrans("", "", "<>\"'")


def sanitize_title(title: Optional[str]) -> str:
    """Replace `&` with `and` and drop characters that could break markup."""
    if not title:
        return ""
    return title.replace("&", "and").translate(_STRIPPED_CHARS).strip()


def banner_padding(width: int) -> int:
    return int(max(15, width / 80))


def stacked_font_size(width: int, title: str) -> int:
    """
    Font size for a banner placed at the seam of a vertical stack.

    Starts at width/8 capped at 120, shrinks for long titles and never goes
    below 48.
    """
    size = min(width / 8, 120)
    if len(title) > 30:
        size *= 0.8
    elif len(title) > 20:
        size *= 0.9
    return int(max(48, size))


def adaptive_font_size(width: int) -> int:
    return int(max(24, min(width / 20, 48)))


def dominant_color(pixels: np.ndarray) -> Tuple[int, int, int]:
    """
    Return the dominant color of a BGR pixel array as an RGB tuple.

    Pixels are quantized into 32 levels per channel; the result is the mean
    of the original pixels that fall into the most populated bucket. Ties go
    to the lowest bucket index so the result is deterministic.
    """
    flat = np.asarray(pixels, dtype=np.uint8).reshape(-1, 3)
    if flat.shape[0] == 0:
        return (0, 0, 0)
    if flat.shape[0] > _MAX_COLOR_SAMPLES:
        step = flat.shape[0] // _MAX_COLOR_SAMPLES + 1
        flat = flat[::step]

    quantized = (flat >> _QUANT_SHIFT).astype(np.int32)
    keys = (quantized[:, 0] << 10) | (quantized[:, 1] << 5) | quantized[:, 2]
    counts = np.bincount(keys, minlength=1 << 15)
    top_bucket = int(np.argmax(counts))

    b, g, r = flat[keys == top_bucket].mean(axis=0)
    return (int(round(r)), int(round(g)), int(round(b)))


def gradient_fill(width: int, height: int) -> np.ndarray:
    """Build the fixed red-orange-yellow gradient as an RGBA uint8 array."""
    offsets = [stop[0] for stop in GRADIENT_STOPS]
    positions = np.linspace(0.0, 1.0, width) if width > 1 else np.zeros(max(width, 0))

    channels = [
        np.interp(positions, offsets, [stop[1][index] for stop in GRADIENT_STOPS])
        for index in range(3)
    ]
    alpha = (
        np.interp(positions, offsets, [stop[2] for stop in GRADIENT_STOPS])
        * GRADIENT_FILL_OPACITY
        * 255
    )
    row = np.stack(channels + [alpha], axis=-1)
    strip = np.repeat(row[np.newaxis, :, :], height, axis=0)
    return np.clip(np.rint(strip), 0, 255).astype(np.uint8)


@lru_cache(maxsize=32)
def load_font(size: int) -> ImageFont.FreeTypeFont:
    """Load a bold sans-serif font, falling back to Pillow's bundled face."""
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    logger.warning("No bold TrueType font found; using Pillow default at %dpx", size)
    return ImageFont.load_default(size=size)


def build_stacked_banner(
    width: int,
    seam: int,
    title: Optional[str],
    generated_region: np.ndarray,
) -> BannerSpec | None:
    """Banner at the seam, filled with the generated section's dominant color."""
    clean = sanitize_title(title)
    if not clean:
        return None
    font_size = stacked_font_size(width, clean)
    padding = banner_padding(width)
    return BannerSpec(
        text=clean.upper(),
        font_size=font_size,
        padding=padding,
        top=seam,
        height=font_size + 2 * padding,
        fill=dominant_color(generated_region),
        fill_opacity=SAMPLED_FILL_OPACITY,
    )


def build_adaptive_banner(width: int, title: Optional[str]) -> BannerSpec | None:
    """Banner across the top of the canvas with the fixed gradient."""
    clean = sanitize_title(title)
    if not clean:
        return None
    font_size = adaptive_font_size(width)
    padding = banner_padding(width)
    return BannerSpec(
        text=clean.upper(),
        font_size=font_size,
        padding=padding,
        top=0,
        height=font_size + 2 * padding,
        fill=None,
        fill_opacity=GRADIENT_FILL_OPACITY,
    )


def _fit_font(
    draw: ImageDraw.ImageDraw,
    text: str,
    font_size: int,
    max_width: int,
) -> ImageFont.FreeTypeFont:
    """Largest font up to `font_size` whose rendering of `text` fits `max_width`."""
    size = font_size
    font = load_font(size)
    while size > MIN_RENDER_FONT_SIZE:
        left, _, right, _ = draw.textbbox((0, 0), text, font=font)
        if right - left <= max_width:
            break
        size = max(MIN_RENDER_FONT_SIZE, int(size * 0.9))
        font = load_font(size)
    return font


def _text_origin(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.FreeTypeFont,
    center: Sequence[float],
) -> Tuple[float, float]:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    return center[0] - (left + right) / 2, center[1] - (top + bottom) / 2


def render_banner(image: np.ndarray, spec: BannerSpec) -> np.ndarray:
    """
    Composite the banner described by `spec` onto a BGR image.

    Returns a new array; the input is left untouched. The part of the banner
    that falls outside the image is clipped.
    """
    height, width = image.shape[:2]
    visible = min(spec.height, height - spec.top)
    if visible <= 0 or spec.top < 0:
        return image.copy()

    if spec.uses_gradient:
        strip = Image.fromarray(gradient_fill(width, visible))
    else:
        alpha = int(round(255 * spec.fill_opacity))
        strip = Image.new("RGBA", (width, visible), (*spec.fill, alpha))

    center = (width / 2, spec.height / 2)

    shadow = Image.new("RGBA", strip.size, (0, 0, 0, 0))
    shadow_draw = ImageDraw.Draw(shadow)
    # Banner geometry comes from BannerSpec; only the glyphs shrink for long titles.
    font = _fit_font(shadow_draw, spec.text, spec.font_size, width - 2 * spec.padding)
    x, y = _text_origin(shadow_draw, spec.text, font, center)
    shadow_draw.text(
        (x + SHADOW_OFFSET, y + SHADOW_OFFSET),
        spec.text,
        font=font,
        fill=(0, 0, 0, int(round(255 * SHADOW_OPACITY))),
    )
    shadow = shadow.filter(ImageFilter.GaussianBlur(radius=SHADOW_BLUR_RADIUS))
    strip = Image.alpha_composite(strip, shadow)
    ImageDraw.Draw(strip).text((x, y), spec.text, font=font, fill=(255, 255, 255, 255))

    base = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB)).convert("RGBA")
    base.alpha_composite(strip, dest=(0, spec.top))
    return cv2.cvtColor(np.array(base.convert("RGB")), cv2.COLOR_RGB2BGR)
