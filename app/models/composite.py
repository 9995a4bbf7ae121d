from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class LayoutPolicy(str, Enum):
    """How the original and generated images are joined."""

    # Generated image always below the original, banner at the seam.
    STACKED = "stacked"
    # Join axis picked from the original's aspect ratio, banner on top.
    ADAPTIVE = "adaptive"


class Orientation(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(slots=True, frozen=True)
class LayoutDecision:
    """
    Result of the layout step for a single merge.

    `common_length` is the shared height for horizontal joins and the shared
    width for vertical joins. Sizes are (width, height) after scaling. `seam`
    is the offset along the join axis where the generated section starts.
    """

    policy: LayoutPolicy
    orientation: Orientation
    common_length: int
    original_size: Tuple[int, int]
    generated_size: Tuple[int, int]
    seam: int

    @property
    def canvas_size(self) -> Tuple[int, int]:
        """(width, height) of the merged canvas."""
        ow, oh = self.original_size
        gw, gh = self.generated_size
        if self.orientation is Orientation.HORIZONTAL:
            return ow + gw, self.common_length
        return self.common_length, oh + gh


@dataclass(slots=True, frozen=True)
class BannerSpec:
    """Derived attributes of the text banner for one render call."""

    text: str
    font_size: int
    padding: int
    top: int
    height: int
    # Solid RGB fill sampled from the image. None means the fixed gradient.
    fill: Tuple[int, int, int] | None = None
    fill_opacity: float = 0.9

    @property
    def uses_gradient(self) -> bool:
        return self.fill is None


@dataclass(slots=True)
class CompositeResult:
    """Encoded merge output returned to the caller."""

    data: bytes
    width: int
    height: int
    layout: LayoutDecision
    banner: BannerSpec | None = None


@dataclass(slots=True)
class GenerationResult:
    """What the external generation service hands back."""

    image_data: bytes
    caption: str
