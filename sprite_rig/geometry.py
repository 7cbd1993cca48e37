"""
Geometry helpers: alpha blending, bounding boxes and the conversions between
canvas, texture, trimmed-sprite and normalized coordinate spaces.

Spaces used across the importer:
    canvas   - pixel grid of the drawing, top-left origin (cel origins live here)
    texture  - same grid, bottom-left origin (pivots live here)
    sprite   - texture space re-based on a trimmed image's bottom-left corner
    normal   - sprite space divided by the sprite size (0..1 inside the sprite)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


Vec2 = Tuple[float, float]


def blend_over(dst: np.ndarray, src: np.ndarray) -> np.ndarray:
    """
    Blend `src` over `dst` (both (..., 4) float arrays with channels in 0..1).

    Color is lerped toward the source by the source alpha, alpha accumulates as
    a_dst + a_src * (1 - a_dst), then color is divided by the combined alpha.
    Pixels with zero source alpha are expected to be masked out by the caller.
    """
    src_a = src[..., 3:4]
    dst_a = dst[..., 3:4]
    out = dst + (src - dst) * src_a
    alpha = dst_a + src_a * (1.0 - dst_a)
    with np.errstate(divide="ignore", invalid="ignore"):
        rgb = np.where(alpha > 0, out[..., :3] / alpha, 0.0)
    return np.concatenate([rgb, alpha], axis=-1).astype(np.float32)


@dataclass
class BoundingBox:
    """Inclusive pixel bounds in canvas space. Starts empty."""
    min_x: int = np.iinfo(np.int32).max
    min_y: int = np.iinfo(np.int32).max
    max_x: int = np.iinfo(np.int32).min
    max_y: int = np.iinfo(np.int32).min

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    @property
    def width(self) -> int:
        return 0 if self.is_empty else self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return 0 if self.is_empty else self.max_y - self.min_y + 1

    def include(self, x: int, y: int) -> None:
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x)
        self.max_y = max(self.max_y, y)

    def include_mask(self, mask: np.ndarray, origin_x: int = 0, origin_y: int = 0) -> None:
        """Grow the box to cover every True entry of a 2D mask placed at origin."""
        ys, xs = np.nonzero(mask)
        if xs.size == 0:
            return
        self.include(origin_x + int(xs.min()), origin_y + int(ys.min()))
        self.include(origin_x + int(xs.max()), origin_y + int(ys.max()))


def canvas_to_texture(x: float, y: float, canvas_height: int) -> Vec2:
    """Flip a canvas pixel coordinate into bottom-left texture space."""
    return float(x), float(canvas_height - 1 - y)


def crop_position(bbox: BoundingBox, canvas_height: int) -> Tuple[int, int]:
    """Bottom-left corner of a trimmed image, in texture space."""
    return bbox.min_x, canvas_height - bbox.max_y - 1


def texture_to_sprite(point: Vec2, crop: Tuple[int, int]) -> Vec2:
    return point[0] - crop[0], point[1] - crop[1]


def sprite_to_normalized(point: Vec2, width: int, height: int) -> Vec2:
    return point[0] / width, point[1] / height


def normalized_to_texture(
    norm: Vec2,
    crop: Tuple[int, int],
    size: Tuple[int, int],
    half_pixel: bool = False,
) -> Vec2:
    """Inverse of the normalization applied to packed sprite pivots."""
    shift = 0.5 if half_pixel else 0.0
    return (
        norm[0] * size[0] + crop[0] - shift,
        norm[1] * size[1] + crop[1] - shift,
    )


def scale(fraction: Vec2, width: int, height: int) -> Vec2:
    return fraction[0] * width, fraction[1] * height


def sub(a: Vec2, b: Vec2) -> Vec2:
    return a[0] - b[0], a[1] - b[1]


__all__ = [
    "BoundingBox",
    "Vec2",
    "blend_over",
    "canvas_to_texture",
    "crop_position",
    "normalized_to_texture",
    "scale",
    "sprite_to_normalized",
    "sub",
    "texture_to_sprite",
]
