"""
Texture Atlas Generator

Packs frame images into one square texture atlas with a shelf algorithm,
doubling the atlas size until everything fits.

Positions follow the sprite convention used by the rig data: x grows right,
y grows up from the bottom of the atlas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from .compositor import FrameImage


logger = logging.getLogger(__name__)

INITIAL_ATLAS_SIZE = 128
LARGE_ATLAS_SIZE = 2048


@dataclass(frozen=True)
class PackPosition:
    x: int
    y: int


@dataclass
class PackResult:
    """Atlas size and one position per packed item, in input order."""
    size: int
    positions: List[PackPosition]


def _pack_shelf(sizes: Sequence[Tuple[int, int]], size: int, border: int) -> Optional[PackResult]:
    """
    Shelf packing algorithm: place items left to right on horizontal shelves,
    bottom to top. Returns None if the items do not fit in `size`.
    """
    positions: List[PackPosition] = []
    # x: position after the last item; y: baseline of the current shelf
    x, y = 0, 0
    shelf_height = 0

    for width, height in sizes:
        if width > size:
            return None

        # Empty images only keep their slot in the position list
        if width == 0:
            positions.append(PackPosition(0, 0))
            continue

        if x + width + border > size:
            # Move to next shelf
            y += shelf_height
            x = 0
            shelf_height = height + border
        elif height + border > shelf_height:
            shelf_height = height + border

        if y + shelf_height > size:
            return None

        positions.append(PackPosition(x, y))
        x += width + border

    return PackResult(size=size, positions=positions)


def pack_atlas(
    sizes: Sequence[Tuple[int, int]],
    border: int = 1,
    initial_size: int = INITIAL_ATLAS_SIZE,
) -> PackResult:
    """
    Pack (width, height) items, starting at `initial_size` and doubling the
    square atlas until every item fits. Item order is kept as given.
    """
    size = initial_size
    while True:
        result = _pack_shelf(sizes, size, border)
        if result is not None:
            break
        logger.debug("atlas size %d too small for %d images, doubling", size, len(sizes))
        size *= 2

    if result.size > LARGE_ATLAS_SIZE:
        logger.warning(
            "Generated atlas size %d is larger than %d; some runtimes may compress "
            "or reject it.", result.size, LARGE_ATLAS_SIZE,
        )
    return result


def to_rgba8(pixels: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(pixels * 255.0), 0, 255).astype(np.uint8)


def build_atlas(images: Sequence[FrameImage], packing: PackResult) -> Image.Image:
    """
    Copy every image into a transparent atlas of `packing.size`.

    Pack positions count from the atlas bottom; image rows run top to bottom,
    so each image lands with its top row at size - y - height.
    """
    size = packing.size
    atlas = np.zeros((size, size, 4), dtype=np.uint8)

    for image, pos in zip(images, packing.positions):
        if not image.has_content:
            continue
        top = size - pos.y - image.height
        atlas[top:top + image.height, pos.x:pos.x + image.width] = to_rgba8(image.pixels)

    return Image.fromarray(atlas)


__all__ = [
    "INITIAL_ATLAS_SIZE",
    "LARGE_ATLAS_SIZE",
    "PackPosition",
    "PackResult",
    "build_atlas",
    "pack_atlas",
    "to_rgba8",
]
