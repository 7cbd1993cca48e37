"""
Frame Image Compositor

Merges all content layers of a target into one image per frame, trims it to
its visible pixels, and collapses pixel-identical results so each distinct
image is packed only once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

import numpy as np

from .document import Document
from .geometry import BoundingBox, blend_over, crop_position
from .targets import TargetRegistry


logger = logging.getLogger(__name__)


class PixelReadError(IndexError):
    """Pixel access outside an image buffer."""


@dataclass(frozen=True)
class FrameRecord:
    """One (target, frame) use of an image, with that use's crop position."""
    frame: int
    target_path: str
    crop_x: int
    crop_y: int

    @property
    def crop(self) -> Tuple[int, int]:
        return self.crop_x, self.crop_y


@dataclass
class FrameImage:
    """
    A composited frame image.

    `pixels` holds the trimmed RGBA data (rows top to bottom); `bbox` is the
    trimmed area within the canvas. Empty images keep a 1x1 box at the origin
    and report a zero size.
    """
    canvas_width: int
    canvas_height: int
    pixels: np.ndarray
    bbox: BoundingBox
    has_content: bool = False
    records: List[FrameRecord] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.bbox.width if self.has_content else 0

    @property
    def height(self) -> int:
        return self.bbox.height if self.has_content else 0

    @property
    def crop(self) -> Tuple[int, int]:
        """Bottom-left corner of the trimmed area in texture space."""
        return crop_position(self.bbox, self.canvas_height)

    def get_pixel(self, x: int, y: int) -> np.ndarray:
        """Pixel at canvas coordinate (x, y) of the trimmed area."""
        local_x = x - self.bbox.min_x
        local_y = y - self.bbox.min_y
        h, w = self.pixels.shape[:2]
        if not (0 <= local_x < w and 0 <= local_y < h):
            raise PixelReadError(
                f"Pixel read out of range! x: {x}, y: {y} where w: {w}, h: {h}"
            )
        return self.pixels[local_y, local_x]

    def same_pixels(self, other: "FrameImage") -> bool:
        return (
            self.pixels.shape == other.pixels.shape
            and np.array_equal(self.pixels, other.pixels)
        )


def _trim(buffer: np.ndarray, bbox: BoundingBox) -> np.ndarray:
    height, width = buffer.shape[:2]
    if bbox.min_x < 0 or bbox.min_y < 0 or bbox.max_x >= width or bbox.max_y >= height:
        raise PixelReadError(
            f"Trim box ({bbox.min_x}, {bbox.min_y})-({bbox.max_x}, {bbox.max_y}) "
            f"outside {width}x{height} image"
        )
    return buffer[bbox.min_y:bbox.max_y + 1, bbox.min_x:bbox.max_x + 1].copy()


def composite(
    document: Document,
    registry: TargetRegistry,
    target_path: str,
    frame_index: int,
    dense_packed: bool = True,
) -> FrameImage:
    """
    Composite every cel of the target's content layers in one frame.

    Cels are drawn in layer index order, later layers on top. Pixels outside
    the canvas are dropped.

    Args:
        document: Source document
        registry: Resolved targets
        target_path: Target to composite
        frame_index: Frame to composite
        dense_packed: Trim to visible pixels; otherwise keep the whole canvas

    Returns:
        Trimmed FrameImage (without frame records)
    """
    width, height = document.width, document.height
    buffer = np.zeros((height, width, 4), dtype=np.float32)
    bbox = BoundingBox()

    frame = document.frames[frame_index]
    for layer in registry.content_layers(target_path):
        cel = frame.cels.get(layer.index)
        if cel is None:
            continue

        # Intersect the cel with the canvas; the rest is dropped.
        x0, y0 = max(cel.x, 0), max(cel.y, 0)
        x1, y1 = min(cel.x + cel.width, width), min(cel.y + cel.height, height)
        if x0 >= x1 or y0 >= y1:
            continue

        src = cel.pixels[y0 - cel.y:y1 - cel.y, x0 - cel.x:x1 - cel.x]
        mask = src[..., 3] != 0
        if not mask.any():
            continue

        region = buffer[y0:y1, x0:x1]
        blended = blend_over(region, src)
        region[mask] = blended[mask]
        bbox.include_mask(mask, x0, y0)

    has_content = not bbox.is_empty
    if not has_content:
        bbox = BoundingBox(0, 0, 0, 0)
    if not dense_packed:
        bbox = BoundingBox(0, 0, width - 1, height - 1)

    return FrameImage(
        canvas_width=width,
        canvas_height=height,
        pixels=_trim(buffer, bbox),
        bbox=bbox,
        has_content=has_content,
    )


class ImageSet:
    """
    Ordered collection of distinct frame images.

    Adding an image whose pixels equal an accepted image (same size, same
    values) attaches its frame records to the accepted one instead.
    """

    def __init__(self):
        self.images: List[FrameImage] = []
        self._by_size: Dict[Tuple[int, int], List[FrameImage]] = {}
        self.duplicates = 0

    def __iter__(self) -> Iterator[FrameImage]:
        return iter(self.images)

    def __len__(self) -> int:
        return len(self.images)

    def add(self, image: FrameImage, record: FrameRecord) -> FrameImage:
        if not image.has_content:
            raise ValueError("Empty images cannot be added to an ImageSet")

        key = (image.width, image.height)
        for existing in self._by_size.get(key, []):
            if existing.same_pixels(image):
                existing.records.append(record)
                self.duplicates += 1
                return existing

        image.records.append(record)
        self.images.append(image)
        self._by_size.setdefault(key, []).append(image)
        return image


def generate_frame_images(
    document: Document,
    registry: TargetRegistry,
    dense_packed: bool = True,
) -> ImageSet:
    """
    Composite every target with content layers over every frame.

    Targets are visited in path order and frames in frame order; that order
    is kept through packing. Frames where a target has no visible pixel are
    skipped.
    """
    image_set = ImageSet()
    target_paths = sorted(t.path for t in registry if registry.content_layers(t.path))

    for path in target_paths:
        for frame in document.frames:
            image = composite(document, registry, path, frame.index, dense_packed)
            if not image.has_content:
                continue
            crop_x, crop_y = image.crop
            image_set.add(image, FrameRecord(frame.index, path, crop_x, crop_y))

    logger.debug(
        "composited %d targets: %d distinct images, %d duplicates",
        len(target_paths), len(image_set), image_set.duplicates,
    )
    return image_set


__all__ = [
    "FrameImage",
    "FrameRecord",
    "ImageSet",
    "PixelReadError",
    "composite",
    "generate_frame_images",
]
