"""
Pivot normalization for packed sprites.

Turns each target's pixel pivot into a 0..1 fraction of the packed sprite
rectangle. Values outside 0..1 are valid (pivot outside the sprite) and are
not clamped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .atlas_generator import PackResult
from .compositor import FrameImage
from .geometry import Vec2, sprite_to_normalized, texture_to_sprite
from .pivots import pivot_at
from .settings import ImportSettings, PixelOrigin
from .targets import TargetRegistry


@dataclass(frozen=True)
class PackedSprite:
    """A named region of the atlas with its normalized pivot."""
    name: str
    target_path: str
    frame: int
    x: int
    y: int
    width: int
    height: int
    pivot_x: float
    pivot_y: float
    crop_x: int
    crop_y: int

    @property
    def rect(self):
        return self.x, self.y, self.width, self.height

    @property
    def pivot(self) -> Vec2:
        return self.pivot_x, self.pivot_y

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "target": self.target_path,
            "frame": self.frame,
            "rect": {"x": self.x, "y": self.y, "w": self.width, "h": self.height},
            "pivot": {"x": self.pivot_x, "y": self.pivot_y},
            "crop": {"x": self.crop_x, "y": self.crop_y},
        }


def uses_half_pixel(settings: ImportSettings, pivot_from_layer: bool) -> bool:
    # Default alignment pivots are not pixels, so they never get the half pixel.
    return pivot_from_layer and settings.pixel_origin == PixelOrigin.CENTER


def normalize_pivot(
    pivot: Vec2,
    crop: tuple,
    width: int,
    height: int,
    half_pixel: bool = False,
) -> Vec2:
    local_x, local_y = texture_to_sprite(pivot, crop)
    if half_pixel:
        local_x += 0.5
        local_y += 0.5
    return sprite_to_normalized((local_x, local_y), width, height)


def normalize_sprites(
    images: Sequence[FrameImage],
    packing: PackResult,
    registry: TargetRegistry,
    settings: ImportSettings,
) -> List[PackedSprite]:
    """
    Build the packed sprite list: one sprite per frame record of every image,
    all records of one image sharing its atlas rectangle. Also fills the
    targets' `pivot_norms` and `dimensions`.
    """
    sprites: List[PackedSprite] = []

    for image, pos in zip(images, packing.positions):
        for record in image.records:
            target = registry[record.target_path]
            half_pixel = uses_half_pixel(settings, target.pivot_layer_index is not None)
            norm = normalize_pivot(
                pivot_at(target, record.frame), record.crop,
                image.width, image.height, half_pixel,
            )
            target.pivot_norms[record.frame] = norm
            target.dimensions[record.frame] = (image.width, image.height)

            sprites.append(PackedSprite(
                name=f"{target.sprite_base_name}_{record.frame}",
                target_path=record.target_path,
                frame=record.frame,
                x=pos.x,
                y=pos.y,
                width=image.width,
                height=image.height,
                pivot_x=norm[0],
                pivot_y=norm[1],
                crop_x=record.crop_x,
                crop_y=record.crop_y,
            ))

    return sprites


__all__ = ["PackedSprite", "normalize_pivot", "normalize_sprites", "uses_half_pixel"]
