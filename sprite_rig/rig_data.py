"""
Rig data export.

Collects, for every animation (frame tag) and every target, what a rig needs
per frame: the sprite name, normalized pivot, pixel dimensions and the
parent-relative offset converted to world units.

    {
        "ppu": 100.0,
        "pixel_origin": "center",
        "atlas_size": 256,
        "animations": {
            "<tag name>": {
                "num_frames": 4,
                "loop": true,
                "duration_ms": 400,
                "targets": {
                    "/arm": {
                        "sprite_base_name": "arm",
                        "frames": [
                            {"frame": 0, "sprite": "arm_0",
                             "pivot": [0.5, 0.1], "dims": [12, 30],
                             "offset": [0.04, -0.02]}
                        ]
                    }
                }
            }
        }
    }

Frame numbers inside an animation count from 0 at the tag start. A document
without tags is exported as one animation named after the document.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .document import FrameTag
from .importer import ImportResult


def _tags_of(result: ImportResult) -> List[FrameTag]:
    if result.document.tags:
        return list(result.document.tags)
    return [FrameTag(
        name=result.settings.base_name or result.document.name,
        start=0,
        end=len(result.document.frames) - 1,
    )]


def build_rig_data(result: ImportResult, ppu: Optional[float] = None) -> Dict[str, Any]:
    """
    Build JSON-ready rig data from an import result.

    Args:
        result: Finished import
        ppu: Pixels per world unit; defaults to the import settings' value

    Returns:
        Dict shaped as described in the module docstring
    """
    ppu = ppu or result.settings.ppu
    sprites_by_key = {(s.target_path, s.frame): s for s in result.sprites}
    animations: Dict[str, Any] = {}

    for tag in _tags_of(result):
        if not tag.frames:
            continue
        targets: Dict[str, Any] = {}
        for path in sorted(result.targets):
            target = result.targets[path]
            frames = []
            for local_idx, frame in enumerate(tag.frames):
                sprite = sprites_by_key.get((path, frame))
                offset = target.offsets.get(frame)
                if sprite is None and offset is None:
                    continue
                entry: Dict[str, Any] = {"frame": local_idx, "sprite": sprite.name if sprite else None}
                if sprite is not None:
                    entry["pivot"] = [sprite.pivot_x, sprite.pivot_y]
                    entry["dims"] = [sprite.width, sprite.height]
                if offset is not None:
                    entry["offset"] = [offset[0] / ppu, offset[1] / ppu]
                frames.append(entry)
            if frames:
                targets[path] = {"sprite_base_name": target.sprite_base_name, "frames": frames}

        animations[tag.name] = {
            "num_frames": len(tag.frames),
            "loop": tag.loop,
            "duration_ms": sum(result.document.frames[f].duration for f in tag.frames),
            "targets": targets,
        }

    return {
        "ppu": ppu,
        "pixel_origin": result.settings.pixel_origin.value,
        "atlas_size": result.atlas_size,
        "animations": animations,
    }


__all__ = ["build_rig_data"]
