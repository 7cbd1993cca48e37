"""
Pivots and Offsets

A pivot layer marks, per frame, the point its target's sprite hangs from.
The pivot is the average position of the layer's visible pixels, expressed in
texture pixels (bottom-left origin) of the whole canvas.

Offsets are the per-frame difference between a target's pivot and the pivot
of its nearest ancestor that has a pivot of its own. They drive the local
position of child parts.

Resolution runs in two phases:
    1. pivots for every target (pivot layers, root default, inheritance)
    2. offsets for every target that has its own pivot layer
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import numpy as np

from .document import Document, Layer
from .geometry import Vec2, canvas_to_texture, sub
from .settings import ImportSettings
from .targets import ROOT_PATH, Target, TargetRegistry


logger = logging.getLogger(__name__)

PIVOT_ALPHA_THRESHOLD = 0.1


def compute_pivots(document: Document, pivot_layer: Layer) -> Dict[int, Vec2]:
    """
    Average texture position of the visible pixels of `pivot_layer`, per frame.

    Frames without a cel for the layer are left out silently. Frames whose cel
    has no pixel above the alpha threshold are left out with a warning.
    """
    pivots: Dict[int, Vec2] = {}
    for frame in document.frames:
        cel = frame.cels.get(pivot_layer.index)
        if cel is None:
            continue

        ys, xs = np.nonzero(cel.pixels[..., 3] > PIVOT_ALPHA_THRESHOLD)
        if xs.size == 0:
            logger.warning(
                "Pivot layer '%s' is missing a pivot pixel in frame %d",
                pivot_layer.name, frame.index,
            )
            continue

        # The flip is linear, so the mean can be taken in canvas space.
        pivots[frame.index] = canvas_to_texture(
            cel.x + float(xs.mean()), cel.y + float(ys.mean()), document.height,
        )

    return pivots


def assign_layer_pivots(document: Document, registry: TargetRegistry, layer: Layer) -> Optional[Target]:
    """Compute a pivot layer's pivots and attach them to the layer's target."""
    if layer.index in registry.ignored_pivot_layers:
        return None

    path = registry.path_of(layer.index)
    if not path:
        logger.warning("Pivot layer '%s' has no target", layer.name)
        return None
    if path not in registry:
        logger.warning("Pivot layer '%s' target '%s' could not be found", layer.name, path)
        return None

    target = registry[path]
    target.pivot_layer_index = layer.index
    target.inherited_pivot = False
    target.pivots = compute_pivots(document, layer)
    logger.debug("target '%s' pivots from layer %d: %d frames", path, layer.index, len(target.pivots))
    return target


def nearest_pivot_ancestor(registry: TargetRegistry, target: Target) -> Optional[Target]:
    """Walk up the path hierarchy to the first target with its own pivot layer."""
    path = target.path
    while path != ROOT_PATH:
        parent = registry.find_parent_target(path)
        if parent.has_own_pivot:
            return parent
        path = parent.path
    return None


def inherit_pivots(document: Document, registry: TargetRegistry, settings: ImportSettings) -> None:
    """
    Phase 1 completion: give the root a default pivot when it has no pivot
    layer, then let every target without a pivot layer take the pivots of its
    nearest ancestor that has one (or of the root).
    """
    root = registry.root
    if not root.has_own_pivot:
        default = settings.default_pivot(document.width, document.height)
        logger.debug(
            "root has no pivot layer, using default pivot %s = %s",
            settings.alignment.value, default,
        )
        root.pivots = {frame.index: default for frame in document.frames}

    for target in registry:
        if target.path == ROOT_PATH or target.has_own_pivot:
            continue
        source = nearest_pivot_ancestor(registry, target) or root
        target.pivot_layer_index = source.pivot_layer_index
        target.pivots = source.pivots
        target.inherited_pivot = True
        logger.debug(
            "target '%s' took pivots from '%s' (layer %s)",
            target.path, source.path, source.pivot_layer_index,
        )


def compute_offsets(
    parent_pivots: Dict[int, Vec2],
    target_pivots: Dict[int, Vec2],
    target_path: str,
    frame_count: int,
    default_pivot: Vec2 = (0.0, 0.0),
) -> Dict[int, Vec2]:
    """
    Per-frame difference between a target's pivot and its parent's pivot.

    Args:
        parent_pivots: Pivots of the nearest ancestor with a pivot layer.
            Empty when there is none; offsets are then taken against
            `default_pivot` for every frame.
        target_pivots: The target's own pivots
        target_path: Used in warnings
        frame_count: Number of frames in the document, for wrap-around
        default_pivot: Texture-space fallback pivot

    Returns:
        frame -> (dx, dy) for every frame in `target_pivots`
    """
    offsets: Dict[int, Vec2] = {}

    if not parent_pivots:
        for frame, pivot in sorted(target_pivots.items()):
            offsets[frame] = sub(pivot, default_pivot)
        return offsets

    for frame, pivot in sorted(target_pivots.items()):
        parent_pivot = parent_pivots.get(frame)
        if parent_pivot is not None:
            offsets[frame] = sub(pivot, parent_pivot)
            continue

        # No parent pivot: this pivot acts as the root for this frame and must
        # not move, or the sprite drifts the opposite way.
        prev_frame = frame - 1 if frame > 0 else frame_count - 1
        prev_pivot = target_pivots.get(prev_frame)
        if prev_frame != frame and prev_pivot is not None and prev_pivot != pivot:
            logger.warning(
                "Target '%s' has no parent pivot, but its pivot moves in frame %d. "
                "This may cause unintended sprite movement.",
                target_path, frame,
            )
        offsets[frame] = (0.0, 0.0)

    return offsets


def resolve_offsets(document: Document, registry: TargetRegistry, settings: ImportSettings) -> None:
    """Phase 2: offsets for every non-root target with its own pivot layer."""
    default = settings.default_pivot(document.width, document.height)
    frame_count = len(document.frames)

    for target in registry:
        if target.path == ROOT_PATH or not target.has_own_pivot:
            continue
        ancestor = nearest_pivot_ancestor(registry, target)
        if ancestor is None:
            logger.debug("target '%s' has no parent pivot, offsets from default pivot", target.path)
            parent_pivots: Dict[int, Vec2] = {}
        else:
            logger.debug("target '%s' offsets relative to '%s'", target.path, ancestor.path)
            parent_pivots = ancestor.pivots
        target.offsets = compute_offsets(
            parent_pivots, target.pivots, target.path, frame_count, default,
        )


def pivot_at(target: Target, frame: int) -> Vec2:
    """
    Target pivot for a frame. A frame without its own entry keeps the pivot
    of the latest earlier frame; with none earlier the pivot is (0, 0).
    """
    pivot = target.pivots.get(frame)
    if pivot is not None:
        return pivot
    earlier = [f for f in target.pivots if f < frame]
    if earlier:
        return target.pivots[max(earlier)]
    return 0.0, 0.0


__all__ = [
    "PIVOT_ALPHA_THRESHOLD",
    "assign_layer_pivots",
    "compute_offsets",
    "compute_pivots",
    "inherit_pivots",
    "nearest_pivot_ancestor",
    "pivot_at",
    "resolve_offsets",
]
