"""Builders for small in-memory documents used across the tests."""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from sprite_rig.document import Cel, Document, Frame, FrameTag, Layer, LayerKind


def solid(width: int, height: int, color=(1.0, 1.0, 1.0, 1.0)) -> np.ndarray:
    pixels = np.zeros((height, width, 4), dtype=np.float32)
    pixels[:, :] = color
    return pixels


def dot_cel(layer: int, tex_x: int, tex_y: int, canvas_height: int) -> Cel:
    """A 1x1 opaque cel at a bottom-left texture coordinate."""
    return Cel(layer, tex_x, canvas_height - 1 - tex_y, solid(1, 1))


def content(index: int, name: str, parent: int = -1, params: Sequence = (), level: int = 0) -> Layer:
    return Layer(index=index, name=name, parent_index=parent, child_level=level,
                 kind=LayerKind.CONTENT, parameters=list(params))


def group(index: int, name: str, parent: int = -1, params: Sequence = (), level: int = 0) -> Layer:
    return Layer(index=index, name=name, parent_index=parent, child_level=level,
                 kind=LayerKind.GROUP, parameters=list(params))


def pivot(index: int, name: str = "@pivot", parent: int = -1, params: Sequence = (), level: int = 0) -> Layer:
    return Layer(index=index, name=name, parent_index=parent, child_level=level,
                 kind=LayerKind.META, action="pivot", parameters=list(params))


def make_document(
    layers: List[Layer],
    frames: List[Dict[int, Cel]],
    width: int = 64,
    height: int = 64,
    name: str = "hero",
    tags: Optional[List[FrameTag]] = None,
    durations: Optional[List[int]] = None,
) -> Document:
    durations = durations or [100] * len(frames)
    return Document(
        name=name,
        width=width,
        height=height,
        layers=layers,
        frames=[Frame(index=i, duration=durations[i], cels=dict(cels)) for i, cels in enumerate(frames)],
        tags=list(tags or []),
    )


def example_document(frame_count: int = 3) -> Document:
    """
    64x64 canvas, pivot pixel at texture (10, 50) and a 4x4 opaque square
    covering texture (8, 44)-(11, 47) in every frame.
    """
    layers = [content(0, "body"), pivot(1)]
    frames = []
    for _ in range(frame_count):
        frames.append({
            0: Cel(0, 8, 64 - 1 - 47, solid(4, 4, (0.2, 0.4, 0.6, 1.0))),
            1: dot_cel(1, 10, 50, 64),
        })
    return make_document(layers, frames)


def rects_overlap(a: Tuple[int, int, int, int], b: Tuple[int, int, int, int]) -> bool:
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    return ax < bx + bw and bx < ax + aw and ay < by + bh and by < ay + ah


def rigged_document() -> Document:
    """
    Root torso with a pivot, an "/arm" group whose pivot slides right one
    pixel per frame, and an "/arm/hand" target without a pivot of its own.
    """
    layers = [
        content(0, "torso"),
        pivot(1),
        group(2, "arm", params=["arm"]),
        pivot(3, parent=2, level=1),
        content(4, "upper", parent=2, level=1),
        content(5, "hand", parent=2, params=["hand"], level=1),
    ]
    frames = []
    for i in range(4):
        frames.append({
            0: Cel(0, 20, 20, solid(10, 20, (0.3, 0.3, 0.3, 1.0))),
            1: dot_cel(1, 25, 30, 64),
            3: dot_cel(3, 30 + i, 38, 64),
            4: Cel(4, 29 + i, 25, solid(3, 8, (0.8, 0.1, 0.1, 1.0))),
            5: Cel(5, 30 + i, 33, solid(2, 2, (0.9, 0.8, 0.1, 1.0))),
        })
    return make_document(layers, frames, tags=[FrameTag("swing", 0, 3, ("loop",))])


def example_document_json(frame_count: int = 2) -> dict:
    """JSON form of `example_document`, with flat RGBA cel data."""
    square = [51, 102, 153, 255] * 16
    return {
        "name": "hero",
        "width": 64,
        "height": 64,
        "layers": [
            {"index": 0, "name": "body", "kind": "content"},
            {"index": 1, "name": "@pivot", "kind": "meta", "action": "pivot"},
        ],
        "frames": [
            {"duration": 120, "cels": [
                {"layer": 0, "x": 8, "y": 16, "width": 4, "height": 4, "rgba": square},
                {"layer": 1, "x": 10, "y": 13, "width": 1, "height": 1, "rgba": [255, 0, 0, 255]},
            ]}
            for _ in range(frame_count)
        ],
        "tags": [{"name": "idle", "from": 0, "to": frame_count - 1, "properties": ["loop"]}],
    }
