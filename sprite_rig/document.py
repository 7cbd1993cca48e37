"""
Document Model

In-memory representation of a parsed layered drawing: canvas size, layers,
frames with their cels, and frame tags. The importer only reads this model.

`load_document` builds a Document from the JSON shape accepted by the
import service:

    {
        "name": "hero",
        "width": 64,
        "height": 64,
        "layers": [
            {"index": 0, "name": "body", "parent_index": -1, "child_level": 0,
             "kind": "content", "params": ["body"]},
            {"index": 1, "name": "@pivot", "parent_index": -1, "child_level": 0,
             "kind": "meta", "action": "pivot"}
        ],
        "frames": [
            {"duration": 100, "cels": [
                {"layer": 0, "x": 8, "y": 16, "png": "<base64 png>"},
                {"layer": 1, "x": 10, "y": 13, "width": 1, "height": 1,
                 "rgba": [255, 0, 0, 255]}
            ]}
        ],
        "tags": [{"name": "idle", "from": 0, "to": 3, "properties": ["loop"]}]
    }
"""

from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
from PIL import Image, UnidentifiedImageError


ParamValue = Union[str, int, float]


class DocumentError(ValueError):
    """Raised when a document description cannot be turned into a Document."""


class LayerKind(Enum):
    """Layer types of the drawing file."""
    CONTENT = "content"
    GROUP = "group"
    META = "meta"


@dataclass(frozen=True)
class Cel:
    """
    Pixels one layer contributes to one frame.

    `x`/`y` are the cel origin in canvas space (top-left origin). `pixels` is a
    float32 array of shape (height, width, 4) with channels in 0..1.
    """
    layer_index: int
    x: int
    y: int
    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def get_pixel_raw(self, x: int, y: int) -> np.ndarray:
        return self.pixels[y, x]


@dataclass(frozen=True)
class Frame:
    index: int
    duration: int
    cels: Dict[int, Cel] = field(default_factory=dict)


@dataclass
class Layer:
    """
    A layer of the drawing.

    `target_path` is filled in by target resolution and must never change
    once set.
    """
    index: int
    name: str
    parent_index: int = -1
    child_level: int = 0
    kind: LayerKind = LayerKind.CONTENT
    action: Optional[str] = None
    parameters: List[ParamValue] = field(default_factory=list)
    target_path: Optional[str] = None

    @property
    def is_pivot(self) -> bool:
        return self.kind == LayerKind.META and self.action == "pivot"

    def get_param_string(self, idx: int) -> str:
        return str(self.parameters[idx])


@dataclass(frozen=True)
class FrameTag:
    """Named frame range (inclusive on both ends)."""
    name: str
    start: int
    end: int
    properties: Sequence[str] = ()

    @property
    def frames(self) -> range:
        return range(self.start, self.end + 1)

    @property
    def loop(self) -> bool:
        return "loop" in self.properties


@dataclass
class Document:
    """
    A parsed drawing. Frames are stored in playback order and each frame's
    `index` is its position in `frames`.
    """
    name: str
    width: int
    height: int
    layers: List[Layer] = field(default_factory=list)
    frames: List[Frame] = field(default_factory=list)
    tags: List[FrameTag] = field(default_factory=list)

    def __post_init__(self):
        for position, frame in enumerate(self.frames):
            if frame.index != position:
                raise DocumentError(
                    f"Frame at position {position} has index {frame.index}; "
                    "frame indices must match their position"
                )

    def find_layer(self, index: int) -> Optional[Layer]:
        for layer in self.layers:
            if layer.index == index:
                return layer
        return None


def _decode_cel_pixels(cel_data: Dict[str, Any]) -> np.ndarray:
    """Decode a cel's pixels from base64 PNG or a flat RGBA byte list."""
    if "png" in cel_data:
        try:
            raw = base64.b64decode(cel_data["png"], validate=True)
            img = Image.open(io.BytesIO(raw)).convert("RGBA")
        except (binascii.Error, UnidentifiedImageError, OSError, TypeError, ValueError) as e:
            raise DocumentError(f"Invalid cel PNG data: {e}") from e
        return np.asarray(img, dtype=np.float32) / 255.0

    if "rgba" in cel_data:
        try:
            width = int(cel_data["width"])
            height = int(cel_data["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise DocumentError("Cel with 'rgba' data needs integer width and height") from e
        if width <= 0 or height <= 0:
            raise DocumentError(f"Invalid cel size {width}x{height}")
        try:
            values = np.asarray(cel_data["rgba"], dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise DocumentError(f"Cel rgba data is not a list of numbers: {e}") from e
        if values.size != width * height * 4:
            raise DocumentError(
                f"Cel rgba length {values.size} does not match {width}x{height}x4"
            )
        return values.reshape((height, width, 4)) / 255.0

    raise DocumentError("Cel has neither 'png' nor 'rgba' pixel data")


def _list_field(data: Dict[str, Any], key: str, owner: str) -> List[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise DocumentError(f"{owner} '{key}' must be a list")
    return value


def _parse_layer(data: Any) -> Layer:
    if not isinstance(data, dict):
        raise DocumentError(f"Layer must be a JSON object, got {data!r}")

    try:
        kind = LayerKind(str(data.get("kind", "content")).lower())
    except ValueError as e:
        raise DocumentError(f"Unknown layer kind: {data.get('kind')}") from e

    params = data.get("params", data.get("parameters", [])) or []
    if not isinstance(params, list):
        params = [params]

    try:
        index = int(data["index"])
    except (KeyError, TypeError, ValueError) as e:
        raise DocumentError(f"Layer without a valid index: {data}") from e

    try:
        parent_index = int(data.get("parent_index", -1))
        child_level = int(data.get("child_level", 0))
    except (TypeError, ValueError) as e:
        raise DocumentError(f"Layer {index} has a non-integer parent_index or child_level") from e

    return Layer(
        index=index,
        name=str(data.get("name", f"layer {index}")),
        parent_index=parent_index,
        child_level=child_level,
        kind=kind,
        action=data.get("action"),
        parameters=list(params),
    )


def _parse_cel(data: Any, frame_idx: int, known_layers: set) -> Cel:
    if not isinstance(data, dict):
        raise DocumentError(f"Frame {frame_idx} has a cel that is not a JSON object: {data!r}")

    try:
        layer_index = int(data.get("layer", -1))
        x = int(data.get("x", 0))
        y = int(data.get("y", 0))
    except (TypeError, ValueError) as e:
        raise DocumentError(f"Frame {frame_idx} has a cel with non-integer layer, x or y") from e
    if layer_index not in known_layers:
        raise DocumentError(f"Frame {frame_idx} has a cel for unknown layer {layer_index}")

    return Cel(layer_index=layer_index, x=x, y=y, pixels=_decode_cel_pixels(data))


def _parse_frame(data: Any, frame_idx: int, known_layers: set) -> Frame:
    if not isinstance(data, dict):
        raise DocumentError(f"Frame {frame_idx} must be a JSON object, got {data!r}")

    try:
        duration = int(data.get("duration", 100))
    except (TypeError, ValueError) as e:
        raise DocumentError(f"Frame {frame_idx} has a non-integer duration") from e

    cels: Dict[int, Cel] = {}
    for cel_data in _list_field(data, "cels", f"Frame {frame_idx}"):
        cel = _parse_cel(cel_data, frame_idx, known_layers)
        cels[cel.layer_index] = cel
    return Frame(index=frame_idx, duration=duration, cels=cels)


def load_document(data: Dict[str, Any]) -> Document:
    """
    Build a Document from its JSON description.

    Args:
        data: Parsed JSON object (see module docstring)

    Returns:
        Document ready to be imported

    Raises:
        DocumentError: if the description is malformed
    """
    if not isinstance(data, dict):
        raise DocumentError("Document must be a JSON object")

    try:
        width = int(data["width"])
        height = int(data["height"])
    except (KeyError, TypeError, ValueError) as e:
        raise DocumentError("Document needs integer 'width' and 'height'") from e
    if width <= 0 or height <= 0:
        raise DocumentError(f"Invalid canvas size {width}x{height}")

    layers = [_parse_layer(layer_data) for layer_data in _list_field(data, "layers", "Document")]
    known_layers = {layer.index for layer in layers}

    frames = [
        _parse_frame(frame_data, frame_idx, known_layers)
        for frame_idx, frame_data in enumerate(_list_field(data, "frames", "Document"))
    ]

    tags: List[FrameTag] = []
    for tag_data in _list_field(data, "tags", "Document"):
        if not isinstance(tag_data, dict):
            raise DocumentError(f"Frame tag must be a JSON object, got {tag_data!r}")
        try:
            tag = FrameTag(
                name=str(tag_data["name"]),
                start=int(tag_data["from"]),
                end=int(tag_data["to"]),
                properties=tuple(tag_data.get("properties", ())),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DocumentError(f"Invalid frame tag: {tag_data}") from e
        if tag.start < 0 or tag.end >= len(frames) or tag.start > tag.end:
            raise DocumentError(
                f"Frame tag '{tag.name}' range {tag.start}..{tag.end} is outside "
                f"the {len(frames)} frames"
            )
        tags.append(tag)

    return Document(
        name=str(data.get("name", "sprite")),
        width=width,
        height=height,
        layers=layers,
        frames=frames,
        tags=tags,
    )


__all__ = [
    "Cel",
    "Document",
    "DocumentError",
    "Frame",
    "FrameTag",
    "Layer",
    "LayerKind",
    "load_document",
]
