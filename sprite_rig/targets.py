"""
Target Registry

Every content, group and pivot layer renders to a "target": a slash-delimited
path naming the object its sprite is drawn on. Targets are kept in a flat dict
keyed by path. The hierarchy is implied by the paths themselves; a target's
parent is found by cutting the path at its last slash until a registered path
(or the root "/") is reached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .document import Document, Layer, LayerKind
from .geometry import Vec2


logger = logging.getLogger(__name__)

ROOT_PATH = "/"


class TargetResolutionError(Exception):
    """A layer's target path could not be determined."""


@dataclass
class Target:
    """Data collected for one render target over the whole import."""
    path: str
    sprite_base_name: str
    pivot_layer_index: Optional[int] = None
    pivots: Dict[int, Vec2] = field(default_factory=dict)
    offsets: Dict[int, Vec2] = field(default_factory=dict)
    pivot_norms: Dict[int, Vec2] = field(default_factory=dict)
    dimensions: Dict[int, tuple] = field(default_factory=dict)
    num_layers: int = 0
    num_pivots: int = 0
    # True once pivots were inherited from an ancestor instead of computed here
    inherited_pivot: bool = False

    @property
    def has_own_pivot(self) -> bool:
        return self.pivot_layer_index is not None and not self.inherited_pivot


def sprite_base_name_for(path: str) -> str:
    return path.replace("/", ".").strip(".")


def parent_path(path: str) -> str:
    """Cut a target path at its last slash; the parent of a top level path is '/'."""
    if not path or path == ROOT_PATH:
        return ROOT_PATH
    cut = path[:path.rfind("/")]
    return cut or ROOT_PATH


def _trim_trailing_slash(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path


class TargetRegistry:
    """
    Flat map of target path -> Target, plus the layer -> path resolution rules.

    The root target "/" always exists. Its sprite name is the document base
    name since the path itself has no usable segment.
    """

    def __init__(self, document: Document, root_name: str = ""):
        self.document = document
        self.targets: Dict[str, Target] = {}
        self.ignored_pivot_layers: List[int] = []
        self._layer_paths: Dict[int, str] = {}
        self.targets[ROOT_PATH] = Target(
            path=ROOT_PATH,
            sprite_base_name=root_name or document.name,
        )

    def __contains__(self, path: str) -> bool:
        return path in self.targets

    def __getitem__(self, path: str) -> Target:
        return self.targets[path]

    def __iter__(self) -> Iterator[Target]:
        return iter(self.targets.values())

    def __len__(self) -> int:
        return len(self.targets)

    @property
    def root(self) -> Target:
        return self.targets[ROOT_PATH]

    def get_or_create(self, path: str) -> Target:
        target = self.targets.get(path)
        if target is None:
            target = Target(path=path, sprite_base_name=sprite_base_name_for(path))
            self.targets[path] = target
        return target

    def path_of(self, layer_index: int) -> Optional[str]:
        return self._layer_paths.get(layer_index)

    def _parent_layer_path(self, layer: Layer) -> str:
        if layer.parent_index < 0:
            return ROOT_PATH
        parent = self.document.find_layer(layer.parent_index)
        if parent is None:
            raise TargetResolutionError(
                f"Layer '{layer.name}': parent layer index {layer.parent_index} not found"
            )
        parent_path_value = self._layer_paths.get(parent.index)
        if parent_path_value is None:
            raise TargetResolutionError(
                f"Layer '{layer.name}': parent layer '{parent.name}' has not been resolved yet"
            )
        return parent_path_value

    def resolve(self, layer: Layer) -> str:
        """
        Resolve a layer to its target path and register the target.

        Without a path parameter (or with an empty one) the layer renders to
        its parent's target. A parameter starting with '/' is an absolute
        path; anything else is appended to the parent's path.

        Raises:
            TargetResolutionError: the parent is missing or unresolved, or the
                layer was already resolved to a different path
        """
        param = layer.get_param_string(0) if layer.parameters else ""
        if not param:
            path = self._parent_layer_path(layer)
        elif param.startswith("/"):
            path = _trim_trailing_slash(param)
        else:
            path = _trim_trailing_slash(self._parent_layer_path(layer).rstrip("/") + "/" + param)

        previous = self._layer_paths.get(layer.index)
        if previous is not None and previous != path:
            raise TargetResolutionError(
                f"Layer '{layer.name}' already resolved to '{previous}', not '{path}'"
            )
        self._layer_paths[layer.index] = path
        layer.target_path = path

        target = self.get_or_create(path)
        if layer.is_pivot:
            if target.num_pivots > 0:
                logger.warning(
                    "Pivot layer '%s' ignored because target '%s' already has a pivot",
                    layer.name, path,
                )
                self.ignored_pivot_layers.append(layer.index)
            else:
                target.num_pivots += 1
            if target.num_layers == 0:
                logger.warning(
                    "Pivot layer '%s' with target '%s' has no content layers", layer.name, path
                )
        else:
            target.num_layers += 1

        return path

    def find_parent_target(self, path: str) -> Target:
        """Nearest registered target above `path`; always ends at the root."""
        if not path or path == ROOT_PATH:
            return self.root
        candidate = parent_path(path)
        target = self.targets.get(candidate)
        if target is not None:
            return target
        return self.find_parent_target(candidate)

    def content_layers(self, path: str) -> List[Layer]:
        """Content layers rendering to `path`, ordered by layer index."""
        return sorted(
            (
                layer for layer in self.document.layers
                if layer.kind == LayerKind.CONTENT and self._layer_paths.get(layer.index) == path
            ),
            key=lambda layer: layer.index,
        )


def calculate_targets(document: Document, registry: TargetRegistry) -> TargetRegistry:
    """
    Resolve every layer in two passes: content and group layers first, then
    pivot layers, so pivot layers can be checked against content counts.
    Layers that fail to resolve are logged and skipped.
    """
    passes = [
        [l for l in document.layers if l.kind in (LayerKind.CONTENT, LayerKind.GROUP)],
        [l for l in document.layers if l.is_pivot],
    ]
    for layers in passes:
        for layer in sorted(layers, key=lambda l: l.index):
            try:
                path = registry.resolve(layer)
            except TargetResolutionError as e:
                logger.warning("Skipping layer: %s", e)
                continue
            logger.debug("%s%d - %s -> %s", "  " * layer.child_level, layer.index, layer.name, path)
    return registry


__all__ = [
    "ROOT_PATH",
    "Target",
    "TargetRegistry",
    "TargetResolutionError",
    "calculate_targets",
    "parent_path",
    "sprite_base_name_for",
]
